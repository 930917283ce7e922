"""Configuration parsing and validation for splitdns.

Brief:
  Reads the YAML configuration file and validates it into an immutable
  Settings value that is handed to the listener and the resolution engine at
  construction time. Nothing here keeps module-level state.

Inputs:
  - YAML config files or already-parsed mappings

Outputs:
  - Settings instances

Example config:
  server:
    listen_addr: 0.0.0.0
    listen_port: 53
    external_dns: 8.8.8.8
    allowed_ips:
      - 192.168.1.0/24
  cache:
    module: redis
    config:
      host: 127.0.0.1
  private_domains:
    internal:
      db: 10.1.2.3
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, validator

FORWARD_MODES = ("answer", "passthrough")
UNRESOLVED_POLICIES = ("zero", "drop")


class ConfigError(ValueError):
    """Brief: Raised when the configuration cannot be read or is invalid."""


class ServerConfig(BaseModel):
    """Brief: Listener, upstream and access settings.

    Inputs:
      - listen_addr: Address to bind (default 0.0.0.0).
      - listen_port: UDP port to bind (default 53).
      - external_dns: Upstream recursive resolver address (required).
      - external_port: Upstream port (default 53).
      - timeout_ms: Upstream read deadline in milliseconds.
      - forward_mode: "answer" to extract the first A record and synthesize a
        reply, "passthrough" to relay upstream bytes unmodified.
      - unresolved: "zero" answers 0.0.0.0 when the upstream fails, "drop"
        sends nothing. Only used in answer mode.
      - allowed_ips: Literal IPs and CIDR blocks allowed to query.
      - allow_all: Serve every source when allowed_ips is empty.

    Outputs:
      - ServerConfig instance with normalized types.
    """

    listen_addr: str = Field(default="0.0.0.0")
    listen_port: int = Field(default=53, ge=0, le=65535)
    external_dns: str
    external_port: int = Field(default=53, ge=1, le=65535)
    timeout_ms: int = Field(default=2000, gt=0)
    forward_mode: str = Field(default="answer")
    unresolved: str = Field(default="zero")
    allowed_ips: List[str] = Field(default_factory=list)
    allow_all: bool = Field(default=False)

    class Config:
        frozen = True

    @validator("external_dns", pre=True)
    def _require_external_dns(cls, v):
        text = str(v or "").strip()
        if not text:
            raise ValueError("external_dns must be a non-empty address")
        return text

    @validator("forward_mode", pre=True)
    def _check_forward_mode(cls, v):
        mode = str(v or "answer").strip().lower()
        if mode not in FORWARD_MODES:
            raise ValueError(f"forward_mode must be one of {FORWARD_MODES}")
        return mode

    @validator("unresolved", pre=True)
    def _check_unresolved(cls, v):
        policy = str(v or "zero").strip().lower()
        if policy not in UNRESOLVED_POLICIES:
            raise ValueError(f"unresolved must be one of {UNRESOLVED_POLICIES}")
        return policy

    @validator("allowed_ips", pre=True)
    def _coerce_allowed_ips(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return [str(item) for item in v]


class Settings(BaseModel):
    """Brief: Complete, validated runtime configuration.

    Inputs:
      - server: ServerConfig mapping.
      - cache: Optional cache plugin spec ({"module": ..., "config": {...}}).
      - logging: Optional logging mapping passed to init_logging().
      - private_domains: zone -> {host -> dotted IPv4}.

    Outputs:
      - Settings instance (immutable).
    """

    server: ServerConfig
    cache: Optional[Dict[str, Any]] = None
    logging: Dict[str, Any] = Field(default_factory=dict)
    private_domains: Dict[str, Dict[str, str]] = Field(default_factory=dict)

    class Config:
        frozen = True

    @validator("cache", pre=True)
    def _coerce_cache(cls, v):
        if v is None or v == {}:
            return None
        if isinstance(v, str):
            return {"module": v}
        return v

    @validator("logging", pre=True)
    def _coerce_logging(cls, v):
        return v or {}

    @validator("private_domains", pre=True)
    def _coerce_private_domains(cls, v):
        if v is None:
            return {}
        if not isinstance(v, Mapping):
            raise ValueError("private_domains must be a mapping of zone -> hosts")
        zones: Dict[str, Dict[str, str]] = {}
        for zone, hosts in v.items():
            if hosts is None:
                hosts = {}
            if not isinstance(hosts, Mapping):
                raise ValueError(f"private_domains.{zone} must map host names to IPv4")
            zones[str(zone)] = {str(h): str(a) for h, a in hosts.items()}
        return zones


def parse_config(cfg: Any) -> Settings:
    """Brief: Validate an already-parsed configuration mapping.

    Inputs:
      - cfg: mapping as produced by yaml.safe_load.

    Outputs:
      - Settings.

    Raises:
      - ConfigError: when cfg is not a mapping or fails validation.
    """

    if not isinstance(cfg, Mapping):
        raise ConfigError("Configuration root must be a mapping")
    try:
        return Settings(**dict(cfg))
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def parse_config_file(config_path: str) -> Settings:
    """Brief: Read and validate a YAML configuration file.

    Inputs:
      - config_path: Path to the YAML configuration file.

    Outputs:
      - Settings.

    Raises:
      - ConfigError: when the file cannot be read, is not valid YAML or
        fails validation.
    """

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Cannot parse config file {config_path}: {e}") from e

    return parse_config(cfg)
