"""
Brief: Tests for splitdns.config.config_parser.

Inputs:
  - None

Outputs:
  - None
"""

import pytest

from splitdns.config.config_parser import (
    ConfigError,
    Settings,
    parse_config,
    parse_config_file,
)

FULL_CONFIG = """
server:
  external_dns: 8.8.8.8
  listen_addr: 127.0.0.1
  listen_port: 5353
  allowed_ips:
    - 192.168.1.0/24
    - 10.0.0.5
cache:
  module: redis
  config:
    host: 127.0.0.1
    password: secret
    db: 1
    max_retries: 2
    timeout: 0.5
logging:
  level: debug
private_domains:
  internal:
    db: 10.1.2.3
    web: 10.1.2.4
  corp:
    mail: 192.168.0.25
"""


def test_parse_full_config_file(tmp_path):
    """
    Brief: A complete YAML file validates into Settings with normalized fields.

    Inputs:
      - tmp_path: pytest tmp_path fixture

    Outputs:
      - None
    """
    path = tmp_path / "config.yaml"
    path.write_text(FULL_CONFIG)

    settings = parse_config_file(str(path))

    assert isinstance(settings, Settings)
    srv = settings.server
    assert srv.external_dns == "8.8.8.8"
    assert srv.listen_addr == "127.0.0.1"
    assert srv.listen_port == 5353
    assert srv.external_port == 53
    assert srv.timeout_ms == 2000
    assert srv.forward_mode == "answer"
    assert srv.unresolved == "zero"
    assert srv.allowed_ips == ["192.168.1.0/24", "10.0.0.5"]
    assert srv.allow_all is False
    assert settings.cache["module"] == "redis"
    assert settings.cache["config"]["db"] == 1
    assert settings.logging == {"level": "debug"}
    assert settings.private_domains == {
        "internal": {"db": "10.1.2.3", "web": "10.1.2.4"},
        "corp": {"mail": "192.168.0.25"},
    }


def test_defaults_for_minimal_config():
    settings = parse_config({"server": {"external_dns": "1.1.1.1"}})
    assert settings.server.listen_addr == "0.0.0.0"
    assert settings.server.listen_port == 53
    assert settings.server.allowed_ips == []
    assert settings.cache is None
    assert settings.logging == {}
    assert settings.private_domains == {}


@pytest.mark.parametrize("cache", [None, {}])
def test_empty_cache_section_disables_caching(cache):
    settings = parse_config({"server": {"external_dns": "1.1.1.1"}, "cache": cache})
    assert settings.cache is None


def test_string_cache_section_is_module_alias():
    settings = parse_config({"server": {"external_dns": "1.1.1.1"}, "cache": "memory"})
    assert settings.cache == {"module": "memory"}


def test_modes_are_normalized():
    settings = parse_config(
        {
            "server": {
                "external_dns": "1.1.1.1",
                "forward_mode": "PassThrough",
                "unresolved": "Drop",
                "allowed_ips": "10.0.0.1",
            }
        }
    )
    assert settings.server.forward_mode == "passthrough"
    assert settings.server.unresolved == "drop"
    assert settings.server.allowed_ips == ["10.0.0.1"]


def test_non_string_addresses_are_coerced():
    settings = parse_config(
        {"server": {"external_dns": "1.1.1.1"}, "private_domains": {"lab": {"h1": 17}}}
    )
    assert settings.private_domains == {"lab": {"h1": "17"}}


def test_settings_are_immutable():
    settings = parse_config({"server": {"external_dns": "1.1.1.1"}})
    with pytest.raises(Exception):
        settings.server.listen_port = 99


@pytest.mark.parametrize(
    "cfg",
    [
        {},
        {"server": {}},
        {"server": {"external_dns": ""}},
        {"server": {"external_dns": "1.1.1.1", "listen_port": 70000}},
        {"server": {"external_dns": "1.1.1.1", "forward_mode": "recursive"}},
        {"server": {"external_dns": "1.1.1.1", "unresolved": "nxdomain"}},
        {"server": {"external_dns": "1.1.1.1", "timeout_ms": 0}},
        {"server": {"external_dns": "1.1.1.1"}, "private_domains": ["a"]},
        {"server": {"external_dns": "1.1.1.1"}, "private_domains": {"z": ["a"]}},
    ],
)
def test_invalid_configs_raise_config_error(cfg):
    with pytest.raises(ConfigError):
        parse_config(cfg)


def test_non_mapping_root_rejected():
    with pytest.raises(ConfigError):
        parse_config(["server"])


def test_missing_file_raises_config_error(tmp_path):
    with pytest.raises(ConfigError):
        parse_config_file(str(tmp_path / "nope.yaml"))


def test_bad_yaml_raises_config_error(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server: [unclosed\n")
    with pytest.raises(ConfigError):
        parse_config_file(str(path))
