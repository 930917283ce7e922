"""
Brief: Tests for splitdns.main (startup wiring and exit codes).

Inputs:
  - None

Outputs:
  - None
"""

import signal
import socket

import pytest

import splitdns.main as main_mod
from splitdns.cache_plugins.in_memory_ttl import InMemoryTTLCache
from splitdns.cache_plugins.none import NullCache
from splitdns.config.config_parser import parse_config
from splitdns.servers.udp_server import DNSUDPServer


@pytest.fixture(autouse=True)
def no_signal_handlers(monkeypatch):
    """
    Brief: Keep main() from replacing pytest's SIGINT/SIGTERM handlers.

    Inputs:
      - monkeypatch

    Outputs:
      - list of (signum, handler) registrations
    """
    installed = []
    monkeypatch.setattr(signal, "signal", lambda s, h: installed.append((s, h)))
    monkeypatch.setattr(main_mod, "init_logging", lambda *a, **kw: None)
    return installed


def _settings(**server):
    srv = {"external_dns": "192.0.2.53", "listen_addr": "127.0.0.1", "listen_port": 0}
    srv.update(server)
    return {"server": srv, "private_domains": {"internal": {"db": "10.1.2.3"}}}


def test_build_engine_wires_zones_and_forwarder():
    settings = parse_config(_settings(external_port=5353, timeout_ms=300))
    engine = main_mod.build_engine(settings)
    try:
        assert engine.zones.lookup("db.internal.") == (bytes([10, 1, 2, 3]), True)
        assert engine.forwarder.host == "192.0.2.53"
        assert engine.forwarder.port == 5353
        assert engine.forwarder.timeout_ms == 300
        assert isinstance(engine.cache, NullCache)
    finally:
        engine.close()


def test_build_engine_loads_configured_cache():
    cfg = _settings()
    cfg["cache"] = {"module": "in_memory_ttl"}
    engine = main_mod.build_engine(parse_config(cfg))
    try:
        assert isinstance(engine.cache, InMemoryTTLCache)
    finally:
        engine.close()


def test_build_engine_rejects_cache_with_passthrough():
    cfg = _settings(forward_mode="passthrough")
    cfg["cache"] = {"module": "memory"}
    with pytest.raises(ValueError):
        main_mod.build_engine(parse_config(cfg))


def test_build_server_binds_and_gates():
    settings = parse_config(_settings(allowed_ips=["10.0.0.0/24"]))
    engine = main_mod.build_engine(settings)
    server = main_mod.build_server(settings, engine)
    try:
        assert isinstance(server, DNSUDPServer)
        assert server.server_address[0] == "127.0.0.1"
        assert server.verify_request(None, ("10.0.0.1", 53)) is True
        assert server.verify_request(None, ("10.0.1.1", 53)) is False
    finally:
        server.server_close()
        engine.close()


def test_main_missing_config_is_fatal(tmp_path):
    assert main_mod.main(["--config", str(tmp_path / "missing.yaml")]) == 1


def test_main_invalid_config_is_fatal(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("server:\n  listen_port: 53\n")
    assert main_mod.main(["--config", str(path)]) == 1


def test_main_invalid_cache_is_fatal(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n  external_dns: 192.0.2.53\n  listen_port: 0\n"
        "cache:\n  module: bogus-backend\n"
    )
    assert main_mod.main(["--config", str(path)]) == 1


def test_main_bind_failure_is_fatal(tmp_path):
    busy = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    busy.bind(("127.0.0.1", 0))
    port = busy.getsockname()[1]
    path = tmp_path / "config.yaml"
    path.write_text(
        f"server:\n  external_dns: 192.0.2.53\n  listen_addr: 127.0.0.1\n  listen_port: {port}\n"
    )
    try:
        assert main_mod.main(["--config", str(path)]) == 1
    finally:
        busy.close()


def test_main_runs_until_listener_stops(tmp_path, monkeypatch, no_signal_handlers):
    """
    Brief: main() serves in a background thread and shuts down cleanly.

    Inputs:
      - serve_forever patched to fail immediately

    Outputs:
      - None: Asserts exit code 1 and signal handlers registered
    """
    path = tmp_path / "config.yaml"
    path.write_text(
        "server:\n  external_dns: 192.0.2.53\n  listen_addr: 127.0.0.1\n  listen_port: 0\n"
        "  allowed_ips: [127.0.0.1]\n"
    )

    def boom(self, poll_interval=0.5):
        raise RuntimeError("listener crashed")

    monkeypatch.setattr(DNSUDPServer, "serve_forever", boom)
    monkeypatch.setattr(DNSUDPServer, "shutdown", lambda self: None)

    assert main_mod.main(["--config", str(path), "--log-level", "debug"]) == 1
    assert {s for s, _ in no_signal_handlers} == {signal.SIGINT, signal.SIGTERM}
