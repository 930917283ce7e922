from __future__ import annotations

import argparse
import logging
import signal
import threading
from typing import List, Optional

from .access_control import AccessGate
from .cache_plugins.registry import load_cache_plugin
from .config.config_parser import ConfigError, Settings, parse_config_file
from .config.logging_config import init_logging
from .servers.forwarder import UpstreamForwarder
from .servers.server import ResolutionEngine
from .servers.udp_server import DNSUDPServer
from .zones import ZoneTable


def build_engine(settings: Settings) -> ResolutionEngine:
    """
    Brief: Wire zone table, cache and forwarder into a ResolutionEngine.

    Inputs:
      - settings: validated Settings.

    Outputs:
      - ResolutionEngine.

    Raises:
      - ValueError/TypeError/KeyError: invalid cache or mode combination.
    """
    srv = settings.server
    zones = ZoneTable.from_config(settings.private_domains)
    forwarder = UpstreamForwarder(
        srv.external_dns, srv.external_port, timeout_ms=srv.timeout_ms
    )
    cache = load_cache_plugin(dict(settings.cache) if settings.cache else None)
    return ResolutionEngine(
        zones,
        forwarder,
        cache,
        forward_mode=srv.forward_mode,
        unresolved=srv.unresolved,
    )


def build_server(settings: Settings, engine: ResolutionEngine) -> DNSUDPServer:
    """
    Brief: Bind the UDP listener for settings.server.

    Inputs:
      - settings: validated Settings.
      - engine: ResolutionEngine shared by handler threads.

    Outputs:
      - DNSUDPServer bound to listen_addr:listen_port.
    """
    srv = settings.server
    gate = AccessGate(srv.allowed_ips, allow_all=srv.allow_all)
    return DNSUDPServer((srv.listen_addr, srv.listen_port), engine, gate)


def main(argv: List[str] | None = None) -> int:
    """
    Main entry point for the split-horizon DNS resolver.
    Parses arguments, loads configuration, builds the resolver and serves
    until SIGINT/SIGTERM.

    Args:
        argv: Command-line arguments.

    Returns:
        An exit code: 0 on clean shutdown, 1 when the configuration is
        invalid or the listener cannot be started.

    Example use:
        CLI:
            splitdns --config config.yaml
            PYTHONPATH=src python -m splitdns.main --config config.yaml --log-level debug
    """
    parser = argparse.ArgumentParser(description="Split-horizon DNS resolver")
    parser.add_argument("--config", default="config.yaml", help="Path to YAML config")
    parser.add_argument(
        "--log-level",
        default=None,
        help="Override logging.level (debug, info, warn, error, crit)",
    )
    args = parser.parse_args(argv)

    logger = logging.getLogger("splitdns.main")

    try:
        settings = parse_config_file(args.config)
    except ConfigError as exc:
        init_logging(None, level_override=args.log_level)
        logger.error("%s", exc)
        return 1

    init_logging(settings.logging, level_override=args.log_level)
    logger.info("Loaded config from %s", args.config)

    srv = settings.server
    try:
        engine = build_engine(settings)
    except (ValueError, TypeError, KeyError, ImportError) as exc:
        logger.error("Invalid configuration: %s", exc)
        return 1

    logger.info(
        "Server config: listen %s:%d, external DNS %s:%d, mode %s, timeout %dms",
        srv.listen_addr,
        srv.listen_port,
        srv.external_dns,
        srv.external_port,
        srv.forward_mode,
        srv.timeout_ms,
    )
    if not srv.allowed_ips and not srv.allow_all:
        logger.warning("server.allowed_ips is empty; every query will be dropped")
    logger.info(
        "Private domains (%d): %s", len(engine.zones), ", ".join(engine.zones.names())
    )
    logger.info(
        "Address cache: %s",
        type(engine.cache).__name__ if engine.cache.enabled else "disabled",
    )

    try:
        server = build_server(settings, engine)
    except OSError as exc:
        logger.error("Cannot bind %s:%d: %s", srv.listen_addr, srv.listen_port, exc)
        engine.close()
        return 1

    shutdown_event = threading.Event()

    def _request_shutdown(signum, _frame) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        shutdown_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            signal.signal(sig, _request_shutdown)
        except (ValueError, OSError):
            # Not on the main thread (e.g. embedded in tests).
            logger.debug("Could not install handler for %s", sig)

    udp_error: Optional[BaseException] = None

    def _run_udp() -> None:
        nonlocal udp_error
        try:
            server.serve_forever()
        except Exception as e:
            udp_error = e
        finally:
            shutdown_event.set()

    udp_thread = threading.Thread(target=_run_udp, name="splitdns-udp", daemon=True)
    udp_thread.start()
    logger.info("DNS server started on %s:%d", srv.listen_addr, srv.listen_port)

    try:
        while not shutdown_event.wait(timeout=1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down")
    finally:
        server.shutdown()
        server.server_close()
        udp_thread.join(timeout=5.0)
        engine.close()

    if udp_error is not None:
        logger.error("UDP listener failed: %s", udp_error)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())  # pragma: no cover
