import logging
import socket
import socketserver
from typing import Tuple

from ..access_control import AccessGate
from .server import ResolutionEngine

logger = logging.getLogger("splitdns.server")


class DNSUDPHandler(socketserver.BaseRequestHandler):
    """
    Handles one accepted UDP datagram in its own thread.

    The owning DNSUDPServer has already passed the datagram through the
    access gate; this handler resolves it with the server's engine and writes
    the response, if any, back to the original source address.
    """

    def handle(self):
        data, sock = self.request
        client_ip = self.client_address[0]

        try:
            wire = self.server.engine.handle(data, client_ip)
        except Exception:
            logger.exception("Resolution failed for query from %s", client_ip)
            return

        # None means the engine chose to drop the query.
        if not wire:
            return

        try:
            sock.sendto(wire, self.client_address)
        except OSError as e:
            logger.warning("Failed to send response to %s: %s", client_ip, e)


class DNSUDPServer(socketserver.ThreadingUDPServer):
    """
    Brief: UDP listener that gates sources and dispatches a thread per datagram.

    Inputs:
    - server_address: (host, port) to bind
    - engine: ResolutionEngine shared by all handler threads
    - gate: AccessGate checked before a datagram is dispatched

    Outputs:
    - DNSUDPServer bound to server_address

    Notes:
    - verify_request() runs on the listener loop, so datagrams from
      unauthorized sources are dropped without ever starting a thread and
      without any reply.

    Example:
        >>> # server = DNSUDPServer(("0.0.0.0", 5353), engine, gate)
        >>> # server.serve_forever()
    """

    daemon_threads = True
    max_packet_size = 4096

    def __init__(
        self,
        server_address: Tuple[str, int],
        engine: ResolutionEngine,
        gate: AccessGate,
        bind_and_activate: bool = True,
    ) -> None:
        self.engine = engine
        self.gate = gate
        if ":" in str(server_address[0]):
            self.address_family = socket.AF_INET6
        super().__init__(server_address, DNSUDPHandler, bind_and_activate)

    def verify_request(self, request, client_address) -> bool:
        if self.gate.is_allowed(client_address):
            return True
        logger.debug("Dropping datagram from unauthorized source %s", client_address[0])
        return False
