import socket
from typing import Optional

# Large enough for EDNS-sized answers; plain DNS over UDP caps at 512.
MAX_UDP_RESPONSE = 4096


class UDPError(Exception):
    """
    Brief: DNS-over-UDP transport error.

    Inputs:
    - message: description

    Outputs:
    - Exception instance
    """

    pass


def udp_query(
    host: str,
    port: int,
    query: bytes,
    *,
    timeout_ms: int = 2000,
    bufsize: int = MAX_UDP_RESPONSE,
    source_ip: Optional[str] = None,
) -> bytes:
    """
    Brief: Send one raw DNS query over a fresh UDP socket and read one datagram back.

    Inputs:
    - host: upstream resolver host, IPv4 or IPv6 address
    - port: upstream UDP port
    - query: wire-format DNS query bytes, sent unmodified
    - timeout_ms: read deadline in milliseconds
    - bufsize: receive buffer size in bytes
    - source_ip: optional source address to bind

    Outputs:
    - bytes: wire-format DNS response

    Raises:
    - UDPError: on any socket, write, read or timeout failure

    Example:
        >>> try:
        ...     udp_query('127.0.0.1', 53, b'\x00\x01', timeout_ms=10)
        ... except UDPError:
        ...     pass
    """
    try:
        # IPv4 and IPv6 upstreams both work; take the first usable address.
        family, _, _, _, sockaddr = socket.getaddrinfo(
            host, int(port), 0, socket.SOCK_DGRAM
        )[0]
        s = socket.socket(family, socket.SOCK_DGRAM)
        try:
            if source_ip:
                s.bind((source_ip, 0))
            s.settimeout(timeout_ms / 1000.0)
            s.connect(sockaddr)
            s.send(query)
            return s.recv(int(bufsize))
        finally:
            s.close()
    except OSError as e:
        raise UDPError(f"UDP error talking to {host}:{port}: {e}") from e
