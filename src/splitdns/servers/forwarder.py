from __future__ import annotations

import logging
from typing import Optional

from dnslib import CLASS, QTYPE, DNSRecord

from .transports.udp import MAX_UDP_RESPONSE, UDPError, udp_query

logger = logging.getLogger("splitdns.forwarder")


def first_a_answer(response_wire: bytes) -> Optional[str]:
    """Brief: Extract the first IN/A answer from a DNS response.

    Inputs:
      - response_wire: wire-format DNS response bytes.

    Outputs:
      - Optional[str]: dotted IPv4 address of the first answer record whose
        type is A and class is IN, or None when there is no such record.
        Records of any other type (CNAME, AAAA, ...) are skipped.

    Raises:
      - dnslib.DNSError and friends when the response cannot be parsed.

    Example:
      >>> from dnslib import RR, A
      >>> q = DNSRecord.question("example.com")
      >>> r = q.reply()
      >>> r.add_answer(RR("example.com", QTYPE.A, rdata=A("93.184.216.34")))
      >>> first_a_answer(r.pack())
      '93.184.216.34'
    """

    record = DNSRecord.parse(response_wire)
    for rr in record.rr:
        if rr.rtype == QTYPE.A and rr.rclass == CLASS.IN:
            return str(rr.rdata)
    return None


class UpstreamForwarder:
    """Relay raw queries to a single upstream recursive resolver over UDP.

    Brief:
      Each call opens a fresh UDP socket, writes the query unmodified and
      reads back a single datagram with a bounded read deadline. No retries.

    Inputs:
      - host: upstream resolver address.
      - port: upstream port (default 53).
      - timeout_ms: read deadline per call in milliseconds.
      - bufsize: receive buffer size.

    Outputs:
      - UpstreamForwarder instance.

    Example:
      >>> fwd = UpstreamForwarder("8.8.8.8", timeout_ms=1500)
      >>> # fwd.resolve(DNSRecord.question("example.com").pack())
    """

    def __init__(
        self,
        host: str,
        port: int = 53,
        *,
        timeout_ms: int = 2000,
        bufsize: int = MAX_UDP_RESPONSE,
    ) -> None:
        self.host = str(host)
        self.port = int(port)
        self.timeout_ms = int(timeout_ms)
        self.bufsize = int(bufsize)

    def relay(self, query_wire: bytes) -> Optional[bytes]:
        """Brief: Forward the raw query and return the raw upstream response.

        Inputs:
          - query_wire: wire-format query bytes from the client.

        Outputs:
          - Optional[bytes]: upstream response bytes, or None on any I/O failure.
        """

        try:
            return udp_query(
                self.host,
                self.port,
                query_wire,
                timeout_ms=self.timeout_ms,
                bufsize=self.bufsize,
            )
        except UDPError as e:
            logger.warning("Upstream %s:%d failed: %s", self.host, self.port, e)
            return None

    def resolve(self, query_wire: bytes) -> Optional[str]:
        """Brief: Forward the raw query and extract the first A answer.

        Inputs:
          - query_wire: wire-format query bytes from the client.

        Outputs:
          - Optional[str]: dotted IPv4 address, or None when the upstream did
            not answer, answered garbage, or returned no IN/A record.
        """

        response = self.relay(query_wire)
        if response is None:
            return None
        try:
            address = first_a_answer(response)
        except Exception as e:
            logger.warning(
                "Unparseable response from upstream %s:%d: %s", self.host, self.port, e
            )
            return None
        if address is None:
            logger.debug("Upstream %s:%d returned no A answer", self.host, self.port)
        return address
