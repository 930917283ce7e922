from __future__ import annotations

import ipaddress
import logging
from typing import Iterable, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _canonical_ip(value: str) -> Optional[str]:
    """Brief: Canonical textual form of an IP, unwrapping IPv4-mapped IPv6.

    Inputs:
      - value: IP address text.

    Outputs:
      - Optional[str]: canonical text, or None when value is not an IP.
    """

    try:
        ip = ipaddress.ip_address(str(value).strip())
    except ValueError:
        return None
    mapped = getattr(ip, "ipv4_mapped", None)
    return str(mapped if mapped is not None else ip)


class AccessGate:
    """
    Decides which source addresses may query the resolver at all.

    Rules containing a '/' are CIDR blocks tested for containment; every other
    rule is compared as an exact string against the canonical form of the
    source IP. An empty rule list denies everyone unless allow_all is set.

    Example use:
        >>> gate = AccessGate(["192.168.1.0/24", "10.0.0.5"])
        >>> gate.is_allowed(("192.168.1.10", 5353))
        True
        >>> gate.is_allowed("192.168.2.5")
        False
    """

    def __init__(self, allowed: Optional[Iterable[str]] = None, allow_all: bool = False):
        self.allow_all = bool(allow_all)
        self.networks: List[IPNetwork] = []
        self.literals: List[str] = []
        for rule in allowed or []:
            rule = str(rule).strip()
            if "/" in rule:
                try:
                    self.networks.append(ipaddress.ip_network(rule, strict=False))
                    continue
                except ValueError:
                    logger.warning("Ignoring malformed CIDR access rule %r", rule)
                    continue
            self.literals.append(_canonical_ip(rule) or rule)

    def is_allowed(self, source: Union[str, Tuple]) -> bool:
        """
        Checks whether a datagram source may be served.

        Args:
            source: (host, port, ...) tuple as returned by recvfrom, or a bare IP.
        Returns:
            True on the first matching rule, False otherwise.
        """
        host = source[0] if isinstance(source, tuple) else source
        if self.allow_all:
            return True

        text = _canonical_ip(host)
        if text is None:
            logger.debug("Access denied for unparseable source %r", host)
            return False

        if text in self.literals:
            return True
        ip = ipaddress.ip_address(text)
        for net in self.networks:
            if ip.version == net.version and ip in net:
                return True

        logger.debug("Access denied for %s (no matching rule)", text)
        return False
