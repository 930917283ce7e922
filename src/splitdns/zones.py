"""Private zone table.

Brief:
  Flattens the configured ``private_domains`` mapping (zone -> host -> IPv4)
  into an immutable FQDN -> 4-byte address table. The table is built once at
  startup and only read afterwards, so resolution threads share it without
  locking.

Notes:
  - IPv4 strings are parsed leniently: every dot-separated octet that is not a
    decimal number in 0..255 becomes 0, missing octets become 0 and anything
    after the fourth octet is ignored. "10.1.x.3" therefore maps to 10.1.0.3.
    This is the intended behaviour for hand-written zone files, not an error.
"""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Iterator, Mapping, Optional, Tuple

logger = logging.getLogger("splitdns.zones")


def normalize_name(name: str) -> str:
    """Brief: Canonical FQDN form used for zone and cache keys.

    Inputs:
      - name: domain name, with or without trailing dot.

    Outputs:
      - str: lower-cased name ending with exactly one dot.

    Example:
      >>> normalize_name("DB.Internal")
      'db.internal.'
    """

    return str(name).strip().rstrip(".").lower() + "."


def parse_octet(text: str) -> int:
    """Brief: Parse one IPv4 octet, defaulting to 0 when malformed.

    Inputs:
      - text: octet text.

    Outputs:
      - int in 0..255.

    Example:
      >>> parse_octet("12"), parse_octet("x"), parse_octet("300")
      (12, 0, 0)
    """

    text = str(text).strip()
    if not (text.isascii() and text.isdigit()):
        return 0
    value = int(text)
    return value if value <= 255 else 0


def parse_ipv4(text: str) -> bytes:
    """Brief: Leniently convert a dotted IPv4 string into 4 raw bytes.

    Inputs:
      - text: dotted IPv4 string (possibly malformed).

    Outputs:
      - bytes of length 4.

    Example:
      >>> parse_ipv4("10.1.2.3")
      b'\\n\\x01\\x02\\x03'
      >>> parse_ipv4("10.1")
      b'\\n\\x01\\x00\\x00'
    """

    octets = [parse_octet(o) for o in str(text).split(".")[:4]]
    octets.extend([0] * (4 - len(octets)))
    return bytes(octets)


def format_ipv4(address: bytes) -> str:
    """Brief: Render 4 raw bytes as a dotted IPv4 string."""

    return ".".join(str(b) for b in address)


class ZoneTable:
    """Immutable FQDN -> IPv4 table for the private zones.

    Brief:
      Exact-match lookups only; no wildcard or suffix matching.

    Inputs:
      - entries: mapping of FQDN -> 4-byte address.

    Outputs:
      - ZoneTable instance.

    Example:
      >>> table = ZoneTable.from_config({"internal": {"db": "10.1.2.3"}})
      >>> table.lookup("db.internal.")
      (b'\\n\\x01\\x02\\x03', True)
      >>> table.lookup("example.com.")
      (None, False)
    """

    def __init__(self, entries: Optional[Mapping[str, bytes]] = None) -> None:
        table = {}
        for name, address in (entries or {}).items():
            address = bytes(address)
            if len(address) != 4:
                raise ValueError(f"{name}: IPv4 address must be 4 bytes")
            table[normalize_name(name)] = address
        self._entries: Mapping[str, bytes] = MappingProxyType(table)

    @classmethod
    def from_config(
        cls, private_domains: Optional[Mapping[str, Mapping[str, str]]]
    ) -> "ZoneTable":
        """Brief: Build the table from the two-level ``private_domains`` mapping.

        Inputs:
          - private_domains: zone name -> {host name -> dotted IPv4}.

        Outputs:
          - ZoneTable; FQDNs are ``host.zone.``. Later duplicates win.
        """

        entries = {}
        for zone, hosts in (private_domains or {}).items():
            for host, address in (hosts or {}).items():
                fqdn = normalize_name(f"{host}.{str(zone).strip('.')}")
                if fqdn in entries:
                    logger.warning("Duplicate private name %s; last entry wins", fqdn)
                entries[fqdn] = parse_ipv4(str(address))
        return cls(entries)

    def lookup(self, name: str) -> Tuple[Optional[bytes], bool]:
        """Brief: Exact-match lookup.

        Inputs:
          - name: query name (case-insensitive, trailing dot optional).

        Outputs:
          - (address, is_private): the 4-byte address and True for private
            names, (None, False) otherwise.
        """

        address = self._entries.get(normalize_name(name))
        if address is None:
            return None, False
        return address, True

    def names(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and normalize_name(name) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
