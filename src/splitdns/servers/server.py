from __future__ import annotations

import ipaddress
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional

from dnslib import CLASS, QTYPE, RR, A, DNSRecord

from ..cache_plugins.base import CachePlugin
from ..cache_plugins.none import NullCache
from ..zones import ZoneTable, format_ipv4, normalize_name
from .forwarder import UpstreamForwarder

logger = logging.getLogger("splitdns.server")

# TTL put on every synthesized A answer.
ANSWER_TTL = 600

# Answer sent when the upstream could not resolve a name.
UNRESOLVED_ADDRESS = "0.0.0.0"

# Cache writes queued or running at once; further writes are dropped.
MAX_PENDING_CACHE_WRITES = 64


@dataclass(frozen=True)
class Query:
    """
    Brief: One inbound question, alive for the duration of a single resolution.

    Inputs:
      - name: normalized question name (``example.com.``).
      - qtype: numeric question type.
      - client_ip: source address of the datagram.
      - raw: original datagram bytes, relayed upstream unmodified.
      - request: parsed dnslib record used to build the reply.
    """

    name: str
    qtype: int
    client_ip: str
    raw: bytes
    request: DNSRecord

    @property
    def type_name(self) -> str:
        return str(QTYPE.get(self.qtype, f"TYPE{self.qtype}"))


def parse_query(data: bytes, client_ip: str) -> Optional[Query]:
    """
    Brief: Parse a datagram into a Query, honouring only the first question.

    Inputs:
      - data: raw datagram bytes.
      - client_ip: source IP for logging.

    Outputs:
      - Query, or None when the datagram is malformed or has no question.
    """
    try:
        request = DNSRecord.parse(data)
    except Exception as e:
        logger.info("Dropping malformed datagram from %s: %s", client_ip, e)
        return None

    if not request.questions:
        logger.debug("Dropping query without questions from %s", client_ip)
        return None

    question = request.questions[0]
    return Query(
        name=normalize_name(str(question.qname)),
        qtype=int(question.qtype),
        client_ip=client_ip,
        raw=bytes(data),
        request=request,
    )


def build_a_response(request: DNSRecord, address: str, *, authoritative: bool) -> bytes:
    """
    Brief: Build a packed A response for the first question of request.

    Inputs:
      - request: parsed query; its ID, RD flag and first question are echoed.
      - address: dotted IPv4 address for the single answer record.
      - authoritative: set AA (private-zone answers).

    Outputs:
      - bytes: wire-format response with QR set and one IN/A answer, TTL 600.

    Example:
      >>> req = DNSRecord.question("db.internal")
      >>> DNSRecord.parse(build_a_response(req, "10.1.2.3", authoritative=True)).a.rdata
      A(10.1.2.3)
    """
    reply = request.reply(ra=1, aa=1 if authoritative else 0)
    reply.add_answer(
        RR(
            rname=request.q.qname,
            rtype=QTYPE.A,
            rclass=CLASS.IN,
            ttl=ANSWER_TTL,
            rdata=A(address),
        )
    )
    return reply.pack()


class ResolutionEngine:
    """
    Resolves one query at a time; holds no per-query state.

    Order of resolution for an A query:
      1. the address cache (when one is configured),
      2. the private zone table,
      3. the upstream forwarder.

    Inputs:
      - zones: ZoneTable built at startup (read-only).
      - forwarder: UpstreamForwarder for non-private names.
      - cache: optional CachePlugin; None disables caching.
      - forward_mode: "answer" or "passthrough".
      - unresolved: "zero" or "drop" (answer mode only).

    Example use:
        >>> engine = ResolutionEngine(ZoneTable.from_config({"internal": {"db": "10.1.2.3"}}),
        ...                           UpstreamForwarder("192.0.2.53"))
        >>> wire = engine.handle(DNSRecord.question("db.internal").pack(), "127.0.0.1")
        >>> str(DNSRecord.parse(wire).a.rdata)
        '10.1.2.3'
    """

    def __init__(
        self,
        zones: ZoneTable,
        forwarder: UpstreamForwarder,
        cache: Optional[CachePlugin] = None,
        *,
        forward_mode: str = "answer",
        unresolved: str = "zero",
    ) -> None:
        self.zones = zones
        self.forwarder = forwarder
        self.cache: CachePlugin = cache if cache is not None else NullCache()
        self.forward_mode = str(forward_mode).lower()
        self.unresolved = str(unresolved).lower()

        if self.forward_mode not in ("answer", "passthrough"):
            raise ValueError(f"unknown forward_mode {forward_mode!r}")
        if self.unresolved not in ("zero", "drop"):
            raise ValueError(f"unknown unresolved policy {unresolved!r}")
        if self.cache.enabled and self.forward_mode != "answer":
            raise ValueError("a cache requires forward_mode 'answer'")

        self._cache_writer: Optional[ThreadPoolExecutor] = None
        self._pending_writes = threading.BoundedSemaphore(MAX_PENDING_CACHE_WRITES)
        if self.cache.enabled:
            self._cache_writer = ThreadPoolExecutor(
                max_workers=2, thread_name_prefix="splitdns-cache"
            )

    def handle(self, data: bytes, client_ip: str) -> Optional[bytes]:
        """
        Resolve one datagram.

        Args:
            data: Raw query bytes.
            client_ip: Source IP of the datagram.
        Returns:
            Response bytes to send back, or None to send nothing.
        """
        query = parse_query(data, client_ip)
        if query is None:
            return None

        if query.qtype != QTYPE.A:
            logger.info(
                "Unsupported dns request type %s for %s from %s",
                query.type_name,
                query.name,
                client_ip,
            )
            return None

        if self.cache.enabled:
            cached = self._cache_lookup(query.name)
            if cached is not None:
                logger.debug("Cache hit %s -> %s", query.name, cached)
                return build_a_response(query.request, cached, authoritative=False)

        private_address, is_private = self.zones.lookup(query.name)
        if is_private:
            address = format_ipv4(private_address)
            logger.debug("Private %s -> %s for %s", query.name, address, client_ip)
            return build_a_response(query.request, address, authoritative=True)

        if self.forward_mode == "passthrough":
            return self.forwarder.relay(query.raw)

        address = self.forwarder.resolve(query.raw)
        if address is None:
            if self.unresolved == "drop":
                logger.info("Unresolved %s for %s; dropping", query.name, client_ip)
                return None
            logger.info(
                "Unresolved %s for %s; answering %s",
                query.name,
                client_ip,
                UNRESOLVED_ADDRESS,
            )
            return build_a_response(
                query.request, UNRESOLVED_ADDRESS, authoritative=False
            )

        wire = build_a_response(query.request, address, authoritative=False)
        if self.cache.enabled:
            self._cache_store_async(query.name, address)
        return wire

    def _cache_lookup(self, name: str) -> Optional[str]:
        """Brief: Cache read where any error or malformed value counts as a miss."""

        try:
            value = self.cache.get(name)
        except Exception as e:
            logger.warning("Cache lookup for %s failed: %s", name, e)
            return None
        if value is None:
            return None
        try:
            return str(ipaddress.IPv4Address(str(value).strip()))
        except ValueError:
            logger.warning("Ignoring malformed cached value %r for %s", value, name)
            return None

    def _cache_store(self, name: str, address: str) -> None:
        try:
            self.cache.set(name, address)
        except Exception as e:
            logger.warning("Cache store for %s failed: %s", name, e)
        finally:
            self._pending_writes.release()

    def _cache_store_async(self, name: str, address: str) -> None:
        """Brief: Queue a best-effort cache write off the response path."""

        if self._cache_writer is None:
            return
        if not self._pending_writes.acquire(blocking=False):
            logger.debug("Cache write backlog full; not caching %s", name)
            return
        try:
            self._cache_writer.submit(self._cache_store, name, address)
        except RuntimeError as e:
            # Executor already shut down.
            self._pending_writes.release()
            logger.debug("Skipping cache store for %s: %s", name, e)

    def close(self) -> None:
        """Brief: Wait for queued cache writes and release the cache client."""

        if self._cache_writer is not None:
            self._cache_writer.shutdown(wait=True)
        self.cache.close()
