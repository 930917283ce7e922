"""
Brief: Unit tests for the UDP upstream transport using a local UDP stub server.

Inputs:
  - None

Outputs:
  - None
"""

import socket
import threading
import time

import pytest

from splitdns.servers.transports.udp import UDPError, udp_query


class _UDPStub:
    def __init__(self, reply=None, family=socket.AF_INET, host="127.0.0.1"):
        self.sock = socket.socket(family, socket.SOCK_DGRAM)
        self.sock.bind((host, 0))
        self.addr = self.sock.getsockname()
        self.reply = reply
        self.received = []
        self._stop = False
        self.thread = threading.Thread(target=self._loop, daemon=True)

    def start(self):
        self.thread.start()
        time.sleep(0.02)

    def _loop(self):
        while not self._stop:
            try:
                self.sock.settimeout(0.2)
                data, peer = self.sock.recvfrom(4096)
            except Exception:
                continue
            self.received.append(data)
            try:
                self.sock.sendto(self.reply if self.reply is not None else data, peer)
            except Exception:
                pass

    def close(self):
        self._stop = True
        try:
            self.sock.close()
        except Exception:
            pass


@pytest.fixture(scope="module")
def udp_stub():
    s = _UDPStub()
    s.start()
    try:
        yield s
    finally:
        s.close()


def test_udp_query_roundtrip(udp_stub):
    q = b"\x12\x34hello"
    resp = udp_query(udp_stub.addr[0], udp_stub.addr[1], q, timeout_ms=500)
    assert resp == q
    assert q in udp_stub.received


def test_udp_query_reads_large_datagrams():
    """
    Brief: Responses larger than 512 bytes are not truncated.

    Inputs:
      - stub replying with a 3000-byte datagram

    Outputs:
      - None
    """
    stub = _UDPStub(reply=b"\xab" * 3000)
    stub.start()
    try:
        resp = udp_query(stub.addr[0], stub.addr[1], b"\x00\x01", timeout_ms=500)
    finally:
        stub.close()
    assert len(resp) == 3000


def test_udp_query_times_out_on_silent_upstream():
    """
    Brief: A bound socket that never replies yields UDPError after the deadline.

    Inputs:
      - silent socket on 127.0.0.1

    Outputs:
      - None
    """
    silent = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
    silent.bind(("127.0.0.1", 0))
    try:
        start = time.monotonic()
        with pytest.raises(UDPError):
            udp_query("127.0.0.1", silent.getsockname()[1], b"\x12\x34", timeout_ms=100)
        assert time.monotonic() - start < 2.0
    finally:
        silent.close()



def test_udp_query_reaches_ipv6_upstream():
    """
    Brief: An IPv6 upstream address gets an AF_INET6 socket.

    Inputs:
      - stub bound to ::1 (skipped when the host has no IPv6 loopback)

    Outputs:
      - None
    """
    try:
        stub = _UDPStub(family=socket.AF_INET6, host="::1")
    except OSError:
        pytest.skip("IPv6 loopback not available")
    stub.start()
    try:
        resp = udp_query("::1", stub.addr[1], b"\x56\x78v6", timeout_ms=500)
    finally:
        stub.close()
    assert resp == b"\x56\x78v6"
