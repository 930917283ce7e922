"""Upstream DNS transports.

Brief:
    Only plain DNS-over-UDP is provided; see ``splitdns.servers.transports.udp``.
"""
