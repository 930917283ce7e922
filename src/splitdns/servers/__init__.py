"""Listener, resolution engine and upstream forwarding for splitdns.

Brief:
    Groups the UDP listener, the per-query resolution engine and the
    upstream forwarder under the ``splitdns.servers`` namespace.
"""
