"""splitdns package

Split-horizon DNS resolver: private zones answered from a local table, every
other A query forwarded to an upstream resolver.
"""

__version__ = "0.1.0"
