from __future__ import annotations

from typing import Optional

# Resolved addresses are kept for a fixed 12 hours; no sliding expiry.
CACHE_TTL_SECONDS = 12 * 60 * 60


def cache_aliases(*aliases: str):
    """Brief: Decorator to set the aliases a cache plugin is registered under.

    Inputs:
      - *aliases: Variable number of alias strings.

    Outputs:
      - Callable that applies the aliases to a CachePlugin subclass and returns it.

    Example:
      >>> from splitdns.cache_plugins.base import CachePlugin, cache_aliases
      >>> @cache_aliases('none', 'null')
      ... class NullCache(CachePlugin):
      ...     pass
      >>> NullCache.aliases
      ('none', 'null')
    """

    def _wrap(cls: type) -> type:
        cls.aliases = tuple(aliases)
        return cls

    return _wrap


class CachePlugin:
    """Base class for resolved-address caches.

    Brief:
      Maps a normalized FQDN (``example.com.``) to the dotted IPv4 address an
      upstream resolved it to. Every entry lives for ``ttl`` seconds, which
      defaults to CACHE_TTL_SECONDS. Subclasses implement get() and set().

    Inputs:
      - None.

    Outputs:
      - CachePlugin instance.
    """

    aliases: tuple[str, ...] = ()
    ttl: int = CACHE_TTL_SECONDS

    # False for the disabled cache so the resolver can skip cache work.
    enabled: bool = True

    def get(self, name: str) -> Optional[str]:
        """Brief: Lookup a cached address.

        Inputs:
          - name: normalized FQDN.

        Outputs:
          - Optional[str]: dotted IPv4 address if present and not expired.
        """

        raise NotImplementedError("CachePlugin.get() must be implemented by a subclass")

    def set(self, name: str, address: str) -> None:
        """Brief: Store an address under name for ``self.ttl`` seconds.

        Inputs:
          - name: normalized FQDN.
          - address: dotted IPv4 address.

        Outputs:
          - None.
        """

        raise NotImplementedError("CachePlugin.set() must be implemented by a subclass")

    def close(self) -> None:
        """Brief: Release any connections held by the cache (default no-op)."""

        return None
