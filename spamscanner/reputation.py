"""
DNS-over-HTTPS blocklist lookups.

Resolves a hostname through a filtering resolver (Cloudflare for Families by
default). The resolver answers NXDOMAIN (Status 3) for hosts on its malware
and phishing blocklists, which is treated as "blocked". Every failure mode
(non-2xx, timeout, bad JSON) fails open: the host is reported as not blocked.
"""

import asyncio
import logging
import threading
from typing import Dict, Optional

import aiohttp

from .config import DEFAULT_DOH_ENDPOINT

logger = logging.getLogger(__name__)

DNS_STATUS_NXDOMAIN = 3


class DNSBlocklistClient:
    """Checks hostnames against a DoH JSON endpoint."""

    def __init__(
        self,
        endpoint: str = DEFAULT_DOH_ENDPOINT,
        timeout: float = 5.0,
        enable_caching: bool = True,
    ):
        self.endpoint = endpoint
        self.timeout = timeout
        self.enable_caching = enable_caching
        # In-memory cache for the process lifetime
        self._cache: Dict[str, bool] = {}
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls, config) -> "DNSBlocklistClient":
        return cls(
            endpoint=config.doh_endpoint,
            timeout=config.dns_timeout,
            enable_caching=config.enable_caching,
        )

    def _get_cached(self, hostname: str) -> Optional[bool]:
        with self._lock:
            return self._cache.get(hostname)

    def _set_cached(self, hostname: str, blocked: bool):
        if not self.enable_caching:
            return
        with self._lock:
            self._cache[hostname] = blocked

    async def is_blocked(self, hostname: str) -> bool:
        """True when the filtering resolver refuses to resolve `hostname`."""
        hostname = (hostname or "").strip().lower().rstrip(".")
        if not hostname:
            return False

        cached = self._get_cached(hostname)
        if cached is not None:
            return cached

        try:
            params = {"name": hostname, "type": "A"}
            headers = {"Accept": "application/dns-json"}
            timeout = aiohttp.ClientTimeout(total=self.timeout)

            async with aiohttp.ClientSession() as session:
                async with session.get(self.endpoint, params=params, headers=headers, timeout=timeout) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        logger.debug(f"DoH lookup for {hostname} returned HTTP {resp.status}")
                        return False
                    data = await resp.json(content_type=None)

            blocked = isinstance(data, dict) and data.get("Status") == DNS_STATUS_NXDOMAIN
            if blocked:
                logger.debug(f"DoH resolver blocked {hostname}")
            self._set_cached(hostname, blocked)
            return blocked

        except asyncio.TimeoutError:
            logger.debug(f"DoH timeout for {hostname}")
        except Exception as e:
            logger.debug(f"DoH error for {hostname}: {e}")

        return False
