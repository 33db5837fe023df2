"""Signing key fetching and caching for Firebase ID token verification."""

import logging
from datetime import UTC, datetime

import httpx
from jose import jwk
from jose.backends.base import Key

logger = logging.getLogger(__name__)


class JWKSCache:
    """
    Keeps the identity provider's public signing keys in memory.

    Firebase rotates the keys that sign ID tokens every few hours and
    publishes them as a JSON Web Key Set. Keys are cached for `cache_ttl`
    seconds and refetched on expiry or when a token names a key id the cache
    has never seen.

    Attributes:
        jwks_url: URL of the JSON Web Key Set
        cache_ttl: Cache time-to-live in seconds
        _keys: Cached keys by key id
        _last_refresh: Time of the last successful fetch
        _http_client: HTTP client used for fetching

    Example:
        >>> cache = JWKSCache(FIREBASE_JWKS_URL)
        >>> await cache.refresh_keys()
        >>> key = await cache.get_signing_key("a1b2c3")
    """

    def __init__(self, jwks_url: str, cache_ttl: int = 3600, timeout: float = 10.0):
        self.jwks_url = jwks_url
        self.cache_ttl = cache_ttl
        self._keys: dict[str, Key] = {}
        self._last_refresh: datetime | None = None
        self._http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def get_signing_key(self, kid: str) -> Key:
        """
        Get the public key for a key id, refreshing the cache when needed.

        Raises:
            ValueError: If the key id is still unknown after a refresh
            httpx.HTTPError: If the key set cannot be fetched
        """
        if self._needs_refresh():
            await self.refresh_keys()

        key = self._keys.get(kid)

        # Unknown kid usually means the provider rotated keys since the last fetch
        if key is None:
            logger.warning(
                f"Key ID '{kid}' not found in cache, refreshing JWKS",
                extra={"kid": kid, "cached_kids": list(self._keys.keys())},
            )
            await self.refresh_keys()
            key = self._keys.get(kid)

        if key is None:
            raise ValueError(f"Key ID '{kid}' not found in JWKS")

        return key

    async def refresh_keys(self) -> None:
        """
        Fetch the key set and replace the cache.

        Keys without a `kid` or that are not RSA signing keys are skipped.

        Raises:
            httpx.HTTPError: If the HTTP request fails
        """
        try:
            logger.info(f"Fetching JWKS from {self.jwks_url}")
            response = await self._http_client.get(self.jwks_url)
            response.raise_for_status()
            keys_list = response.json().get("keys", [])
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to fetch JWKS from {self.jwks_url}: {e}",
                exc_info=True,
                extra={"error_type": "jwks_fetch_failed"},
            )
            raise

        new_keys: dict[str, Key] = {}
        for key_data in keys_list:
            kid = key_data.get("kid")
            if not kid:
                logger.warning("JWKS key missing 'kid', skipping")
                continue
            if key_data.get("kty") != "RSA":
                logger.warning(f"Skipping non-RSA key {kid}", extra={"kid": kid})
                continue

            new_keys[kid] = jwk.construct(key_data, algorithm="RS256")

        if not new_keys:
            logger.warning(
                "JWKS response contains no usable keys; token verification will fail",
                extra={"jwks_url": self.jwks_url},
            )

        # Swap in one assignment so readers never see a partial key set
        self._keys = new_keys
        self._last_refresh = datetime.now(UTC)

        logger.info(
            "JWKS cache refreshed",
            extra={"key_count": len(new_keys), "key_ids": list(new_keys.keys())},
        )

    def _needs_refresh(self) -> bool:
        if self._last_refresh is None:
            return True

        age = (datetime.now(UTC) - self._last_refresh).total_seconds()
        return age >= self.cache_ttl

    async def close(self) -> None:
        """Close the HTTP client. Called during application shutdown."""
        await self._http_client.aclose()
        logger.info("JWKS cache closed")
