"""Token verifier contract used by the sync operation and the auth gate."""

import asyncio
import logging
from typing import Protocol

from src.authsync.services.auth.exceptions import InvalidTokenError
from src.authsync.services.auth.jwt_validator import JWTValidator
from src.authsync.services.auth.models import IdentityClaims

logger = logging.getLogger(__name__)


class TokenVerifier(Protocol):
    """Turns an opaque identity token into verified claims."""

    async def verify(self, token: str) -> IdentityClaims:
        """
        Verify a token.

        Raises:
            InvalidTokenError: On any failure, including provider outages
        """
        ...


class FirebaseTokenVerifier:
    """
    Verifies Firebase ID tokens and returns typed claims.

    Never retries: the key cache refreshes at most once per unknown key id,
    and anything beyond that is a failure. Network errors, timeouts and
    rejected tokens all surface as the same InvalidTokenError.

    Example:
        >>> verifier = FirebaseTokenVerifier(validator, timeout=5.0)
        >>> claims = await verifier.verify(id_token)
        >>> claims.subject_id
    """

    def __init__(self, validator: JWTValidator, timeout: float = 10.0):
        self.validator = validator
        self.timeout = timeout

    async def verify(self, token: str) -> IdentityClaims:
        try:
            raw_claims = await asyncio.wait_for(
                self.validator.verify_token(token), timeout=self.timeout
            )
        except TimeoutError as e:
            logger.warning(
                "ID token verification timed out",
                extra={"error_type": "verification_timeout", "timeout": self.timeout},
            )
            raise InvalidTokenError() from e
        except Exception as e:
            raise InvalidTokenError() from e

        return IdentityClaims.from_claims(raw_claims)

    async def close(self) -> None:
        """Release the key cache's HTTP client."""
        await self.validator.jwks_cache.close()
