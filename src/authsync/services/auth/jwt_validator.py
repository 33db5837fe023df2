"""Local Firebase ID token verification using cached signing keys."""

import logging
import time
from typing import Any

from jose import JWTError, jwt

from src.authsync.services.auth.jwks import JWKSCache

logger = logging.getLogger(__name__)

MAX_SUBJECT_LENGTH = 128


class JWTValidator:
    """
    Verifies Firebase ID tokens without calling Firebase.

    Checks the RS256 signature against the cached key set, then the
    registered claims (exp, iat, aud, iss) and the Firebase-specific rules:
    the subject must be a non-empty string of at most 128 characters and
    `auth_time` must not lie in the future.

    Attributes:
        jwks_cache: Key cache used to resolve the `kid` header
        issuer: Expected `iss` (https://securetoken.google.com/<project-id>)
        audience: Expected `aud` (the Firebase project id)
        leeway: Clock skew tolerance in seconds

    Example:
        >>> validator = JWTValidator(cache, issuer, audience="my-project")
        >>> claims = await validator.verify_token(id_token)
        >>> claims["sub"]
        'Xk2...'
    """

    def __init__(self, jwks_cache: JWKSCache, issuer: str, audience: str, leeway: int = 10):
        self.jwks_cache = jwks_cache
        self.issuer = issuer
        self.audience = audience
        self.leeway = leeway

    async def verify_token(self, token: str) -> dict[str, Any]:
        """
        Verify an ID token and return its claims.

        Args:
            token: Raw ID token (without "Bearer " prefix)

        Returns:
            Verified claims dictionary

        Raises:
            JWTError: If the token is malformed, expired, mis-signed or
                violates any Firebase claim rule
        """
        try:
            unverified_header = jwt.get_unverified_header(token)
            kid = unverified_header.get("kid")
            if not kid:
                raise JWTError("JWT header missing 'kid' (key ID)")

            signing_key = await self.jwks_cache.get_signing_key(kid)

            claims = jwt.decode(
                token,
                signing_key,
                algorithms=["RS256"],
                audience=self.audience,
                issuer=self.issuer,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iat": True,
                    "verify_aud": True,
                    "verify_iss": True,
                    "require_exp": True,
                    "require_iat": True,
                    "require_sub": True,
                    "leeway": self.leeway,
                },
            )
            self._check_firebase_claims(claims)

            logger.debug(
                "ID token verified",
                extra={"user_id": claims.get("sub"), "kid": kid, "exp": claims.get("exp")},
            )
            return claims

        except JWTError as e:
            logger.warning(
                f"ID token verification failed: {e}",
                extra={"error_type": "jwt_verification_failed", "error": str(e)},
            )
            raise

        except Exception as e:
            logger.error(
                f"Unexpected error during ID token verification: {e}",
                exc_info=True,
                extra={"error_type": "jwt_verification_error"},
            )
            raise JWTError(f"JWT verification error: {e}") from e

    def _check_firebase_claims(self, claims: dict[str, Any]) -> None:
        subject = claims.get("sub")
        if not isinstance(subject, str) or not subject:
            raise JWTError("ID token has an empty 'sub' claim")
        if len(subject) > MAX_SUBJECT_LENGTH:
            raise JWTError("ID token has a 'sub' claim longer than 128 characters")

        auth_time = claims.get("auth_time")
        if isinstance(auth_time, (int, float)) and auth_time > time.time() + self.leeway:
            raise JWTError("ID token has an 'auth_time' in the future")
