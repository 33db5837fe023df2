"""PostHog analytics service for auth event tracking."""

import logging

from posthog import Posthog

logger = logging.getLogger(__name__)


class PostHogService:
    """
    Tracks analytics events via PostHog.

    Without an API key every call is a no-op, which is the default for
    local development and tests.
    """

    def __init__(self, api_key: str | None = None, host: str = "https://app.posthog.com") -> None:
        self._client = Posthog(api_key, host=host) if api_key else None

    def capture(self, distinct_id: str, event: str, properties: dict | None = None) -> None:
        """
        Track an event.

        Args:
            distinct_id: Firebase UID, or "anonymous" before verification
            event: Event name (e.g., "user_authenticated", "user_created")
            properties: Optional event properties

        Example:
            >>> service = PostHogService(settings.posthog_api_key)
            >>> service.capture("uid-123", "user_created", {"email": "a@b.c"})
        """
        if self._client is None:
            return

        try:
            self._client.capture(distinct_id=distinct_id, event=event, properties=properties or {})
        except Exception as e:
            logger.warning(f"PostHog capture failed: {e}", extra={"event": event})

    def shutdown(self) -> None:
        """Flush queued events. Called during application shutdown."""
        if self._client is not None:
            self._client.shutdown()
