"""Shared services module for external integrations."""

from src.authsync.services.analytics.posthog import PostHogService

__all__ = [
    "PostHogService",
]
