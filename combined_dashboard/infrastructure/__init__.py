"""Infrastructure layer exports."""

from .cache import CardMetadataCache
from .metabase import AuthError, MetabaseClient, MetabaseError, MetabaseSession, UpstreamUnavailable

__all__ = [
    "AuthError",
    "CardMetadataCache",
    "MetabaseClient",
    "MetabaseError",
    "MetabaseSession",
    "UpstreamUnavailable",
]
