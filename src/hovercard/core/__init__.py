"""Core models, extraction and resolution for HoverCard."""

from .cache import PreviewCache
from .extractor import extract
from .models import DisplayState, ErrorCard, HoverSession, LoadingCard, PreviewRecord
from .resolver import FetchError, MetadataResolver
from .settings import Settings

__all__ = [
    "DisplayState",
    "ErrorCard",
    "FetchError",
    "HoverSession",
    "LoadingCard",
    "MetadataResolver",
    "PreviewCache",
    "PreviewRecord",
    "Settings",
    "extract",
]
