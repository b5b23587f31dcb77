"""Pull request timeline fetching."""

from .cached import CacheOrchestrator
from .fetcher import (
    RESOURCES,
    FetchContext,
    FetchOrchestrator,
    ResourceSpec,
    SubFetchResult,
)

__all__ = [
    "RESOURCES",
    "CacheOrchestrator",
    "FetchContext",
    "FetchOrchestrator",
    "ResourceSpec",
    "SubFetchResult",
]
