"""Common utilities."""

from .async_http import AsyncHTTPClient
from .cancel import CancellationToken
from .locks import VersionLockTable
from .logger import setup_logging
from .platform_facts import PlatformFacts
from .progress import ProgressChannel, ProgressEvent
from .retry import retry_async

__all__ = [
    "AsyncHTTPClient",
    "CancellationToken",
    "PlatformFacts",
    "ProgressChannel",
    "ProgressEvent",
    "VersionLockTable",
    "retry_async",
    "setup_logging",
]
