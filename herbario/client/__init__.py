"""
Python client for the Herbario API.
"""

from herbario.client.api_client import ApiResult, HerbarioClient
from herbario.client.session import (
    FileTokenStorage,
    MemoryTokenStorage,
    SessionContext,
    TokenStorage,
)

__all__ = [
    "ApiResult",
    "HerbarioClient",
    "FileTokenStorage",
    "MemoryTokenStorage",
    "SessionContext",
    "TokenStorage",
]
