"""
Client-side session context.

The bearer token lives in an injected TokenStorage, so the same client code
runs against process memory (tests, scripts) or a file on disk (CLI use).
"""

import os
from pathlib import Path
from typing import Optional, Protocol, Union

from herbario.logging_config import get_logger

logger = get_logger(__name__)


class TokenStorage(Protocol):
    """Where a session token is kept between requests."""

    def load(self) -> Optional[str]: ...

    def save(self, token: str) -> None: ...

    def clear(self) -> None: ...


class MemoryTokenStorage:
    """Token kept in process memory only."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStorage:
    """Token persisted to a file readable only by the current user."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        try:
            token = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return token or None

    def save(self, token: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(token, encoding="utf-8")
        os.chmod(self.path, 0o600)

    def clear(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            logger.debug("No stored token to clear at %s", self.path)


class SessionContext:
    """Explicit session state handed to whatever needs the current token."""

    def __init__(self, storage: Optional[TokenStorage] = None):
        self.storage: TokenStorage = storage or MemoryTokenStorage()

    @property
    def token(self) -> Optional[str]:
        return self.storage.load()

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def set_token(self, token: str) -> None:
        self.storage.save(token)

    def clear(self) -> None:
        self.storage.clear()
