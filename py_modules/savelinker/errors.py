"""Error types raised by the save linker and the Steam shortcut sync.

Every error carries the offending path and a stable reason code so the
reporter can print something actionable without parsing messages.
"""

from typing import List, Optional


class LinkError(Exception):
    """Base error for all save-game-linker failures."""

    code = "link_error"

    def __init__(self, path: Optional[str], message: str = "", code: Optional[str] = None):
        super().__init__(message or path or "")
        self.path = path
        self.message = message
        if code:
            self.code = code
        # Operation records applied before the failure (set by the raiser)
        self.operations: List = []

    def __str__(self) -> str:
        if self.path and self.message:
            return f"{self.code}: {self.path}: {self.message}"
        return f"{self.code}: {self.path or self.message}"


class LinkIOError(LinkError):
    """A delete / move / link / write failed for a reason outside our model."""

    code = "io_failure"


class DecodeError(LinkError):
    """shortcuts.vdf or the collection store could not be parsed."""

    code = "decode_failure"


class DependencyUnavailableError(LinkError):
    """The collection store could not be opened (usually Steam holds the lock)."""

    code = "dependency_unavailable"


class ExeNotFoundError(LinkError):
    code = "exe_not_found"


class ConfigError(LinkError):
    code = "config_error"
