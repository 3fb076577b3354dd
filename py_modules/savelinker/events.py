"""Operation records and the reporter callback interface.

Components never print. They return ordered lists of ``Operation`` records
(and, for batch work, notify a caller-supplied ``Reporter``); the CLI's
console reporter is just one implementation.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import LinkError


class OpType(str, Enum):
    DELETE = "delete"
    MOVE = "move"
    LINK = "link"
    CREATE = "create"
    NOOP = "noop"


# Reason codes
NOT_A_DIR = "not_a_dir"
ALREADY_IN_SAVES = "already_in_saves"
WRONG_SYMLINK = "wrong_symlink"
EMPTY_DIR = "empty_dir"
ALREADY_LINKED = "already_linked"
SAME_PATH = "same_path"
NESTED_PATH = "nested_path"
UNKNOWN = "unknown"
NO_SAVES = "no_saves"
NO_EXE = "no_exe"
EXE_NOT_FOUND = "exe_not_found"
NEW_SHORTCUT = "new_shortcut"
SHORTCUT_UPDATED = "shortcut_updated"


@dataclass(frozen=True)
class Operation:
    """One applied (or, in dry-run mode, would-be-applied) step."""
    type: OpType
    item: Optional[str] = None  # target path for delete / create / noop
    src: Optional[str] = None  # "from" for move / link
    dst: Optional[str] = None  # "to" for move / link
    reason: Optional[str] = None

    @classmethod
    def delete(cls, path: str, reason: str) -> "Operation":
        return cls(OpType.DELETE, item=path, reason=reason)

    @classmethod
    def move(cls, src: str, dst: str) -> "Operation":
        return cls(OpType.MOVE, src=src, dst=dst)

    @classmethod
    def link(cls, src: str, dst: str) -> "Operation":
        return cls(OpType.LINK, src=src, dst=dst)

    @classmethod
    def create(cls, path: str, reason: Optional[str] = None) -> "Operation":
        return cls(OpType.CREATE, item=path, reason=reason)

    @classmethod
    def noop(cls, reason: str, path: Optional[str] = None) -> "Operation":
        return cls(OpType.NOOP, item=path, reason=reason)

    def to_dict(self) -> Dict[str, Any]:
        data = {k: v for k, v in asdict(self).items() if v is not None}
        data["type"] = self.type.value
        return data


@dataclass
class ItemResult:
    """Outcome of one component for one game."""
    name: str
    operations: List[Operation] = field(default_factory=list)
    error: Optional[LinkError] = None
    value: Any = None  # e.g. the shortcut appid

    @property
    def ok(self) -> bool:
        return self.error is None


class Reporter:
    """Receives per-game notifications. All methods are no-ops by default."""

    def game_start(self, name: str, item: Any) -> None:
        pass

    def game_info(self, name: str, operation: Operation) -> None:
        pass

    def game_error(self, name: str, error: LinkError) -> None:
        pass

    def game_end(self, name: str, result: ItemResult) -> None:
        pass

    def error(self, error: LinkError) -> None:
        """Run-level failure not tied to a single game."""
        pass


class RecordingReporter(Reporter):
    """Keeps every notification in order. Handy for tests and JSON output."""

    def __init__(self):
        self.events: List[tuple] = []

    def game_start(self, name, item):
        self.events.append(("start", name))

    def game_info(self, name, operation):
        self.events.append(("info", name, operation))

    def game_error(self, name, error):
        self.events.append(("error", name, error))

    def game_end(self, name, result):
        self.events.append(("end", name))

    def error(self, error):
        self.events.append(("run_error", error))


def emit_result(reporter: Reporter, result: ItemResult) -> None:
    """Replay a finished item's records and error through ``reporter``."""
    for op in result.operations:
        reporter.game_info(result.name, op)
    if result.error is not None:
        reporter.game_error(result.name, result.error)
