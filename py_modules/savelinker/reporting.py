"""Console reporter for the command line, built on rich."""

import os
import logging
from typing import Any, Optional

from rich.console import Console
from rich.logging import RichHandler
from rich.theme import Theme

from .errors import LinkError
from .events import ItemResult, Operation, OpType, Reporter, ALREADY_LINKED

theme = Theme({
    "game": "bold magenta",
    "cloud": "blue",
    "local": "yellow",
    "deleted": "red",
    "ok": "green",
    "error": "bold red",
    "dim": "dim",
})


def setup_logging(verbose: bool = False, console: Optional[Console] = None) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console or Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


class ConsoleReporter(Reporter):
    """Prints one block per game, paths shown relative to the home dir"""

    def __init__(self, home_dir: str, console: Optional[Console] = None):
        self.home_dir = home_dir
        self.console = console or Console(theme=theme, highlight=False)
        self.failed = 0

    def nice_path(self, path: Optional[str]) -> str:
        if not path:
            return ""
        try:
            rel = os.path.relpath(path, self.home_dir)
        except ValueError:
            return path  # different drive
        return path if rel.startswith("..") else rel

    def game_start(self, name: str, item: Any) -> None:
        self.console.print(f"[game]{name}[/game]")

    def game_info(self, name: str, op: Operation) -> None:
        p = self.nice_path
        if op.type is OpType.DELETE:
            line = f"[deleted]deleted[/deleted] {p(op.item)} [dim]({op.reason})[/dim]"
        elif op.type is OpType.MOVE:
            line = f"moved [local]{p(op.src)}[/local] to [cloud]{p(op.dst)}[/cloud]"
        elif op.type is OpType.LINK:
            line = f"linked [local]{p(op.dst)}[/local] to [cloud]{p(op.src)}[/cloud]"
        elif op.type is OpType.CREATE:
            line = f"[ok]created[/ok] {p(op.item)}"
        elif op.reason == ALREADY_LINKED:
            line = f"[ok]{p(op.item)} is already linked[/ok]"
        else:
            line = f"[dim]nothing to do ({op.reason}) {p(op.item)}[/dim]"
        self.console.print(f"\t{line}")

    def game_error(self, name: str, error: LinkError) -> None:
        self.failed += 1
        self.console.print(f"\t[error]{error.code}[/error] {self.nice_path(error.path)} {error.message}")

    def game_end(self, name: str, result: ItemResult) -> None:
        if result.value is not None:
            self.console.print(f"\t[dim]appid {result.value}[/dim]")

    def error(self, error: LinkError) -> None:
        self.failed += 1
        self.console.print(f"[error]{error.code}[/error] {error.path or ''} {error.message}")
