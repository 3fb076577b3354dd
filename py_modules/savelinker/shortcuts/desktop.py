"""
Desktop shortcuts for configured games.

On Windows every ``.lnk`` is created through one batched PowerShell script
(WScript.Shell); elsewhere a freedesktop ``.desktop`` file is written per
game. Either way the result per game is a ``create`` record or a ``noop``
explaining why nothing was made.
"""

import os
import asyncio
import logging
import functools
import subprocess
from typing import Callable, Dict, List, Optional, Tuple

from ..config import IS_WINDOWS, GameItem, LinkerConfig
from ..errors import LinkIOError
from ..events import ItemResult, Operation, Reporter, emit_result, EXE_NOT_FOUND, NO_EXE
from ..saves.paths import exe_start_dir, resolve_exe_path

logger = logging.getLogger(__name__)


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def powershell_script(shortcut_path: str, target: str, arguments: str, icon: str,
                      working_dir: str, description: str) -> str:
    """PowerShell snippet creating one .lnk file"""
    lines = [
        "$WshShell = New-Object -ComObject WScript.Shell;",
        f"$Shortcut = $WshShell.CreateShortcut({_ps_quote(os.path.normpath(shortcut_path))});",
        f"$Shortcut.TargetPath = {_ps_quote(os.path.normpath(target))};",
        f"$Shortcut.Arguments = {_ps_quote(arguments)};",
        f"$Shortcut.IconLocation = {_ps_quote(icon + ',0' if icon else '')};",
        f"$Shortcut.WorkingDirectory = {_ps_quote(os.path.normpath(working_dir))};",
        f"$Shortcut.Description = {_ps_quote(description)};",
        "$Shortcut.Save();",
    ]
    return "\n".join(lines)


def _exec_quote(value: str) -> str:
    for ch in ('\\', '"', '`', '$'):
        value = value.replace(ch, '\\' + ch)
    return f'"{value}"'


def desktop_entry(name: str, target: str, arguments: str, icon: str,
                  working_dir: str, description: str) -> str:
    """Contents of a freedesktop .desktop launcher"""
    exec_line = _exec_quote(target) + (f" {arguments}" if arguments else "")
    lines = [
        "[Desktop Entry]",
        "Type=Application",
        f"Name={name}",
        f"Comment={description}",
        f"Exec={exec_line}",
        f"Path={working_dir}",
    ]
    if icon:
        lines.append(f"Icon={icon}")
    lines.append("Terminal=false")
    return "\n".join(lines) + "\n"


def write_desktop_file(path: str, contents: str) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(contents)
    os.chmod(path, 0o755)


class DesktopShortcuts:
    """Creates one desktop shortcut per game that has an executable"""

    def __init__(self, config: LinkerConfig, windows: bool = IS_WINDOWS,
                 run: Callable = subprocess.run):
        self.config = config
        self.windows = windows
        self._run = run

    async def _io(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _icon_for(self, name: str) -> str:
        if not self.config.icon_dir:
            return ""
        icon_path = os.path.join(self.config.icon_dir, f"{name}.ico")
        return icon_path if os.path.exists(icon_path) else ""

    def shortcut_location(self, name: str) -> str:
        ext = ".lnk" if self.windows else ".desktop"
        return os.path.join(self.config.shortcuts_dir, f"{name}{ext}")

    async def process(self, games: Dict[str, GameItem], reporter: Optional[Reporter] = None) -> List[ItemResult]:
        """
        Create shortcuts for ``games``.

        On Windows the ``.lnk`` files only exist once the batched PowerShell
        call succeeds, so results are reported after it ran. If it fails,
        every game waiting on it gets the LinkIOError instead of a record.
        """
        reporter = reporter or Reporter()
        cfg = self.config
        results: List[ItemResult] = []
        scripts: List[str] = []
        pending: List[Tuple[ItemResult, str]] = []

        for name, item in games.items():
            result = ItemResult(name)

            if item.exe is None:
                result.operations.append(Operation.noop(NO_EXE))
            else:
                exe_full = resolve_exe_path(name, item.exe, cfg.games_dir, cfg.home_dir)
                if not await self._io(os.path.exists, exe_full):
                    result.operations.append(Operation.noop(EXE_NOT_FOUND, exe_full))
                else:
                    location = self.shortcut_location(name)
                    working_dir = exe_start_dir(name, item.exe, cfg.games_dir, cfg.home_dir)
                    icon = await self._io(self._icon_for, name)
                    if self.windows:
                        scripts.append(powershell_script(
                            location, exe_full, item.args, icon, working_dir, cfg.app_name))
                        pending.append((result, location))
                    else:
                        contents = desktop_entry(name, exe_full, item.args, icon, working_dir, cfg.app_name)
                        try:
                            if not cfg.dry_run:
                                await self._io(write_desktop_file, location, contents)
                            result.operations.append(Operation.create(location))
                        except OSError as e:
                            result.error = LinkIOError(location, f"cannot write shortcut: {e}")

            results.append(result)

        batch_error: Optional[LinkIOError] = None
        if scripts and not cfg.dry_run:
            try:
                await self._io(self._run_powershell, "\n".join(scripts))
            except LinkIOError as e:
                logger.error(f"[DesktopShortcuts] {e}")
                batch_error = e
        for result, location in pending:
            if batch_error is None:
                result.operations.append(Operation.create(location))
            else:
                result.error = LinkIOError(location, batch_error.message)

        for (name, item), result in zip(games.items(), results):
            reporter.game_start(name, item)
            emit_result(reporter, result)
            reporter.game_end(name, result)
        return results

    def _run_powershell(self, script: str) -> None:
        try:
            self._run(
                ["powershell", "-NoProfile", "-NonInteractive", "-Command", script],
                check=True, capture_output=True, text=True,
            )
        except (OSError, subprocess.CalledProcessError) as e:
            stderr = getattr(e, "stderr", "") or ""
            raise LinkIOError(self.config.shortcuts_dir, f"powershell failed: {e} {stderr[:300]}") from e
        logger.info(f"[DesktopShortcuts] Created shortcuts in {self.config.shortcuts_dir}")
