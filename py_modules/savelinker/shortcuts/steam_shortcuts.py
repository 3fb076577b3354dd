"""
Steam non-Steam-game shortcut sync.

Merges one shortcut per configured game into the user's shortcuts.vdf and
rebuilds this app's Steam collection:

1. decode the existing container;
2. split it into foreign entries (no app tag) and owned entries (by appid);
3. for each game with an exe, refresh the matching owned entry in place
   (exe, start dir, launch options, icon) or create a new tagged one;
4. write foreign entries first, in their original order, then owned entries
   in game order, re-indexed from zero;
5. replace the membership of this app's collection with every appid written.

The collection store is committed separately; failing to open it (Steam is
running) is reported but never undoes the shortcuts.vdf write.
"""

import os
import asyncio
import logging
import functools
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..config import GameItem, LinkerConfig
from ..errors import (
    ConfigError,
    DecodeError,
    DependencyUnavailableError,
    ExeNotFoundError,
    LinkError,
)
from ..events import (
    ItemResult,
    Operation,
    Reporter,
    emit_result,
    NEW_SHORTCUT,
    NO_EXE,
    SHORTCUT_UPDATED,
)
from ..saves.paths import exe_start_dir, resolve_exe_path
from ..utils.steam_user import (
    collections_leveldb_path,
    find_steam_path,
    get_logged_in_steam_user,
    shortcuts_vdf_path,
)
from .appid import app_id_key, generate_app_id
from .collections_store import CollectionStore, collection_key
from .entry import ShortcutEntry
from .vdf import decode_shortcuts, encode_shortcuts, load_shortcuts_vdf, save_shortcuts_vdf

logger = logging.getLogger(__name__)


@dataclass
class ShortcutSyncReport:
    results: List[ItemResult] = field(default_factory=list)
    shortcuts_written: int = 0
    appids: List[int] = field(default_factory=list)
    collection_error: Optional[LinkError] = None


class SteamShortcutsSync:
    """Keeps this app's entries in shortcuts.vdf and its Steam collection up to date"""

    def __init__(self, config: LinkerConfig):
        self.config = config
        self._steam_dir = config.steam_dir
        self._user_id = config.steam_user_id

    async def _io(self, func, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(func, *args))

    def _steam_path(self) -> Optional[str]:
        if not self._steam_dir:
            self._steam_dir = find_steam_path(self.config.home_dir)
        return self._steam_dir

    def _steam_user(self) -> Optional[str]:
        if not self._user_id and self._steam_path():
            self._user_id = get_logged_in_steam_user(self._steam_path())
        return self._user_id

    def shortcuts_file(self) -> str:
        if self.config.steam_shortcuts_file:
            return self.config.steam_shortcuts_file
        steam_path, user_id = self._steam_path(), self._steam_user()
        if not steam_path or not user_id:
            raise ConfigError(None, "cannot locate shortcuts.vdf; pass --steam-shortcuts-file")
        return shortcuts_vdf_path(steam_path, user_id)

    def collection_store(self) -> CollectionStore:
        leveldb = self.config.steam_leveldb
        if not leveldb and self._steam_path():
            leveldb = collections_leveldb_path(self._steam_path())
        user_id = self._steam_user()
        if not leveldb or not user_id:
            raise DependencyUnavailableError(leveldb, "cannot locate Steam collections database or user")
        return CollectionStore(leveldb, user_id)

    def build_shortcut(self, item: GameItem) -> ShortcutEntry:
        """Fresh owned entry for ``item``. Raises ExeNotFoundError."""
        cfg = self.config
        exe_full = resolve_exe_path(item.name, item.exe, cfg.games_dir, cfg.home_dir)
        if not os.path.exists(exe_full):
            raise ExeNotFoundError(exe_full, "executable not found")

        icon = ""
        if cfg.icon_dir:
            icon_path = os.path.join(cfg.icon_dir, f"{item.name}.ico")
            if os.path.exists(icon_path):
                icon = icon_path

        start_dir = exe_start_dir(item.name, item.exe, cfg.games_dir, cfg.home_dir)
        return ShortcutEntry(
            appid=generate_app_id(app_id_key(item.name, item.exe)),
            appname=item.name,
            exe=f'"{exe_full}"',
            start_dir=f'"{start_dir}"',
            icon=icon,
            launch_options=item.args or "",
            tags={0: cfg.app_name},
        )

    async def synchronize(
        self,
        games: Dict[str, GameItem],
        shortcuts_file: Optional[str] = None,
        collection_store: Optional[CollectionStore] = None,
        reporter: Optional[Reporter] = None,
    ) -> ShortcutSyncReport:
        """
        Merge ``games`` into shortcuts.vdf and rebuild the app collection.

        Raises:
            DecodeError: the existing shortcuts.vdf is unreadable (nothing is written).
            LinkIOError: the shortcuts.vdf write failed.
        """
        reporter = reporter or Reporter()
        app_name = self.config.app_name
        shortcuts_file = shortcuts_file or self.shortcuts_file()

        data = await self._io(load_shortcuts_vdf, shortcuts_file)

        foreign: List[ShortcutEntry] = []
        owned: Dict[int, ShortcutEntry] = {}
        for entry in decode_shortcuts(data):
            if not entry.has_tag(app_name):
                foreign.append(entry)
            elif entry.appid is not None:
                owned[entry.appid] = entry
        logger.info(f"[SteamShortcuts] {shortcuts_file}: {len(foreign)} foreign, {len(owned)} owned shortcuts")

        report = ShortcutSyncReport()
        written: Dict[int, ShortcutEntry] = {}
        for name, item in games.items():
            reporter.game_start(name, item)
            result = ItemResult(name)

            if item.exe is None:
                result.operations.append(Operation.noop(NO_EXE))
            else:
                try:
                    fresh = await self._io(self.build_shortcut, item)
                except ExeNotFoundError as e:
                    logger.warning(f"[SteamShortcuts] {name}: {e}")
                    result.error = e
                else:
                    existing = written.get(fresh.appid) or owned.pop(fresh.appid, None)
                    if existing is not None:
                        existing.exe = fresh.exe
                        existing.start_dir = fresh.start_dir
                        existing.launch_options = fresh.launch_options
                        existing.icon = fresh.icon
                        result.operations.append(Operation.noop(SHORTCUT_UPDATED, shortcuts_file))
                    else:
                        existing = fresh
                        result.operations.append(Operation.create(shortcuts_file, NEW_SHORTCUT))
                    written[existing.appid] = existing
                    result.value = existing.appid

            emit_result(reporter, result)
            reporter.game_end(name, result)
            report.results.append(result)

        if owned:
            logger.info(f"[SteamShortcuts] Dropping {len(owned)} shortcuts no longer in the game list")

        all_entries = foreign + list(written.values())
        report.shortcuts_written = len(all_entries)
        report.appids = [e.appid for e in all_entries if e.appid is not None]

        if self.config.dry_run:
            logger.info(f"[SteamShortcuts] Dry run: would write {len(all_entries)} shortcuts")
        else:
            await self._io(save_shortcuts_vdf, shortcuts_file, encode_shortcuts(all_entries))

        report.collection_error = await self._io(self._update_collection, collection_store, report.appids)
        if report.collection_error is not None:
            reporter.error(report.collection_error)
        return report

    def _update_collection(self, store: Optional[CollectionStore], appids: List[int]) -> Optional[LinkError]:
        """Rebuild this app's collection. Returns the error instead of raising."""
        app_name = self.config.app_name
        try:
            store = store or self.collection_store()
            store.open()
            try:
                for key, collection in store.read().items():
                    if key == collection_key(app_name) or collection.is_deleted:
                        store.remove(key)
                store.add(app_name, self.config.steam_collection, appids)
                if not self.config.dry_run:
                    store.save()
            finally:
                store.close()
        except (DependencyUnavailableError, DecodeError) as e:
            logger.error(f"[SteamShortcuts] Collection not updated: {e}")
            return e
        return None
