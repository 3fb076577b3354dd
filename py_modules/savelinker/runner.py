"""
Per-game driver.

Walks the game list in file order and runs one component per game, one game
at a time. A LinkError for one game is reported and the loop moves on; only
run-level failures (unreadable shortcuts.vdf, failed batch calls) escape.
"""

import logging
from typing import Dict, List, Optional

from .config import GameItem, LinkerConfig
from .errors import LinkError
from .events import ItemResult, Operation, Reporter, emit_result, NO_SAVES
from .saves.linker import SaveLinker
from .saves.paths import cloud_path, resolve_save_paths
from .shortcuts.desktop import DesktopShortcuts
from .shortcuts.steam_shortcuts import ShortcutSyncReport, SteamShortcutsSync
from .cache.steam_appid import get_app_list, match_app

logger = logging.getLogger(__name__)


class Runner:
    def __init__(self, config: LinkerConfig, reporter: Optional[Reporter] = None,
                 linker: Optional[SaveLinker] = None,
                 steam_sync: Optional[SteamShortcutsSync] = None,
                 desktop: Optional[DesktopShortcuts] = None):
        self.config = config
        self.reporter = reporter or Reporter()
        self.linker = linker or SaveLinker(config)
        self.steam_sync = steam_sync or SteamShortcutsSync(config)
        self.desktop = desktop or DesktopShortcuts(config)

    async def link_saves(self, games: Dict[str, GameItem]) -> List[ItemResult]:
        cfg = self.config
        results = []
        for name, item in games.items():
            self.reporter.game_start(name, item)
            result = ItemResult(name)

            if not item.saves:
                result.operations.append(Operation.noop(NO_SAVES))
            else:
                cloud_dir = cloud_path(name, cfg.saves_dir)
                try:
                    save_dirs = resolve_save_paths(name, item.saves, cfg.games_dir, cfg.home_dir, cfg.public_dir)
                    result.operations = await self.linker.reconcile_paths(name, cloud_dir, save_dirs)
                except LinkError as e:
                    logger.error(f"[Runner] {name}: {e}")
                    result.operations = list(e.operations)
                    result.error = e

            emit_result(self.reporter, result)
            self.reporter.game_end(name, result)
            results.append(result)
        return results

    async def steam_shortcuts(self, games: Dict[str, GameItem]) -> ShortcutSyncReport:
        return await self.steam_sync.synchronize(games, reporter=self.reporter)

    async def desktop_shortcuts(self, games: Dict[str, GameItem]) -> List[ItemResult]:
        return await self.desktop.process(games, reporter=self.reporter)

    async def lookup_app_ids(self, games: Dict[str, GameItem]) -> Dict[str, Optional[dict]]:
        apps = await get_app_list(self.config.cache_dir)
        return {name: match_app(name, apps) for name in games}
