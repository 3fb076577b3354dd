"""
save-game-linker command line.

Usage: save-game-linker [options] <command>
  saves      move save folders into the cloud folder and symlink them back
  steam      add / refresh non-Steam shortcuts and the Steam collection
  shortcuts  create desktop shortcuts
  appid      look up Steam appids for configured games

Exit codes:
  0: Success
  1: Fatal error (bad config, unreadable shortcuts.vdf, ...)
  2: Finished, but at least one game failed
"""

import os
import sys
import asyncio
import argparse
import logging
from typing import List, Optional

from .config import APP_NAME_DEFAULT, STEAM_COLLECTION_DEFAULT, LinkerConfig, default_conf_file, load_game_list
from .errors import LinkError
from .reporting import ConsoleReporter, setup_logging
from .runner import Runner

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    home = os.path.expanduser("~")
    parser = argparse.ArgumentParser(
        prog="save-game-linker",
        description="Keep game saves in a synced folder and games in Steam.",
        epilog="https://github.com/kamicane/save-game-linker",
    )
    parser.add_argument("--dry-run", action="store_true", help="do not make any file system modifications")
    parser.add_argument("--home-dir", default=home, help="user home dir")
    parser.add_argument("--public-dir", help="public user dir used by $CODEX saves (default: <home>/../Public)")
    parser.add_argument("--games-dir", help="where games are installed (default: <home>/Games)")
    parser.add_argument("--saves-dir", help="where to store save directories (default: <home>/Dropbox/Saves)")
    parser.add_argument("--conf", help="game list to use (default: <saves-dir>/paths-<os>.yml)")
    parser.add_argument("--app-name", default=APP_NAME_DEFAULT, help="tag marking shortcuts we own")
    parser.add_argument("--steam-collection", default=STEAM_COLLECTION_DEFAULT, help="Steam collection name")
    parser.add_argument("--steam-dir", help="Steam install dir (auto-detected)")
    parser.add_argument("--steam-user", help="Steam account id (auto-detected)")
    parser.add_argument("--steam-shortcuts-file", help="shortcuts.vdf to update (auto-detected)")
    parser.add_argument("--steam-leveldb", help="Steam local storage LevelDB dir (auto-detected)")
    parser.add_argument("--shortcuts-dir", help="where to put desktop shortcuts (default: <home>/Desktop)")
    parser.add_argument("--icon-dir", help="where <game>.ico files live (default: <saves-dir>/icons)")
    parser.add_argument("--cache-dir", help="cache dir (default: <home>/.cache/save-game-linker)")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("saves", help="link save directories")
    sub.add_parser("steam", help="sync Steam shortcuts and collection")
    sub.add_parser("shortcuts", help="create desktop shortcuts")
    sub.add_parser("appid", help="look up Steam appids")
    return parser


def config_from_args(args: argparse.Namespace) -> LinkerConfig:
    def absolute(path: Optional[str]) -> Optional[str]:
        return os.path.abspath(os.path.expanduser(path)) if path else None

    home_dir = absolute(args.home_dir)
    saves_dir = absolute(args.saves_dir) or os.path.join(home_dir, "Dropbox", "Saves")
    overrides = {
        "games_dir": absolute(args.games_dir),
        "conf_file": absolute(args.conf) or default_conf_file(saves_dir),
        "public_dir": absolute(args.public_dir),
        "shortcuts_dir": absolute(args.shortcuts_dir),
        "icon_dir": absolute(args.icon_dir),
        "cache_dir": absolute(args.cache_dir),
        "steam_dir": absolute(args.steam_dir),
        "steam_shortcuts_file": absolute(args.steam_shortcuts_file),
        "steam_leveldb": absolute(args.steam_leveldb),
        "steam_user_id": args.steam_user,
    }
    return LinkerConfig.defaults(
        home_dir=home_dir,
        saves_dir=saves_dir,
        dry_run=args.dry_run,
        app_name=args.app_name,
        steam_collection=args.steam_collection,
        **{k: v for k, v in overrides.items() if v is not None},
    )


async def run_command(command: str, config: LinkerConfig, reporter: ConsoleReporter) -> int:
    games = load_game_list(config.conf_file)
    runner = Runner(config, reporter)

    if command == "saves":
        await runner.link_saves(games)
    elif command == "steam":
        await runner.steam_shortcuts(games)
    elif command == "shortcuts":
        await runner.desktop_shortcuts(games)
    elif command == "appid":
        for name, match in (await runner.lookup_app_ids(games)).items():
            if match:
                reporter.console.print(f"[game]{name}[/game]\t{match['appid']}\t{match['name']} [dim]({match['score']})[/dim]")
            else:
                reporter.console.print(f"[game]{name}[/game]\t[dim]no match[/dim]")

    return 2 if reporter.failed else 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = config_from_args(args)
    reporter = ConsoleReporter(config.home_dir)

    out = reporter.console
    out.print(f"using HOME_DIR: [ok]{config.home_dir}[/ok]")
    out.print(f"using SAVES_DIR: [cloud]{config.saves_dir}[/cloud]")
    out.print(f"using CONF_FILE: [cloud]{config.conf_file}[/cloud]")
    out.print(f"using DRY_RUN: [error]{config.dry_run}[/error]\n")

    try:
        return asyncio.run(run_command(args.command, config, reporter))
    except LinkError as e:
        reporter.error(e)
        return 1
