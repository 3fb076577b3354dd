"""
Run configuration and game list loading.

``LinkerConfig`` is built once by the CLI and handed to every component;
nothing reads configuration from module globals or the environment after
that point.

The game list is a YAML mapping of game name -> record::

    Foo:
      saves: ~/Documents/Foo      # home-relative, absolute, or game-relative
      exe: bin/foo.exe            # relative to <games_dir>/<name>
      args: --windowed

A bare string value is shorthand for ``{saves: <string>}``. ``saves`` may
also start with a Windows location mapping such as ``$DOCUMENTS/My Game``
(see ``saves.paths.SAVE_MAPPINGS``).
"""

import os
import sys
import logging
from dataclasses import dataclass
from typing import Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

IS_WINDOWS = sys.platform == "win32"

APP_NAME_DEFAULT = "save-game-linker"
STEAM_COLLECTION_DEFAULT = "Save Game Linker"


@dataclass(frozen=True)
class GameItem:
    """One entry from the game list"""
    name: str
    saves: Optional[str] = None
    exe: Optional[str] = None
    args: str = ""


@dataclass(frozen=True)
class LinkerConfig:
    home_dir: str
    games_dir: str
    saves_dir: str
    conf_file: str
    public_dir: Optional[str] = None
    dry_run: bool = False
    app_name: str = APP_NAME_DEFAULT
    steam_collection: str = STEAM_COLLECTION_DEFAULT
    steam_dir: Optional[str] = None
    steam_user_id: Optional[str] = None
    steam_shortcuts_file: Optional[str] = None
    steam_leveldb: Optional[str] = None
    shortcuts_dir: Optional[str] = None
    icon_dir: Optional[str] = None
    cache_dir: Optional[str] = None

    @classmethod
    def defaults(cls, home_dir: Optional[str] = None, **overrides) -> "LinkerConfig":
        """Build a config using the same defaults as the command line."""
        home = os.path.abspath(home_dir or os.path.expanduser("~"))
        saves_dir = overrides.pop("saves_dir", None) or os.path.join(home, "Dropbox", "Saves")
        values = dict(
            home_dir=home,
            games_dir=os.path.join(home, "Games"),
            saves_dir=saves_dir,
            conf_file=default_conf_file(saves_dir),
            public_dir=os.path.join(os.path.dirname(home), "Public"),
            shortcuts_dir=os.path.join(home, "Desktop"),
            icon_dir=os.path.join(saves_dir, "icons"),
            cache_dir=os.path.join(home, ".cache", APP_NAME_DEFAULT),
        )
        values.update(overrides)
        return cls(**values)


def default_conf_file(saves_dir: str) -> str:
    return os.path.join(saves_dir, f"paths-{'windows' if IS_WINDOWS else 'linux'}.yml")


def _check_name(name: str) -> None:
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        raise ConfigError(name, "game name must be a single path segment")


def parse_game_list(data) -> Dict[str, GameItem]:
    """Turn the decoded YAML document into an ordered name -> GameItem map."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(None, "game list must be a mapping of name -> record")

    games: Dict[str, GameItem] = {}
    for raw_name, record in data.items():
        name = str(raw_name)
        _check_name(name)

        if record is None:
            games[name] = GameItem(name=name)
        elif isinstance(record, str):
            games[name] = GameItem(name=name, saves=record)
        elif isinstance(record, dict):
            for key in ("saves", "exe"):
                if record.get(key) is not None and not isinstance(record[key], str):
                    raise ConfigError(name, f"'{key}' must be a path, got {type(record[key]).__name__}")
            args = record.get("args")
            games[name] = GameItem(
                name=name,
                saves=record.get("saves"),
                exe=record.get("exe"),
                args="" if args is None else str(args),
            )
        else:
            raise ConfigError(name, f"unsupported record type {type(record).__name__}")
    return games


def load_game_list(path: str) -> Dict[str, GameItem]:
    """Load the YAML game list, preserving file order."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(path, "configuration file not found")
    except yaml.YAMLError as e:
        raise ConfigError(path, f"invalid YAML: {e}")

    games = parse_game_list(data)
    logger.info(f"[Config] Loaded {len(games)} games from {path}")
    return games
