"""Save path resolution for configured games."""

import os
from typing import List, Optional

from ..errors import ConfigError


def expand_home(path: str, home_dir: str) -> str:
    """Expand a leading ``~`` against ``home_dir`` (not the process's HOME)."""
    if path == "~":
        return home_dir
    if path.startswith("~/") or path.startswith("~\\"):
        return os.path.join(home_dir, path[2:])
    return path


def resolve_save_path(name: str, saves: str, games_dir: str, home_dir: str) -> str:
    """
    Resolve a game's ``saves`` setting to an absolute path.

    ``~/...`` is relative to the home dir, absolute paths are taken as-is and
    anything else is relative to ``<games_dir>/<name>``. Symlinks are not
    resolved here; the linker inspects the path itself.
    """
    path = expand_home(saves, home_dir)
    if not os.path.isabs(path):
        path = os.path.join(games_dir, name, path)
    return os.path.abspath(path)


def cloud_path(name: str, saves_dir: str) -> str:
    return os.path.abspath(os.path.join(saves_dir, name))


def resolve_exe_path(name: str, exe: str, games_dir: str, home_dir: str) -> str:
    return os.path.abspath(os.path.join(games_dir, name, expand_home(exe, home_dir)))


def exe_start_dir(name: str, exe: str, games_dir: str, home_dir: Optional[str] = None) -> str:
    """Working directory for a game: the exe's folder for absolute exes, else the game folder."""
    expanded = expand_home(exe, home_dir) if home_dir else exe
    if os.path.isabs(expanded):
        return os.path.dirname(expanded)
    return os.path.join(games_dir, name)


# Windows save locations; they work for wine prefixes mapped onto the home dir too.
SAVE_MAPPINGS = {
    "$CODEX": (("home", "AppData", "Roaming", "Steam", "CODEX"), ("public", "Documents", "Steam", "CODEX")),
    "$SAVED_GAMES": (("home", "Saved Games"),),
    "$APPDATA_ROAMING": (("home", "AppData", "Roaming"),),
    "$APPDATA_LOCAL": (("home", "AppData", "Local"),),
    "$APPDATA_LOCAL_LOW": (("home", "AppData", "LocalLow"),),
    "$DOCUMENTS": (("home", "Documents"),),
    "$MY_GAMES": (("home", "Documents", "My Games"),),
}


def mapping_bases(mapping: str, home_dir: str, public_dir: Optional[str] = None) -> List[str]:
    try:
        bases = SAVE_MAPPINGS[mapping]
    except KeyError:
        raise ConfigError(mapping, f"unknown save location, expected one of {', '.join(SAVE_MAPPINGS)}")
    roots = {
        "home": home_dir,
        "public": public_dir or os.path.join(os.path.dirname(home_dir), "Public"),
    }
    return [os.path.join(roots[root], *parts) for root, *parts in bases]


def resolve_save_paths(name: str, saves: str, games_dir: str, home_dir: str,
                       public_dir: Optional[str] = None) -> List[str]:
    """
    Every location a game may keep its saves in.

    Plain settings resolve to one path (see ``resolve_save_path``). A
    ``$MAPPING/rest/of/path`` setting expands to one path per mapping base,
    with the base's symlinks resolved and duplicates dropped, in mapping order.
    """
    if not saves.startswith("$"):
        return [resolve_save_path(name, saves, games_dir, home_dir)]

    mapping, _, rest = saves.replace("\\", "/").partition("/")
    parts = [part for part in rest.split("/") if part]
    paths: List[str] = []
    for base in mapping_bases(mapping, home_dir, public_dir):
        path = os.path.normpath(os.path.join(os.path.realpath(base), *parts))
        if path not in paths:
            paths.append(path)
    return paths
