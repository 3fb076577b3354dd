from __future__ import annotations

import os
from pathlib import Path

import pytest

from savelinker.errors import ConfigError
from savelinker.saves.paths import (
    cloud_path,
    exe_start_dir,
    expand_home,
    resolve_exe_path,
    resolve_save_path,
    resolve_save_paths,
)

HOME = os.path.abspath("/home/u")
GAMES = os.path.abspath("/games")


def test_expand_home_uses_configured_home() -> None:
    assert expand_home("~/Documents/Foo", HOME) == os.path.join(HOME, "Documents/Foo")
    assert expand_home("~", HOME) == HOME
    assert expand_home("saves", HOME) == "saves"


def test_home_relative_save_path() -> None:
    assert resolve_save_path("Foo", "~/Documents/Foo", GAMES, HOME) == os.path.join(HOME, "Documents", "Foo")


def test_absolute_save_path_is_kept() -> None:
    path = os.path.abspath("/data/saves/Foo")
    assert resolve_save_path("Foo", path, GAMES, HOME) == path


def test_game_relative_save_path() -> None:
    assert resolve_save_path("Foo", "save/../saves", GAMES, HOME) == os.path.join(GAMES, "Foo", "saves")


def test_cloud_path() -> None:
    assert cloud_path("Foo", os.path.abspath("/cloud")) == os.path.join(os.path.abspath("/cloud"), "Foo")


def test_exe_paths() -> None:
    assert resolve_exe_path("Foo", "bin/foo.exe", GAMES, HOME) == os.path.join(GAMES, "Foo", "bin", "foo.exe")
    assert exe_start_dir("Foo", "bin/foo.exe", GAMES) == os.path.join(GAMES, "Foo")
    absolute_exe = os.path.abspath("/opt/foo/foo.exe")
    assert exe_start_dir("Foo", absolute_exe, GAMES) == os.path.dirname(absolute_exe)


def test_plain_save_setting_is_a_single_path() -> None:
    assert resolve_save_paths("Foo", "~/Foo", GAMES, HOME) == [os.path.join(HOME, "Foo")]


def test_documents_mapping(tmp_path: Path) -> None:
    home = str(tmp_path / "u")
    assert resolve_save_paths("Foo", "$DOCUMENTS/My Game/saves", GAMES, home) == [
        os.path.join(home, "Documents", "My Game", "saves")
    ]


def test_mapping_accepts_backslashes(tmp_path: Path) -> None:
    home = str(tmp_path / "u")
    assert resolve_save_paths("Foo", "$APPDATA_LOCAL_LOW\\Studio\\Foo", GAMES, home) == [
        os.path.join(home, "AppData", "LocalLow", "Studio", "Foo")
    ]


def test_codex_mapping_has_two_locations(tmp_path: Path) -> None:
    home, public = str(tmp_path / "u"), str(tmp_path / "Public")
    assert resolve_save_paths("Foo", "$CODEX/12345", GAMES, home, public) == [
        os.path.join(home, "AppData", "Roaming", "Steam", "CODEX", "12345"),
        os.path.join(public, "Documents", "Steam", "CODEX", "12345"),
    ]


def test_public_dir_defaults_next_to_home(tmp_path: Path) -> None:
    home = str(tmp_path / "u")
    paths = resolve_save_paths("Foo", "$CODEX/1", GAMES, home)
    assert paths[1] == os.path.join(str(tmp_path), "Public", "Documents", "Steam", "CODEX", "1")


def test_mapping_bases_with_symlinks_are_resolved_and_deduplicated(tmp_path: Path) -> None:
    home = tmp_path / "u"
    (home / "AppData" / "Roaming" / "Steam").mkdir(parents=True)
    public_docs = tmp_path / "Public" / "Documents"
    public_docs.parent.mkdir(parents=True)
    public_docs.symlink_to(home / "AppData" / "Roaming", target_is_directory=True)
    assert resolve_save_paths("Foo", "$CODEX/1", GAMES, str(home), str(tmp_path / "Public")) == [
        os.path.join(str(home), "AppData", "Roaming", "Steam", "CODEX", "1")
    ]


def test_unknown_mapping_is_a_config_error() -> None:
    with pytest.raises(ConfigError) as excinfo:
        resolve_save_paths("Foo", "$NOPE/Foo", GAMES, HOME)
    assert excinfo.value.path == "$NOPE"
