from __future__ import annotations

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[1]
# Packages live under py_modules
sys.path.insert(0, str(ROOT / "py_modules"))

from savelinker.config import LinkerConfig  # noqa: E402


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    home = tmp_path / "home" / "u"
    home.mkdir(parents=True)
    return home


@pytest.fixture
def config(tmp_path: Path, home_dir: Path) -> LinkerConfig:
    return LinkerConfig.defaults(
        home_dir=str(home_dir),
        saves_dir=str(tmp_path / "cloud"),
        games_dir=str(tmp_path / "games"),
        shortcuts_dir=str(tmp_path / "desktop"),
        icon_dir=str(tmp_path / "icons"),
        cache_dir=str(tmp_path / "cache"),
        steam_user_id="12345",
    )
