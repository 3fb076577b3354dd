from __future__ import annotations

import json
import os
import time
from pathlib import Path

import aiohttp
import pytest

from savelinker.cache import steam_appid
from savelinker.cache.steam_appid import (
    get_app_list,
    get_app_list_cache_path,
    load_cached_app_list,
    match_app,
    save_app_list_cache,
)
from savelinker.config import GameItem
from savelinker.errors import LinkIOError
from savelinker.runner import Runner

APPS = [
    {"appid": 620, "name": "Portal 2"},
    {"appid": 400, "name": "Portal"},
    {"appid": 105600, "name": "Terraria"},
    {"appid": 413150, "name": "Stardew Valley"},
]


def test_match_app_exact_and_fuzzy() -> None:
    assert match_app("Terraria", APPS) == {"appid": 105600, "name": "Terraria", "score": 100}
    assert match_app("Valley Stardew", APPS)["appid"] == 413150
    assert match_app("portal 2", APPS)["appid"] == 620


def test_match_app_below_cutoff() -> None:
    assert match_app("Completely Different Game", APPS) is None
    assert match_app("Terraria", []) is None


def test_cache_expires(tmp_path: Path) -> None:
    assert save_app_list_cache(str(tmp_path), APPS)
    assert load_cached_app_list(str(tmp_path)) == APPS

    old = time.time() - 3 * 24 * 60 * 60
    os.utime(get_app_list_cache_path(str(tmp_path)), (old, old))
    assert load_cached_app_list(str(tmp_path)) is None
    assert load_cached_app_list(str(tmp_path), max_age=None) == APPS


def test_corrupt_cache_is_ignored(tmp_path: Path) -> None:
    get_app_list_cache_path(str(tmp_path)).write_text("{not json", encoding="utf-8")
    assert load_cached_app_list(str(tmp_path)) is None


@pytest.mark.asyncio
async def test_fresh_cache_skips_download(tmp_path: Path, monkeypatch) -> None:
    save_app_list_cache(str(tmp_path), APPS)

    async def no_network(session):
        raise AssertionError("should not download")

    monkeypatch.setattr(steam_appid, "fetch_app_list", no_network)
    assert await get_app_list(str(tmp_path)) == APPS


@pytest.mark.asyncio
async def test_download_is_cached(tmp_path: Path, monkeypatch) -> None:
    async def fetch(session):
        return APPS

    monkeypatch.setattr(steam_appid, "fetch_app_list", fetch)
    assert await get_app_list(str(tmp_path), session=object()) == APPS
    assert json.loads(get_app_list_cache_path(str(tmp_path)).read_text(encoding="utf-8")) == APPS


@pytest.mark.asyncio
async def test_stale_cache_used_when_download_fails(tmp_path: Path, monkeypatch) -> None:
    save_app_list_cache(str(tmp_path), APPS)
    old = time.time() - 3 * 24 * 60 * 60
    os.utime(get_app_list_cache_path(str(tmp_path)), (old, old))

    async def offline(session):
        raise aiohttp.ClientConnectionError("offline")

    monkeypatch.setattr(steam_appid, "fetch_app_list", offline)
    assert await get_app_list(str(tmp_path), session=object()) == APPS


@pytest.mark.asyncio
async def test_download_failure_without_cache_raises(tmp_path: Path, monkeypatch) -> None:
    async def offline(session):
        raise aiohttp.ClientConnectionError("offline")

    monkeypatch.setattr(steam_appid, "fetch_app_list", offline)
    with pytest.raises(LinkIOError):
        await get_app_list(str(tmp_path), session=object())


@pytest.mark.asyncio
async def test_runner_looks_up_every_game(config, monkeypatch) -> None:
    save_app_list_cache(config.cache_dir, APPS)

    async def no_network(session):
        raise AssertionError("should not download")

    monkeypatch.setattr(steam_appid, "fetch_app_list", no_network)
    games = {"Portal 2": GameItem("Portal 2"), "Zzqx": GameItem("Zzqx")}

    matches = await Runner(config).lookup_app_ids(games)

    assert list(matches) == ["Portal 2", "Zzqx"]
    assert matches["Portal 2"]["appid"] == 620
    assert matches["Zzqx"] is None
