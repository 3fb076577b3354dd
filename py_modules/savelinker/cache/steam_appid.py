"""Steam app list cache and fuzzy name lookup.

Downloads the public Steam games list once a day into the cache dir and
matches configured game names against it, so a shortcut can be tied to a
real Steam appid (artwork, ProtonDB, ...).
"""

import json
import logging
import ssl
import time
from pathlib import Path
from typing import Dict, List, Optional

import aiohttp
import certifi
from thefuzz import fuzz, process

from ..errors import LinkIOError

logger = logging.getLogger(__name__)

APP_LIST_URL = "https://raw.githubusercontent.com/jsnli/steamappidlist/refs/heads/master/data/games_appid.json"
APP_LIST_CACHE_FILE = "games_appid.json"
CACHE_MAX_AGE = 24 * 60 * 60  # one day
MIN_MATCH_SCORE = 80


def get_app_list_cache_path(cache_dir: str) -> Path:
    return Path(cache_dir) / APP_LIST_CACHE_FILE


def load_cached_app_list(cache_dir: str, max_age: Optional[float] = CACHE_MAX_AGE) -> Optional[List[Dict]]:
    """Cached app list, or None when missing, unreadable or older than ``max_age``."""
    cache_path = get_app_list_cache_path(cache_dir)
    try:
        if not cache_path.exists():
            return None
        if max_age is not None and time.time() - cache_path.stat().st_mtime > max_age:
            return None
        with open(cache_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"[SteamAppId] Error loading app list cache: {e}")
    return None


def save_app_list_cache(cache_dir: str, apps: List[Dict]) -> bool:
    cache_path = get_app_list_cache_path(cache_dir)
    try:
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        with open(cache_path, "w", encoding="utf-8") as f:
            json.dump(apps, f)
        logger.info(f"[SteamAppId] Cached {len(apps)} Steam apps")
        return True
    except OSError as e:
        logger.error(f"[SteamAppId] Error saving app list cache: {e}")
        return False


async def fetch_app_list(session: aiohttp.ClientSession) -> List[Dict]:
    async with session.get(APP_LIST_URL, timeout=aiohttp.ClientTimeout(total=60)) as resp:
        resp.raise_for_status()
        # served as text/plain
        return await resp.json(content_type=None)


async def get_app_list(cache_dir: str, session: Optional[aiohttp.ClientSession] = None) -> List[Dict]:
    """Fresh cache if available, else download; a stale cache beats no list at all."""
    apps = load_cached_app_list(cache_dir)
    if apps is not None:
        return apps

    try:
        if session is None:
            ssl_context = ssl.create_default_context(cafile=certifi.where())
            connector = aiohttp.TCPConnector(ssl=ssl_context)
            async with aiohttp.ClientSession(connector=connector) as own_session:
                apps = await fetch_app_list(own_session)
        else:
            apps = await fetch_app_list(session)
    except (aiohttp.ClientError, ValueError) as e:
        stale = load_cached_app_list(cache_dir, max_age=None)
        if stale is not None:
            logger.warning(f"[SteamAppId] Download failed ({e}), using stale cache")
            return stale
        raise LinkIOError(APP_LIST_URL, f"cannot download Steam app list: {e}") from e

    save_app_list_cache(cache_dir, apps)
    return apps


def match_app(name: str, apps: List[Dict], min_score: int = MIN_MATCH_SCORE) -> Optional[Dict]:
    """Best fuzzy match for ``name`` as ``{"appid", "name", "score"}``, or None."""
    by_name: Dict[str, Dict] = {}
    for app in apps:
        app_name = app.get("name")
        if app_name and app_name not in by_name:
            by_name[app_name] = app

    best = process.extractOne(name, list(by_name), scorer=fuzz.token_sort_ratio, score_cutoff=min_score)
    if not best:
        return None
    matched_name, score = best[0], best[1]
    app = by_name[matched_name]
    return {"appid": int(app["appid"]), "name": matched_name, "score": score}
