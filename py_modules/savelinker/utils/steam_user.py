"""
Steam install and user detection.

Finds the Steam directory, the logged-in user's account ID (the userdata
folder name) from loginusers.vdf, and the default locations of the files the
shortcut sync writes.
"""

import os
import logging
from typing import List, Optional

import vdf

from ..config import IS_WINDOWS

logger = logging.getLogger(__name__)


def _candidate_steam_paths(home_dir: str) -> List[str]:
    if IS_WINDOWS:
        program_files = os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)")
        return [os.path.join(program_files, "Steam")]
    return [
        os.path.join(home_dir, ".steam", "steam"),
        os.path.join(home_dir, ".local", "share", "Steam"),
        os.path.join(home_dir, ".var", "app", "com.valvesoftware.Steam", ".local", "share", "Steam"),
    ]


def find_steam_path(home_dir: str) -> Optional[str]:
    """Find Steam installation directory"""
    for path in _candidate_steam_paths(home_dir):
        if os.path.isdir(os.path.join(path, "userdata")):
            return path
    return None


def get_logged_in_steam_user(steam_path: str) -> Optional[str]:
    """
    Get the currently logged-in Steam user's account ID.

    Uses loginusers.vdf with the MostRecent flag, falling back to the most
    recently modified userdata folder (never user 0, a meta-directory).
    """
    user_id = _get_user_from_loginusers(steam_path)
    if user_id:
        logger.info(f"[SteamUser] Found logged-in user from loginusers.vdf: {user_id}")
        return user_id

    user_id = _get_user_from_mtime(steam_path)
    if user_id:
        logger.info(f"[SteamUser] Fallback: Using mtime-based user detection: {user_id}")
        return user_id

    logger.error("[SteamUser] Could not detect logged-in Steam user")
    return None


def _get_user_from_loginusers(steam_path: str) -> Optional[str]:
    """loginusers.vdf holds Steam64IDs; the account ID is the lower 32 bits."""
    loginusers_path = os.path.join(steam_path, "config", "loginusers.vdf")
    if not os.path.exists(loginusers_path):
        logger.debug(f"[SteamUser] loginusers.vdf not found at {loginusers_path}")
        return None

    try:
        with open(loginusers_path, 'r', encoding='utf-8', errors='ignore') as f:
            data = vdf.load(f)
    except (OSError, SyntaxError) as e:
        logger.warning(f"[SteamUser] Error reading loginusers.vdf: {e}")
        return None

    for steam64_id_str, user_info in data.get('users', {}).items():
        if str(user_info.get('MostRecent')) != '1':
            continue
        try:
            account_id = int(steam64_id_str) & 0xFFFFFFFF
        except ValueError:
            logger.warning(f"[SteamUser] Invalid Steam64ID: {steam64_id_str}")
            continue
        if os.path.isdir(os.path.join(steam_path, "userdata", str(account_id))):
            return str(account_id)
        logger.warning(f"[SteamUser] MostRecent user {account_id} folder doesn't exist")

    return None


def _get_user_from_mtime(steam_path: str) -> Optional[str]:
    userdata_path = os.path.join(steam_path, "userdata")
    if not os.path.isdir(userdata_path):
        return None

    user_dirs = []
    for d in os.listdir(userdata_path):
        if not d.isdigit() or d == '0':
            continue
        dir_path = os.path.join(userdata_path, d)
        if os.path.isdir(dir_path):
            user_dirs.append((d, os.path.getmtime(dir_path)))

    if not user_dirs:
        return None
    user_dirs.sort(key=lambda x: x[1], reverse=True)
    return user_dirs[0][0]


def shortcuts_vdf_path(steam_path: str, user_id: str) -> str:
    return os.path.join(steam_path, "userdata", str(user_id), "config", "shortcuts.vdf")


def collections_leveldb_path(steam_path: str) -> str:
    return os.path.join(steam_path, "config", "htmlcache", "Local Storage", "leveldb")
