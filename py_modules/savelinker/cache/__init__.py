"""
Cache package - on-disk caches that live in the user cache dir.
"""

from .steam_appid import (
    get_app_list,
    load_cached_app_list,
    save_app_list_cache,
    match_app,
)
