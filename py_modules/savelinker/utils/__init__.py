# Utils package
from .steam_user import (
    find_steam_path,
    get_logged_in_steam_user,
    shortcuts_vdf_path,
    collections_leveldb_path,
)

__all__ = [
    'find_steam_path',
    'get_logged_in_steam_user',
    'shortcuts_vdf_path',
    'collections_leveldb_path',
]
