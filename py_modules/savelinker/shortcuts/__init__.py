from .appid import generate_app_id, to_signed, to_unsigned
from .entry import ShortcutEntry
from .vdf import load_shortcuts_vdf, save_shortcuts_vdf, decode_shortcuts, encode_shortcuts
from .collections_store import CollectionStore, Collection
from .steam_shortcuts import SteamShortcutsSync, ShortcutSyncReport
from .desktop import DesktopShortcuts
