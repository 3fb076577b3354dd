"""shortcuts.vdf file utilities using the ValvePython vdf library"""

import os
import shutil
import struct
import logging
from typing import Dict, Any, List

import vdf

from ..errors import DecodeError, LinkIOError
from .entry import ShortcutEntry

logger = logging.getLogger(__name__)

REPLACEMENT_CHAR = "\ufffd"


def load_shortcuts_vdf(path: str) -> Dict[str, Any]:
    """
    Load and parse a binary shortcuts.vdf file.

    A missing file is an empty container (fresh Steam user). A file that
    exists but cannot be parsed raises DecodeError: there is no safe way to
    merge into a container we cannot read.
    """
    try:
        with open(path, 'rb') as f:
            raw = f.read()
    except FileNotFoundError:
        return {"shortcuts": {}}
    except OSError as e:
        raise LinkIOError(path, f"cannot read shortcuts file: {e}") from e

    if not raw:
        return {"shortcuts": {}}

    try:
        data = vdf.binary_loads(raw)
    except (SyntaxError, ValueError, TypeError, UnicodeDecodeError, struct.error) as e:
        raise DecodeError(path, f"cannot parse shortcuts file: {e}") from e

    shortcuts_key = next((k for k in data if k.lower() == "shortcuts"), None)
    if shortcuts_key is None or not isinstance(data[shortcuts_key], dict):
        raise DecodeError(path, "missing 'shortcuts' section")
    if shortcuts_key != "shortcuts":
        data = {"shortcuts": data[shortcuts_key]}

    # vdf decodes invalid UTF-8 with U+FFFD; rewriting that would corrupt the entry
    if REPLACEMENT_CHAR.encode("utf-8") not in raw and _has_replacement(data):
        raise DecodeError(path, "shortcuts file contains text that is not valid UTF-8, refusing to rewrite it")
    return data


def _has_replacement(value: Any) -> bool:
    if isinstance(value, str):
        return REPLACEMENT_CHAR in value
    if isinstance(value, dict):
        return any(_has_replacement(k) or _has_replacement(v) for k, v in value.items())
    return False


def save_shortcuts_vdf(path: str, data: Dict[str, Any]) -> None:
    """Write data to shortcuts.vdf with a backup, fsync and a read-back check."""
    backup_path = path + '.backup'
    try:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        if os.path.exists(path):
            shutil.copy2(path, backup_path)

        binary_data = vdf.binary_dumps(data)
        with open(path, 'wb') as f:
            f.write(binary_data)
            f.flush()
            os.fsync(f.fileno())  # Force write to disk
    except OSError as e:
        raise LinkIOError(path, f"cannot write shortcuts file: {e}") from e

    # Validate write
    expected_count = len(data.get('shortcuts', {}))
    actual_count = len(load_shortcuts_vdf(path).get('shortcuts', {}))
    if actual_count != expected_count:
        logger.error(f"[ShortcutsVDF] Write validation failed! Expected {expected_count}, got {actual_count}")
        if os.path.exists(backup_path):
            shutil.copy2(backup_path, path)
        raise LinkIOError(path, "write validation failed, backup restored")

    logger.info(f"[ShortcutsVDF] Write validated: {actual_count} shortcuts persisted to disk")


def decode_shortcuts(data: Dict[str, Any]) -> List[ShortcutEntry]:
    """Decoded entries in file order"""
    return [ShortcutEntry.from_vdf(raw) for raw in data.get('shortcuts', {}).values()]


def encode_shortcuts(entries: List[ShortcutEntry]) -> Dict[str, Any]:
    """Re-index from zero; the keys are positions, nothing else."""
    return {"shortcuts": {str(idx): entry.to_vdf() for idx, entry in enumerate(entries)}}
