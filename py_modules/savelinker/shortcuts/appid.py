"""AppID helpers for non-Steam shortcuts."""

import os
import struct
import binascii


def generate_app_id(exe_relative: str) -> int:
    """
    Generate the shortcut AppID for a game using CRC32.

    The key is the executable path relative to the games dir (``<name>/<exe>``)
    plus a trailing NUL, with the high bit forced on as Steam does for
    non-Steam apps. Launch options play no part, so changing a game's args
    keeps its entry (and its artwork and collections).
    """
    crc = binascii.crc32((exe_relative + "\0").encode("utf-8")) & 0xFFFFFFFF
    return (crc | 0x80000000) & 0xFFFFFFFF


def app_id_key(name: str, exe: str) -> str:
    return os.path.join(name, exe)


def to_signed(app_id: int) -> int:
    """shortcuts.vdf stores appid as a signed int32"""
    return struct.unpack('i', struct.pack('I', app_id & 0xFFFFFFFF))[0]


def to_unsigned(app_id: int) -> int:
    return app_id & 0xFFFFFFFF
