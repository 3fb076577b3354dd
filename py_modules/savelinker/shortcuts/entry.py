"""
Typed view of one shortcuts.vdf record.

This is the only module that deals with the untyped dicts produced by the
vdf library. Fields we do not own stay in ``raw`` and are written back
untouched; owned fields are only re-encoded when their value changed, so a
record we never modify round-trips exactly.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .appid import to_signed, to_unsigned

# (attribute, on-disk key used for new records). Existing records keep
# whatever key casing Steam wrote.
FIELDS = (
    ("appid", "appid"),
    ("appname", "AppName"),
    ("exe", "Exe"),
    ("start_dir", "StartDir"),
    ("icon", "icon"),
    ("launch_options", "LaunchOptions"),
    ("tags", "tags"),
)

NEW_ENTRY_TEMPLATE = {
    "appid": 0,
    "AppName": "",
    "Exe": "",
    "StartDir": "",
    "icon": "",
    "ShortcutPath": "",
    "LaunchOptions": "",
    "IsHidden": 0,
    "AllowDesktopConfig": 1,
    "AllowOverlay": 1,
    "OpenVR": 0,
    "Devkit": 0,
    "DevkitGameID": "",
    "DevkitOverrideAppID": 0,
    "LastPlayTime": 0,
    "FlatpakAppID": "",
    "tags": {},
}


def _find_key(raw: Dict[str, Any], key: str) -> Optional[str]:
    lower = key.lower()
    for existing in raw:
        if existing.lower() == lower:
            return existing
    return None


def _decode_tags(raw_tags: Any) -> Dict[int, str]:
    tags: Dict[int, str] = {}
    if not isinstance(raw_tags, dict):
        return tags
    for key, value in raw_tags.items():
        try:
            tags[int(key)] = str(value)
        except (TypeError, ValueError):
            continue  # stays in raw
    return tags


def _encode_value(attr: str, value: Any) -> Any:
    if attr == "appid":
        return to_signed(value)
    if attr == "tags":
        return {str(k): v for k, v in sorted(value.items())}
    return value


@dataclass
class ShortcutEntry:
    """A non-Steam shortcut. ``appid`` is always kept unsigned in memory."""
    appid: Optional[int] = None
    appname: str = ""
    exe: str = ""
    start_dir: str = ""
    icon: str = ""
    launch_options: str = ""
    tags: Dict[int, str] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    _decoded: Dict[str, Any] = field(default_factory=dict, init=False, repr=False, compare=False)

    @classmethod
    def from_vdf(cls, raw: Dict[str, Any]) -> "ShortcutEntry":
        values = {}
        for attr, key in FIELDS:
            found = _find_key(raw, key)
            values[attr] = raw[found] if found is not None else None

        appid = values["appid"]
        entry = cls(
            appid=to_unsigned(int(appid)) if appid is not None else None,
            appname=str(values["appname"] or ""),
            exe=str(values["exe"] or ""),
            start_dir=str(values["start_dir"] or ""),
            icon=str(values["icon"] or ""),
            launch_options=str(values["launch_options"] or ""),
            tags=_decode_tags(values["tags"]),
            raw=raw,
        )
        entry._decoded = entry._snapshot()
        return entry

    def _snapshot(self) -> Dict[str, Any]:
        snap = {attr: getattr(self, attr) for attr, _ in FIELDS}
        snap["tags"] = dict(self.tags)
        return snap

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags.values()

    def to_vdf(self) -> Dict[str, Any]:
        """Encode back to a vdf-ready dict."""
        if self.raw:
            out = dict(self.raw)
        else:
            out = dict(NEW_ENTRY_TEMPLATE)
            out["tags"] = {}

        current = self._snapshot()
        for attr, default_key in FIELDS:
            value = current[attr]
            if self.raw and value == self._decoded.get(attr):
                continue
            if value is None:
                continue
            key = _find_key(out, default_key) or default_key
            out[key] = _encode_value(attr, value)
        return out
