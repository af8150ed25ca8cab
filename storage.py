#!/usr/bin/env python3
# storage.py – rev-s9 (2026-10-19)

r"""
Persistent configuration
════════════════════════
* Same config folder for script **and** PyInstaller binary
  – Windows  : %APPDATA%\Demux-Player\config.json
  – macOS/*nix: ~/.config/demux-player/config.json
* Writes are atomic (tmp + replace); the previous file is kept as
  config.bak
* load() is strict: a broken file raises ConfigError and the caller
  decides whether to try the backup or start from defaults
"""

from __future__ import annotations
import json, os, shutil
from pathlib import Path
from typing  import Any, Dict, Optional

from demuxers import ConfigError, RuleTable

__all__ = ["Config", "ConfigError", "config_path", "load", "load_backup", "save"]

# ────────────────────────────────────────────────────────────
# 1. resolve canonical config path
# ────────────────────────────────────────────────────────────
if os.name == "nt":
    # %APPDATA% should exist for *all* normal accounts.  If it doesn't,
    # fall back to <User>\AppData\Roaming.
    _appdata = Path(os.getenv("APPDATA") or Path.home() / "AppData" / "Roaming")
    CFG_DIR  = _appdata / "Demux-Player"
else:
    # Follow XDG spec; ~/.config if XDG_CONFIG_HOME not set.
    CFG_DIR  = Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config")) / "demux-player"


def config_path() -> Path:
    return CFG_DIR / "config.json"

def _bak(path: Path) -> Path:
    return path.with_suffix(".bak")


# ────────────────────────────────────────────────────────────
# 2. config object
# ────────────────────────────────────────────────────────────
class Config:
    DEFAULT_VOLUME = 50
    DEFAULT_SPEED  = 1.0

    def __init__(self, *,
                 music_folder: Optional[Path] = None,
                 custom_demuxers: Optional[RuleTable] = None,
                 volume: int = DEFAULT_VOLUME,
                 speed: float = DEFAULT_SPEED,
                 video: bool = False,
                 theme: str = "System",
                 follow_symlinks: bool = False,
                 skip_hidden: bool = False):
        self.music_folder    = music_folder
        self.custom_demuxers = custom_demuxers if custom_demuxers is not None else RuleTable()
        self.volume          = volume
        self.speed           = speed
        self.video           = video
        self.theme           = theme
        self.follow_symlinks = follow_symlinks
        self.skip_hidden     = skip_hidden

    def __repr__(self):
        return (f"<Config folder={str(self.music_folder)!r} "
                f"demuxers={len(self.custom_demuxers)}>")

    def to_json(self) -> Dict[str, Any]:
        return {
            "music_folder":    str(self.music_folder) if self.music_folder else None,
            "custom_demuxers": self.custom_demuxers.to_json(),
            "volume":          self.volume,
            "speed":           self.speed,
            "video":           self.video,
            "theme":           self.theme,
            "follow_symlinks": self.follow_symlinks,
            "skip_hidden":     self.skip_hidden,
        }

    @classmethod
    def from_json(cls, data: Any) -> "Config":
        """Build from decoded JSON; absent keys get their defaults."""
        if not isinstance(data, dict):
            raise ConfigError("config root must be an object")
        folder = data.get("music_folder")
        if folder is not None and not isinstance(folder, str):
            raise ConfigError("music_folder: expected string or null")
        return cls(
            music_folder    = Path(folder) if folder else None,
            custom_demuxers = RuleTable.from_json(data.get("custom_demuxers", [])),
            volume          = _typed(data, "volume", int, cls.DEFAULT_VOLUME),
            speed           = float(_typed(data, "speed", (int, float), cls.DEFAULT_SPEED)),
            video           = _typed(data, "video", bool, False),
            theme           = _theme(data.get("theme")),
            follow_symlinks = _typed(data, "follow_symlinks", bool, False),
            skip_hidden     = _typed(data, "skip_hidden", bool, False),
        )


def _theme(val: Any) -> str:
    # older configs stored null or a 12×3 RGB table here; those fall back to System
    return val if isinstance(val, str) and val else "System"


def _typed(data: Dict, key: str, kind, default):
    val = data.get(key, default)
    # bool is an int subclass; don't let `true` pass as a volume
    if not isinstance(val, kind) or (isinstance(val, bool) and kind is not bool):
        raise ConfigError(f"{key}: unexpected value {val!r}")
    return val


# ────────────────────────────────────────────────────────────
# 3. atomic writer (+ backup)
# ────────────────────────────────────────────────────────────
def _atomic_write(path: Path, data: Any) -> None:
    """Write *data* as UTF-8 JSON atomically and keep a .bak copy."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
    # create/refresh backup *before* replacement
    if path.exists():
        shutil.copy2(path, _bak(path))
    tmp.replace(path)

def _read(path: Path) -> Config:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"{path}: {e}") from e
    return Config.from_json(data)


# ────────────────────────────────────────────────────────────
# 4. public API
# ────────────────────────────────────────────────────────────
def load(path: Optional[Path] = None) -> Optional[Config]:
    """Return the stored config, or None if there is none yet."""
    path = path or config_path()
    if not path.exists():
        return None
    return _read(path)


def load_backup(path: Optional[Path] = None) -> Optional[Config]:
    """Read the .bak copy written by the previous save()."""
    bak = _bak(path or config_path())
    if not bak.exists():
        return None
    return _read(bak)


def save(cfg: Config, path: Optional[Path] = None) -> None:
    """Write *cfg* to disk, safely."""
    _atomic_write(path or config_path(), cfg.to_json())
