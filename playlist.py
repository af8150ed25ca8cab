#!/usr/bin/env python3
# playlist.py – rev-p2  (2026-10-19)
"""
Music-folder scan → sorted playlist.

• Recursive walk, symlinks followed only when asked (loops are skipped)
• skip_hidden prunes dot-entries *and* everything below them
• jpg / png / txt never make it into the list
• Unreadable entries are skipped, only counted in `Playlist.skipped`
• Items hold paths relative to the music folder, sorted byte-wise per
  path component so the order is the same on every rebuild
"""

from __future__ import annotations
import logging, os
from pathlib import Path
from typing  import FrozenSet, Iterator, List, Optional, Tuple

from demuxers import file_extension

log = logging.getLogger(__name__)

DENYLIST_EXTS = ("jpg", "png", "txt")   # compared case-sensitively


# ────────────────────────── data classes ──────────────────────────
class Item:
    def __init__(self, path: Path):
        self.path = path            # relative to the music folder
    def __repr__(self):
        return f"<Item {str(self.path)!r}>"


def _sort_key(item: Item) -> Tuple[bytes, ...]:
    return tuple(os.fsencode(part) for part in item.path.parts)


def _is_hidden(name: str) -> bool:
    return name.startswith(".")


# ────────────────────────── walker ────────────────────────────────
class _Walk:
    """Depth-first scandir walk; counts what it had to skip."""

    def __init__(self, follow_symlinks: bool, skip_hidden: bool):
        self.follow  = follow_symlinks
        self.hidden  = skip_hidden
        self.skipped = 0

    def files(self, root: Path) -> Iterator[Path]:
        try:
            st = root.stat() if self.follow else root.lstat()
        except OSError:
            self.skipped += 1
            return
        # explicit stack; nesting depth is not tied to the recursion limit
        stack: List[Tuple[Path, FrozenSet[Tuple[int, int]]]] = [
            (root, frozenset({(st.st_dev, st.st_ino)}))]
        while stack:
            folder, ancestors = stack.pop()
            yield from self._scan(folder, ancestors, stack)

    def _scan(self, folder: Path, ancestors: FrozenSet[Tuple[int, int]],
              stack: list) -> Iterator[Path]:
        try:
            with os.scandir(folder) as it:
                entries = list(it)
        except OSError:
            self.skipped += 1
            return
        for en in entries:
            if self.hidden and _is_hidden(en.name):
                continue
            try:
                is_dir  = en.is_dir(follow_symlinks=self.follow)
                is_file = not is_dir and en.is_file(follow_symlinks=self.follow)
            except OSError:
                self.skipped += 1
                continue
            if is_file:
                yield Path(en.path)
            elif is_dir:
                try:
                    st  = en.stat(follow_symlinks=self.follow)
                except OSError:
                    self.skipped += 1
                    continue
                key = (st.st_dev, st.st_ino)
                if key in ancestors:            # symlink loop
                    self.skipped += 1
                    continue
                stack.append((Path(en.path), ancestors | {key}))
            elif self.follow and en.is_symlink():
                self.skipped += 1               # dangling link

