#!/usr/bin/env python3
# player.py – rev-e11  (2026-10-19)
"""
libVLC wrapper that routes every song through the demuxer rules.

• No matching rule  → VLC opens the file itself
• Matching rule     → reader command is started with `{}` replaced by
  the song path, its stdout is handed to VLC as an fd; the entry's extra
  args become media options
• End of track is flagged from the VLC event thread and acted on in
  tick(), which the GUI calls every 100 ms
"""

from __future__ import annotations
import logging, subprocess
from pathlib import Path
from typing  import Callable, List, Optional

import vlc

from demuxers import DemuxerEntry, RuleTable
from playlist import Playlist

log = logging.getLogger(__name__)


class LaunchError(RuntimeError):
    """The reader command of a custom demuxer could not be started."""


# ───────────────────────────────── invocation
class Invocation:
    """What to run for one song: plain file, or reader argv + extra args."""

    def __init__(self, path: Path, entry: Optional[DemuxerEntry]):
        self.path  = path
        self.entry = entry
        self.reader_argv: Optional[List[str]] = (
            entry.reader_cmd.materialize(path) if entry else None)
        self.extra_args: List[str] = list(entry.extra_args) if entry else []

    def __repr__(self):
        if self.entry is None:
            return f"<Invocation vlc {str(self.path)!r}>"
        return f"<Invocation {self.entry.label!r}: {self.reader_argv!r} | vlc {self.extra_args!r}>"


def build_invocation(rel_path: Path, table: RuleTable, root: Path) -> Invocation:
    path = Path(root) / rel_path
    return Invocation(path, table.resolve(path))


def _terminate(proc: subprocess.Popen) -> None:
    if proc.poll() is None:
        proc.terminate()
        try:
            proc.wait(timeout=1.0)
        except subprocess.TimeoutExpired:
            proc.kill()
    if proc.stdout:
        proc.stdout.close()


# ───────────────────────────────── player
class DemuxPlayer:
    def __init__(self, on_track_change: Callable[[], None], *,
                 video: bool = False, volume: int = 50, speed: float = 1.0):
        self._cb        = on_track_change
        self._video     = video
        self._volume    = volume
        self._speed     = speed
        self._instance  = None
        self._make_instance()

        self._next_pending = False

        self.playlist: Playlist = Playlist()
        self.root: Optional[Path] = None
        self.table: RuleTable = RuleTable()
        self.idx = 0
        self.current: Optional[Invocation] = None
        self.player: vlc.MediaPlayer | None = None
        self._reader: subprocess.Popen | None = None

    # ─────────────────────────────── instance / options
    def _make_instance(self):
        opts = ["--quiet"]
        if not self._video:
            opts.append("--no-video")
        self._instance = vlc.Instance(opts)

    def set_video(self, enable: bool) -> None:
        """Toggle video output; needs a fresh VLC instance."""
        if enable == self._video:
            return
        prev = self._video
        self._video = enable
        cur = self.current is not None
        try:
            self.stop(); self._make_instance()
        except Exception as e:
            log.error("video toggle restart failed: %s", e)
            self._video = prev
            return
        if cur:
            self.play_index(self.idx)

    def set_volume(self, volume: int) -> None:
        self._volume = max(0, min(int(volume), 100))
        if self.player:
            self.player.audio_set_volume(self._volume)

    def set_speed(self, speed: float) -> None:
        self._speed = max(0.25, min(float(speed), 4.0))
        if self.player:
            self.player.set_rate(self._speed)

    # ─────────────────────────────── playlist handling
    def load(self, playlist: Playlist, root: Path, table: RuleTable) -> None:
        self.stop()
        self.playlist = playlist
        self.root     = Path(root)
        self.table    = table
        self.idx      = 0

    def play_index(self, idx: int) -> Invocation:
        item = self.playlist.get(idx)
        if item is None or self.root is None:
            raise IndexError(f"no song at index {idx}")
        inv = build_invocation(item.path, self.table, self.root)
        self._set_media(inv)
        self.idx = idx
        self._cb()
        return inv

    # ─────────────────────────────── media helpers
    def _attach_end_event(self):
        self.player.event_manager().event_attach(
            vlc.EventType.MediaPlayerEndReached,
            lambda *_: setattr(self, "_next_pending", True)
        )

    def _start_reader(self, argv: List[str]) -> subprocess.Popen:
        log.info("starting reader: %s", " ".join(argv))
        try:
            return subprocess.Popen(argv, stdout=subprocess.PIPE,
                                    stderr=subprocess.DEVNULL)
        except OSError as e:
            raise LaunchError(f"could not start {argv[0]!r}: {e}") from e

    def _set_media(self, inv: Invocation):
        reader = self._start_reader(inv.reader_argv) if inv.reader_argv else None
        try:
            media = self._new_media(inv, reader)
        except Exception:
            if reader is not None:
                if self._reader is reader:
                    self._reader = None
                _terminate(reader)
            raise
        self.player = self._instance.media_player_new()
        self.player.set_media(media)
        self._attach_end_event()
        self.player.audio_set_volume(self._volume)
        self.player.play()
        self.player.set_rate(self._speed)
        self.current = inv

    def _new_media(self, inv: Invocation, reader: Optional[subprocess.Popen]):
        self.stop()
        if reader is None:
            log.info("playing %s", inv.path)
            return self._instance.media_new(str(inv.path))
        self._reader = reader
        media = self._instance.media_new_fd(reader.stdout.fileno())
        for opt in inv.extra_args:
            media.add_option(opt)
        return media

    def _stop_reader(self):
        proc, self._reader = self._reader, None
        if proc is None:
            return
        _terminate(proc)

    # ─────────────────────────────── basic controls
    def play(self):   self.player and self.player.play()
    def pause(self):  self.player and self.player.pause()
    def is_playing(self) -> bool:
        return bool(self.player and self.player.is_playing())
    def stop(self):
        if self.player:
            self.player.stop(); self.player = None
        self._stop_reader()
        self.current = None

    def next_track(self):
        if self.idx + 1 < len(self.playlist):
            self.play_index(self.idx + 1)

    def prev_track(self):
        if self.idx > 0:
            self.play_index(self.idx - 1)

    # ─────────────────────────────── position helpers
    def length(self)   -> float: return (self.player.get_length() or 0)/1000 if self.player else 0.0
    def position(self) -> float: return (self.player.get_time()   or 0)/1000 if self.player else 0.0
    def seek(self, s: float):
        if self.player and self._reader is None:    # pipes can't seek
            self.player.set_time(int(s*1000))

    def close(self):
        self.stop()

    # ─────────────────────────────── GUI tick (every 0.1 s)
    def tick(self):
        if self._next_pending:
            self._next_pending = False
            try:
                self.next_track()
            except LaunchError as e:
                log.error("%s", e)
