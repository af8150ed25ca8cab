import os, sys, tempfile, unittest
from pathlib import Path
from types import SimpleNamespace
from unittest import TestCase

from playlist import Item, Playlist

HAS_SYMLINKS = hasattr(os, "symlink") and os.name != "nt"


def _touch(root: Path, *names: str):
    for n in names:
        p = root / n
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_bytes(b"")


def _paths(pl: Playlist):
    return [it.path.as_posix() for it in pl]


def _stack_depth():
    f, n = sys._getframe(), 0
    while f is not None:
        f, n = f.f_back, n + 1
    return n


class PlaylistBuildTests(TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "music"
        self.root.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def test_no_root_is_empty(self):
        pl = Playlist.build(None)
        self.assertEqual(len(pl), 0)
        self.assertIsNone(pl.get(0))

    def test_read_songs_without_folder_keeps_items(self):
        pl = Playlist()
        pl.items.append(Item(Path("old.mp3")))
        pl.read_songs(SimpleNamespace(music_folder=None, follow_symlinks=False, skip_hidden=False))
        self.assertEqual(_paths(pl), ["old.mp3"])

    def test_read_songs_rebuilds(self):
        _touch(self.root, "new.mp3")
        pl = Playlist()
        pl.items.append(Item(Path("old.mp3")))
        pl.read_songs(SimpleNamespace(music_folder=self.root, follow_symlinks=False, skip_hidden=False))
        self.assertEqual(_paths(pl), ["new.mp3"])

    def test_denylist(self):
        _touch(self.root, "cover.jpg", "notes.txt", "track.flac", "scan.png")
        self.assertEqual(_paths(Playlist.build(self.root)), ["track.flac"])

    def test_denylist_is_case_sensitive(self):
        _touch(self.root, "COVER.JPG", "a.Txt", "b.png")
        self.assertEqual(_paths(Playlist.build(self.root)), ["COVER.JPG", "a.Txt"])

    def test_relative_paths_and_directories(self):
        _touch(self.root, "Artist/Album/01.flac", "mdat.tune", "mods/x.xm")
        (self.root / "empty").mkdir()
        pl = Playlist.build(self.root)
        self.assertEqual(_paths(pl), ["Artist/Album/01.flac", "mdat.tune", "mods/x.xm"])
        self.assertFalse(any(it.path.is_absolute() for it in pl))
        self.assertEqual(pl.get(1).path, Path("mdat.tune"))

    def test_component_byte_order(self):
        _touch(self.root, "b.mp3", "a/z.mp3", "A.mp3", "a.mp3", "é.mp3", "Z.mp3")
        self.assertEqual(_paths(Playlist.build(self.root)),
                         ["A.mp3", "Z.mp3", "a/z.mp3", "a.mp3", "b.mp3", "é.mp3"])

    def test_rebuild_is_deterministic(self):
        _touch(self.root, *(f"d{i % 7}/t{i:03}.ogg" for i in range(60)))
        first, second = Playlist.build(self.root), Playlist.build(self.root)
        self.assertEqual(_paths(first), _paths(second))
        self.assertEqual(_paths(first), sorted(_paths(first)))

    def test_rebuild_clears(self):
        _touch(self.root, "a.mp3")
        pl = Playlist.build(self.root)
        (self.root / "a.mp3").unlink()
        _touch(self.root, "b.mp3")
        pl.rebuild(self.root)
        self.assertEqual(_paths(pl), ["b.mp3"])

    def test_hidden_subtree_pruned(self):
        _touch(self.root, "song.mp3", ".hidden.mp3", *(f".git/objects/{i}.mod" for i in range(100)))
        self.assertEqual(_paths(Playlist.build(self.root, skip_hidden=True)), ["song.mp3"])
        everything = Playlist.build(self.root, skip_hidden=False)
        self.assertEqual(len(everything), 102)

    def test_hidden_root_still_scanned(self):
        root = Path(self._tmp.name) / ".music"
        _touch(root, "a.mp3")
        self.assertEqual(_paths(Playlist.build(root, skip_hidden=True)), ["a.mp3"])

    def test_missing_root(self):
        pl = Playlist.build(self.root / "nope")
        self.assertEqual(len(pl), 0)
        self.assertEqual(pl.skipped, 1)

    @unittest.skipUnless(HAS_SYMLINKS, "needs symlinks")
    def test_symlinks_followed_only_when_asked(self):
        outside = Path(self._tmp.name) / "outside"
        _touch(outside, "far.mp3")
        os.symlink(outside, self.root / "linked")
        os.symlink(outside / "far.mp3", self.root / "alias.mp3")
        _touch(self.root, "near.mp3")
        self.assertEqual(_paths(Playlist.build(self.root)), ["near.mp3"])
        self.assertEqual(_paths(Playlist.build(self.root, follow_symlinks=True)),
                         ["alias.mp3", "linked/far.mp3", "near.mp3"])

    @unittest.skipUnless(HAS_SYMLINKS, "needs symlinks")
    def test_symlink_loop_and_dangling_link(self):
        _touch(self.root, "sub/a.mp3")
        os.symlink(self.root, self.root / "sub" / "loop")
        os.symlink(self.root / "gone.mp3", self.root / "dangling.mp3")
        pl = Playlist.build(self.root, follow_symlinks=True)
        self.assertEqual(_paths(pl), ["sub/a.mp3"])
        self.assertEqual(pl.skipped, 2)
        self.assertEqual(_paths(Playlist.build(self.root)), ["sub/a.mp3"])

    @unittest.skipUnless(HAS_SYMLINKS and hasattr(os, "geteuid") and os.geteuid() != 0,
                         "needs permission checks")
    def test_unreadable_dir_skipped(self):
        _touch(self.root, "ok.mp3", "locked/x.mp3")
        locked = self.root / "locked"
        locked.chmod(0)
        try:
            pl = Playlist.build(self.root)
        finally:
            locked.chmod(0o755)
        self.assertEqual(_paths(pl), ["ok.mp3"])
        self.assertEqual(pl.skipped, 1)

    def test_deep_nesting(self):
        depth = 200
        deep = self.root.joinpath(*(["d"] * depth))
        _touch(deep, "bottom.mod")
        _touch(self.root, "top.mod")
        old = sys.getrecursionlimit()
        sys.setrecursionlimit(_stack_depth() + 60)
        try:
            pl = Playlist.build(self.root)
        finally:
            sys.setrecursionlimit(old)
        self.assertEqual(len(pl), 2)
        self.assertEqual(pl.get(0).path, Path(*(["d"] * depth), "bottom.mod"))
        self.assertEqual(pl.get(1).path, Path("top.mod"))
