import importlib, subprocess, sys, types
from pathlib import Path
from unittest import TestCase
from unittest.mock import patch, MagicMock

from demuxers import BeginsWith, Command, DemuxerEntry, HasExts, RuleTable
from playlist import Item, Playlist

# --- prepare minimal vlc stub before importing player ---
vlc_stub = types.ModuleType('vlc')
vlc_stub.Instance = MagicMock()
vlc_stub.EventType = types.SimpleNamespace(MediaPlayerEndReached=object())

with patch.dict(sys.modules, {'vlc': vlc_stub}):
    player = importlib.import_module('player')

ROOT = Path("/music")


def _table():
    return RuleTable([
        DemuxerEntry(name="tfmx", predicates=[BeginsWith("mdat.")],
                     reader_cmd=Command.parse("tfmxplay -o - {}"),
                     extra_args=["--demux=rawaud", "--rawaud-channels=2"]),
        DemuxerEntry(name="midi", predicates=[HasExts("mid midi")],
                     reader_cmd=Command.parse("fluidsynth -F - sf2 {}")),
    ])


def _playlist(*names):
    pl = Playlist()
    pl.items = [Item(Path(n)) for n in names]
    return pl


class InvocationTests(TestCase):
    def test_default_player(self):
        inv = player.build_invocation(Path("a/b.flac"), _table(), ROOT)
        self.assertIsNone(inv.entry)
        self.assertIsNone(inv.reader_argv)
        self.assertEqual(inv.extra_args, [])
        self.assertEqual(inv.path, ROOT / "a" / "b.flac")

    def test_reader_gets_full_path(self):
        inv = player.build_invocation(Path("tfmx/mdat.intro"), _table(), ROOT)
        self.assertEqual(inv.entry.name, "tfmx")
        self.assertEqual(inv.reader_argv, ["tfmxplay", "-o", "-", str(ROOT / "tfmx" / "mdat.intro")])
        self.assertEqual(inv.extra_args, ["--demux=rawaud", "--rawaud-channels=2"])

    def test_extra_args_are_copied(self):
        table = _table()
        inv = player.build_invocation(Path("mdat.x"), table, ROOT)
        inv.extra_args.append("--oops")
        self.assertEqual(table[0].extra_args, ["--demux=rawaud", "--rawaud-channels=2"])


class DemuxPlayerTests(TestCase):
    def setUp(self):
        vlc_stub.Instance.reset_mock()
        self.inst = vlc_stub.Instance.return_value
        self.changes = []
        self.p = player.DemuxPlayer(lambda: self.changes.append(self.p.idx))
        self.p.load(_playlist("a.flac", "mdat.song", "z.mid"), ROOT, _table())
        self.proc = MagicMock()
        self.proc.stdout.fileno.return_value = 7
        self.proc.poll.return_value = None

    def test_instance_without_video(self):
        opts = vlc_stub.Instance.call_args[0][0]
        self.assertIn('--no-video', opts)

    def test_plain_file(self):
        inv = self.p.play_index(0)
        self.assertIsNone(inv.entry)
        self.inst.media_new.assert_called_once_with(str(ROOT / "a.flac"))
        mp = self.inst.media_player_new.return_value
        mp.audio_set_volume.assert_called_with(50)
        mp.play.assert_called()
        self.assertEqual(self.changes, [0])

    def test_demuxed_file(self):
        with patch.object(player.subprocess, 'Popen', return_value=self.proc) as popen:
            inv = self.p.play_index(1)
        self.assertEqual(inv.entry.name, "tfmx")
        argv = popen.call_args[0][0]
        self.assertEqual(argv, ["tfmxplay", "-o", "-", str(ROOT / "mdat.song")])
        self.assertEqual(popen.call_args[1]["stdout"], subprocess.PIPE)
        self.inst.media_new_fd.assert_called_once_with(7)
        media = self.inst.media_new_fd.return_value
        self.assertEqual([c[0][0] for c in media.add_option.call_args_list],
                         ["--demux=rawaud", "--rawaud-channels=2"])

    def test_stop_terminates_reader(self):
        with patch.object(player.subprocess, 'Popen', return_value=self.proc):
            self.p.play_index(1)
        self.p.stop()
        self.proc.terminate.assert_called_once()
        self.proc.stdout.close.assert_called_once()
        self.assertIsNone(self.p.current)

    def test_launch_failure_keeps_current(self):
        self.p.play_index(0)
        mp = self.p.player
        with patch.object(player.subprocess, 'Popen', side_effect=FileNotFoundError("tfmxplay")):
            with self.assertRaises(player.LaunchError):
                self.p.play_index(1)
        self.assertIs(self.p.player, mp)
        mp.stop.assert_not_called()
        self.assertEqual(self.p.idx, 0)

    def test_reader_terminated_when_media_fails(self):
        with patch.object(player.subprocess, 'Popen', return_value=self.proc), \
             patch.object(self.inst, 'media_new_fd', side_effect=RuntimeError("bad fd")):
            with self.assertRaises(RuntimeError):
                self.p.play_index(1)
        self.proc.terminate.assert_called_once()
        self.proc.stdout.close.assert_called_once()
        self.assertIsNone(self.p._reader)
        self.assertIsNone(self.p.current)

    def test_reader_terminated_when_stop_fails(self):
        self.p.play_index(0)
        with patch.object(player.subprocess, 'Popen', return_value=self.proc), \
             patch.object(self.p.player, 'stop', side_effect=RuntimeError("vlc")):
            with self.assertRaises(RuntimeError):
                self.p.play_index(1)
        self.proc.terminate.assert_called_once()
        self.assertIsNone(self.p._reader)
        self.assertEqual(self.p.idx, 0)

    def test_bad_index(self):
        with self.assertRaises(IndexError):
            self.p.play_index(3)

    def test_end_of_track_advances_on_tick(self):
        self.p.play_index(0)
        self.p._next_pending = True
        with patch.object(player.subprocess, 'Popen', return_value=self.proc):
            self.p.tick()
        self.assertEqual(self.p.idx, 1)
        self.assertFalse(self.p._next_pending)

    def test_tick_survives_launch_failure(self):
        self.p.play_index(0)
        self.p._next_pending = True
        with patch.object(player.subprocess, 'Popen', side_effect=PermissionError("denied")):
            with self.assertLogs('player', level='ERROR'):
                self.p.tick()
        self.assertEqual(self.p.idx, 0)

    def test_next_and_prev(self):
        with patch.object(player.subprocess, 'Popen', return_value=self.proc):
            self.p.play_index(0)
            self.p.next_track()
            self.assertEqual(self.p.idx, 1)
            self.p.prev_track()
            self.p.prev_track()
        self.assertEqual(self.p.idx, 0)
        self.assertEqual(self.changes, [0, 1, 0])

    def test_volume_and_speed_clamped(self):
        self.p.play_index(0)
        self.p.set_volume(250)
        self.p.player.audio_set_volume.assert_called_with(100)
        self.p.set_speed(10)
        self.p.player.set_rate.assert_called_with(4.0)

    def test_video_toggle_restarts(self):
        self.p.play_index(0)
        vlc_stub.Instance.reset_mock()
        self.p.set_video(True)
        vlc_stub.Instance.assert_called_once()
        self.assertNotIn('--no-video', vlc_stub.Instance.call_args[0][0])
        self.assertEqual(self.p.current.path, ROOT / "a.flac")

    def test_no_restart_on_same_video_mode(self):
        vlc_stub.Instance.reset_mock()
        self.p.set_video(False)
        vlc_stub.Instance.assert_not_called()
