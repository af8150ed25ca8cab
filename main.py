#!/usr/bin/env python3
# main.py – rev-w47  (2026-10-19)
"""
Demux-Player
────────────
Music-folder player (PySide6 + libVLC) with custom demuxers.

Key features
• Scans the music folder in the background → sorted song list
• Custom demuxers: per-file rules (name prefix / extension) that pipe a
  reader command (e.g. `uade123 -c {}`) into VLC
• Follow-symlinks / skip-hidden scan options, volume, speed, video
• Log window backed by the in-process ring buffer
• Config in config.json (see storage.py), saved on every change
"""

from __future__ import annotations
import logging, sys, threading
from pathlib import Path
from typing import Dict, Optional

from PySide6.QtWidgets import (
    QApplication, QWidget, QListWidget, QListWidgetItem, QVBoxLayout,
    QHBoxLayout, QPushButton, QFileDialog, QLabel, QMessageBox, QFrame,
    QComboBox, QSlider, QDialog, QCheckBox, QDoubleSpinBox, QLineEdit,
    QPlainTextEdit, QTabWidget, QButtonGroup, QToolButton
)
from PySide6.QtGui    import QColor, QPalette
from PySide6.QtCore   import Qt, QTimer, Signal
from mutagen          import File as MFile

import demuxers, logbuffer, player, playlist, storage
from demuxers import BeginsWith, Field, HasExts

log = logging.getLogger("demux-player")

# ═════════════════ 1. constants & helpers ═════════════════
THEMES = {
    "System": None,
    "Mocha Sunrise": {
        "window": "#FFF7F0", "text": "#3C2B1A", "button": "#F3E1D3",
        "base": "#F8ECD9", "highlight": "#C78A5F", "highlight_text": "#000000",
    },
    "Butter Blue": {
        "window": "#FFFFF4", "text": "#003030", "button": "#FFF5BC",
        "base": "#E5F9F5", "highlight": "#007C70", "highlight_text": "#FFFFFF",
    },
    "Neo Noir": {
        "window": "#1B1B22", "text": "#E8E8F2", "button": "#24242E",
        "base": "#0E0E13", "highlight": "#FF007C", "highlight_text": "#000000",
    },
    "Galaxy Stone": {
        "window": "#161616", "text": "#EAEAEA", "button": "#1F1F1F",
        "base": "#0A0A0A", "highlight": "#1E90FF", "highlight_text": "#000000",
    },
}

def apply_theme(name: str) -> None:
    app = QApplication.instance()
    if not app:
        return
    cfg = THEMES.get(name)
    if cfg is None:
        pal = app.style().standardPalette()
    else:
        pal = QPalette()
        pal.setColor(QPalette.Window, QColor(cfg["window"]))
        pal.setColor(QPalette.WindowText, QColor(cfg["text"]))
        pal.setColor(QPalette.Base, QColor(cfg["base"]))
        pal.setColor(QPalette.Text, QColor(cfg["text"]))
        pal.setColor(QPalette.Button, QColor(cfg["button"]))
        pal.setColor(QPalette.ButtonText, QColor(cfg["text"]))
        pal.setColor(QPalette.Highlight, QColor(cfg["highlight"]))
        pal.setColor(QPalette.HighlightedText, QColor(cfg["highlight_text"]))
    app.setPalette(pal)


class FocusTextEdit(QPlainTextEdit):
    """Plain text box that reports focus changes."""
    focused   = Signal()
    unfocused = Signal()

    def focusInEvent(self, e):
        super().focusInEvent(e); self.focused.emit()

    def focusOutEvent(self, e):
        super().focusOutEvent(e); self.unfocused.emit()


class TrackTitles:
    """“Artist – Title” from the tags, else the relative path; cached per file."""

    def __init__(self):
        self._cache: Dict[Path, str] = {}

    def clear(self) -> None:
        self._cache.clear()

    def get(self, path: Path, rel: Path) -> str:
        if path in self._cache:
            return self._cache[path]
        title = artist = ""
        try:
            audio = MFile(path, easy=True)
            if audio is not None and audio.tags:
                title  = (audio.tags.get("title")  or [""])[0]
                artist = (audio.tags.get("artist") or [""])[0]
        except Exception:
            pass        # tracker modules & co. have no tags mutagen understands
        text = f"{artist} – {title}" if title and artist else (title or str(rel))
        self._cache[path] = text
        return text


# ═════════════════ 2. CustomDemuxersDialog ═════════════════
class CustomDemuxersDialog(QDialog):
    """Editor for the rule table; selection is kept by entry id."""
    changed = Signal()

    def __init__(self, table: demuxers.RuleTable, parent=None):
        super().__init__(parent)
        self.setWindowTitle("Custom demuxers"); self.resize(560, 560)
        self.table    = table
        self.session  = demuxers.EditSession()
        self._sel_id: Optional[int] = None
        self._pred_idx = 0
        self._loading  = False
        self._build_widgets(); self._wire_signals()
        self._refresh_list()

    # ---------- UI
    def _build_widgets(self):
        self.list = QListWidget(frameShape=QFrame.NoFrame); self.list.setMaximumHeight(220)
        self.btn_del, self.btn_up, self.btn_down, self.btn_clone, self.btn_add = (
            QPushButton(t) for t in ("🗑 Delete", "⏶ Higher prio", "⏷ Lower prio", "🗐 Clone", "➕ Add"))
        rows = QHBoxLayout(); [rows.addWidget(b) for b in (self.btn_del, self.btn_up, self.btn_down, self.btn_clone)]
        rows.addStretch(); rows.addWidget(self.btn_add)

        self.ed_name = QLineEdit()
        name_row = QHBoxLayout(); name_row.addWidget(QLabel("Name")); name_row.addWidget(self.ed_name, 1)

        # commands tab
        self.ed_cmd  = FocusTextEdit(); self.ed_cmd.setFixedHeight(64)
        self.lbl_err = QLabel(); self.lbl_err.setStyleSheet("color:red;"); self.lbl_err.hide()
        self.ed_args = FocusTextEdit(); self.ed_args.setFixedHeight(64)
        cmds = QWidget(); cv = QVBoxLayout(cmds)
        cv.addWidget(QLabel("Demuxer command")); cv.addWidget(self.ed_cmd); cv.addWidget(self.lbl_err)
        cv.addWidget(QLabel("Example: my-cmd --input {}"))
        cv.addWidget(QLabel("Extra player args")); cv.addWidget(self.ed_args); cv.addStretch()

        # predicates tab
        self.pred_bar = QHBoxLayout(); self.pred_group = QButtonGroup(self); self.pred_group.setExclusive(True)
        self.btn_pred_add = QToolButton(text="➕"); self.btn_pred_add.setToolTip("Add predicate")
        self.cmb_kind = QComboBox(); [self.cmb_kind.addItem(k.label) for k in demuxers.PREDICATE_KINDS]
        self.ed_pred  = QLineEdit()
        self.chk_case = QCheckBox("Case sensitive")
        self.btn_pred_rm = QPushButton("Remove")
        bar = QHBoxLayout(); bar.addLayout(self.pred_bar); bar.addWidget(self.btn_pred_add); bar.addStretch()
        kind_row = QHBoxLayout(); kind_row.addWidget(QLabel("Kind")); kind_row.addWidget(self.cmb_kind, 1)
        self.pred_editor = QWidget(); pe = QVBoxLayout(self.pred_editor); pe.setContentsMargins(0, 0, 0, 0)
        pe.addLayout(kind_row); pe.addWidget(self.ed_pred); pe.addWidget(self.chk_case); pe.addWidget(self.btn_pred_rm)
        preds = QWidget(); pv = QVBoxLayout(preds); pv.addLayout(bar); pv.addWidget(self.pred_editor); pv.addStretch()

        self.tabs = QTabWidget(); self.tabs.addTab(cmds, "Commands"); self.tabs.addTab(preds, "Predicates")
        self.detail = QWidget(); dv = QVBoxLayout(self.detail); dv.setContentsMargins(0, 0, 0, 0)
        dv.addLayout(name_row); dv.addWidget(self.tabs)

        root = QVBoxLayout(self); root.addWidget(self.list); root.addLayout(rows); root.addWidget(self.detail, 1)

    def _wire_signals(self):
        self.list.currentRowChanged.connect(self._on_row)
        self.btn_add.clicked.connect(self._add)
        self.btn_del.clicked.connect(self._remove)
        self.btn_up.clicked.connect(lambda: self._move(-1))
        self.btn_down.clicked.connect(lambda: self._move(1))
        self.btn_clone.clicked.connect(self._clone)
        self.ed_name.textEdited.connect(self._rename)
        for ed, which in ((self.ed_cmd, Field.COMMAND), (self.ed_args, Field.EXTRA_ARGS)):
            ed.focused.connect(lambda w=which: self._begin_edit(w))
            ed.unfocused.connect(lambda w=which: self._end_edit(w))
            ed.textChanged.connect(lambda w=which, e=ed: self._buffer_changed(w, e))
        self.btn_pred_add.clicked.connect(self._add_pred)
        self.pred_group.idClicked.connect(self._select_pred)
        self.cmb_kind.currentIndexChanged.connect(self._change_kind)
        self.ed_pred.textEdited.connect(self._pred_text)
        self.chk_case.toggled.connect(self._pred_case)
        self.btn_pred_rm.clicked.connect(self._remove_pred)

    # ---------- selection
    def _selected(self) -> Optional[demuxers.DemuxerEntry]:
        return self.table.get(self._sel_id)

    def _sel_row(self) -> Optional[int]:
        return None if self._sel_id is None else self.table.index_of(self._sel_id)

    def _refresh_list(self):
        self._loading = True
        self.list.clear()
        for entry in self.table:
            self.list.addItem(entry.label)
        row = self._sel_row()
        if row is None and len(self.table):
            row = 0
            self._sel_id = self.table[0].id
        if row is not None:
            self.list.setCurrentRow(row)
        self._loading = False
        self._refresh_buttons(); self._refresh_detail()

    def _refresh_buttons(self):
        row = self._sel_row()
        has = row is not None
        self.btn_del.setEnabled(has); self.btn_clone.setEnabled(has)
        self.btn_up.setEnabled(has and row > 0)
        self.btn_down.setEnabled(has and row < len(self.table) - 1)

    def _on_row(self, row: int):
        if self._loading:
            return
        self._sel_id = self.table[row].id if 0 <= row < len(self.table) else None
        self._pred_idx = 0
        self._refresh_buttons(); self._refresh_detail()

    # ---------- table ops
    def _add(self):
        idx = self.table.add()
        self._sel_id = self.table[idx].id
        self._refresh_list(); self.changed.emit()

    def _remove(self):
        row = self._sel_row()
        if row is None:
            return
        self.table.remove(row)
        self._sel_id = None
        if len(self.table):
            self._sel_id = self.table[min(row, len(self.table) - 1)].id
        self._refresh_list(); self.changed.emit()

    def _move(self, delta: int):
        row = self._sel_row()
        if row is None:
            return
        self.table.swap_priority(row, row + delta)
        self._refresh_list(); self.changed.emit()

    def _clone(self):
        row = self._sel_row()
        if row is None:
            return
        self.table.clone(row)
        self._refresh_list(); self.changed.emit()

    def _rename(self, text: str):
        entry = self._selected()
        if entry:
            entry.name = text
            row = self.table.index_of(entry.id)
            self.list.item(row).setText(entry.label)
            self.changed.emit()

    # ---------- command / args fields
    def _field_widget(self, which: Field) -> FocusTextEdit:
        return self.ed_cmd if which is Field.COMMAND else self.ed_args

    def _show_text(self, which: Field, text: str):
        ed = self._field_widget(which)
        if ed.toPlainText() != text:
            self._loading = True; ed.setPlainText(text); self._loading = False

    def _begin_edit(self, which: Field):
        entry = self._selected()
        if entry:
            self.session.begin(entry, which)
            self._show_text(which, self.session.buffer)

    def _buffer_changed(self, which: Field, ed: FocusTextEdit):
        entry = self._selected()
        if not self._loading and entry and self.session.is_editing(entry.id, which):
            self.session.buffer = ed.toPlainText()

    def _end_edit(self, which: Field):
        entry = self._selected()
        if not entry or not self.session.is_editing(entry.id, which):
            return
        if self.session.commit(self.table):
            self.changed.emit()
        self._show_text(which, demuxers.view_text(entry, which))
        self._refresh_error()

    def _refresh_error(self):
        self.lbl_err.setText(self.session.error); self.lbl_err.setVisible(bool(self.session.error))

    # ---------- predicates
    def _add_pred(self):
        entry = self._selected()
        if entry:
            entry.predicates.append(HasExts())
            self._pred_idx = len(entry.predicates) - 1
            self._refresh_preds(); self.changed.emit()

    def _select_pred(self, i: int):
        self._pred_idx = i; self._refresh_preds()

    def _cur_pred(self):
        entry = self._selected()
        if entry and 0 <= self._pred_idx < len(entry.predicates):
            return entry, entry.predicates[self._pred_idx]
        return entry, None

    def _change_kind(self, i: int):
        entry, pred = self._cur_pred()
        kind = demuxers.PREDICATE_KINDS[i]
        if self._loading or pred is None or isinstance(pred, kind):
            return
        entry.predicates[self._pred_idx] = kind()
        self._refresh_preds(); self.changed.emit()

    def _pred_text(self, text: str):
        _, pred = self._cur_pred()
        if isinstance(pred, BeginsWith):
            pred.fragment = text
        elif isinstance(pred, HasExts):
            pred.ext_list = text
        else:
            return
        self.changed.emit()

    def _pred_case(self, on: bool):
        _, pred = self._cur_pred()
        if not self._loading and isinstance(pred, HasExts):
            pred.case_sensitive = on; self.changed.emit()

    def _remove_pred(self):
        entry, pred = self._cur_pred()
        if pred is not None:
            del entry.predicates[self._pred_idx]
            self._pred_idx = max(0, min(self._pred_idx, len(entry.predicates) - 1))
            self._refresh_preds(); self.changed.emit()

    def _refresh_preds(self):
        for b in self.pred_group.buttons():
            self.pred_group.removeButton(b); self.pred_bar.removeWidget(b); b.deleteLater()
        entry, pred = self._cur_pred()
        for i in range(len(entry.predicates) if entry else 0):
            b = QToolButton(text=str(i + 1), checkable=True, checked=(i == self._pred_idx))
            self.pred_group.addButton(b, i); self.pred_bar.addWidget(b)
        self.pred_editor.setVisible(pred is not None)
        if pred is None:
            return
        self._loading = True
        self.cmb_kind.setCurrentIndex(demuxers.PREDICATE_KINDS.index(type(pred)))
        self.cmb_kind.setToolTip(pred.description)
        self.ed_pred.setPlaceholderText(pred.description)
        self.ed_pred.setText(pred.fragment if isinstance(pred, BeginsWith) else pred.ext_list)
        self.chk_case.setVisible(isinstance(pred, HasExts))
        self.chk_case.setChecked(isinstance(pred, HasExts) and pred.case_sensitive)
        self._loading = False

    # ---------- detail pane
    def _refresh_detail(self):
        entry = self._selected()
        self.detail.setEnabled(entry is not None)
        if entry is None:
            self.ed_name.clear(); self._show_text(Field.COMMAND, ""); self._show_text(Field.EXTRA_ARGS, "")
            self._refresh_preds()
            return
        if self.ed_name.text() != entry.name:
            self.ed_name.setText(entry.name)
        for which in Field:
            self._show_text(which, self.session.text(entry, which))
        self._refresh_error(); self._refresh_preds()


# ═════════════════ 3. LogWindow ═════════════════
class LogWindow(QDialog):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setWindowTitle("🖳 Log"); self.resize(720, 400)
        self.view = QPlainTextEdit(readOnly=True); self.view.setLineWrapMode(QPlainTextEdit.NoWrap)
        btn_clear = QPushButton("Clear")
        lay = QVBoxLayout(self); lay.addWidget(self.view, 1); lay.addWidget(btn_clear, 0, Qt.AlignRight)
        btn_clear.clicked.connect(self._clear)
        self._shown = -1
        QTimer(self, interval=500, timeout=self._refresh).start()

    def _clear(self):
        buf = logbuffer.get()
        if buf: buf.clear()
        self._refresh()

    def _refresh(self):
        buf = logbuffer.get()
        lines = buf.lines() if buf else []
        if len(lines) == self._shown and lines:
            return
        self._shown = len(lines)
        self.view.setPlainText("\n".join(lines))
        self.view.verticalScrollBar().setValue(self.view.verticalScrollBar().maximum())


# ═════════════════ 4. MainWindow ═════════════════
class MainWindow(QWidget):
    scanDone = Signal(object)          # playlist.Playlist, from the scan thread

    def __init__(self, cfg: storage.Config):
        super().__init__()
        self.setWindowTitle("Demux-Player"); self.resize(900, 600)
        self.cfg = cfg
        self._songs = playlist.Playlist()
        self._titles = TrackTitles()
        self._scanning = False
        self._rescan_pending = False
        self._demux_dlg: Optional[CustomDemuxersDialog] = None
        self._log_dlg: Optional[LogWindow] = None

        self._build_widgets(); self._load_settings()
        self._player = player.DemuxPlayer(self._on_track_change, video=cfg.video,
                                          volume=cfg.volume, speed=cfg.speed)
        self._wire_signals()
        apply_theme(cfg.theme)
        QTimer(self, interval=100, timeout=self._player.tick).start()
        self._rescan()

    # ---------- UI
    def _build_widgets(self):
        self.lbl_folder = QLabel(); self.lbl_folder.setTextInteractionFlags(Qt.TextSelectableByMouse)
        self.btn_folder, self.btn_scan, self.btn_demux, self.btn_log = (
            QPushButton(t) for t in ("Folder…", "Rescan", "Custom demuxers", "Log"))
        self.chk_symlinks = QCheckBox("Follow symlinks")
        self.chk_hidden   = QCheckBox("Skip hidden")
        self.cmb_theme    = QComboBox(); self.cmb_theme.addItems(list(THEMES))
        tb = QHBoxLayout(); [tb.addWidget(w) for w in (self.btn_folder, self.btn_scan, self.chk_symlinks, self.chk_hidden)]
        tb.addStretch(); [tb.addWidget(w) for w in (self.cmb_theme, self.btn_demux, self.btn_log)]

        self.songs = QListWidget(frameShape=QFrame.NoFrame)
        self.lbl_now = QLabel("Stopped", alignment=Qt.AlignCenter); self.lbl_now.setStyleSheet("font-weight:bold;")

        self.btn_prev, self.btn_play, self.btn_stop, self.btn_next = (
            QPushButton(t) for t in ("Prev", "Play/Pause", "Stop", "Next"))
        self.sld_volume = QSlider(Qt.Horizontal); self.sld_volume.setRange(0, 100); self.sld_volume.setFixedWidth(140)
        self.spn_speed  = QDoubleSpinBox(decimals=2, minimum=0.25, maximum=4.0, singleStep=0.05, suffix="×")
        self.chk_video  = QCheckBox("Video")
        pb = QHBoxLayout(); [pb.addWidget(b) for b in (self.btn_prev, self.btn_play, self.btn_stop, self.btn_next)]
        pb.addStretch(); pb.addWidget(QLabel("Vol")); pb.addWidget(self.sld_volume)
        pb.addWidget(QLabel("Speed")); pb.addWidget(self.spn_speed); pb.addWidget(self.chk_video)

        root = QVBoxLayout(self); root.addLayout(tb); root.addWidget(self.lbl_folder)
        root.addWidget(self.songs, 1); root.addWidget(self.lbl_now); root.addLayout(pb)

    def _load_settings(self):
        c = self.cfg
        self.lbl_folder.setText(str(c.music_folder) if c.music_folder else "No music folder – pick one with “Folder…”")
        self.chk_symlinks.setChecked(c.follow_symlinks); self.chk_hidden.setChecked(c.skip_hidden)
        self.sld_volume.setValue(c.volume); self.spn_speed.setValue(c.speed); self.chk_video.setChecked(c.video)
        idx = self.cmb_theme.findText(c.theme)
        self.cmb_theme.setCurrentIndex(idx if idx >= 0 else 0)

    # ---------- signals
    def _wire_signals(self):
        self.scanDone.connect(self._on_scan_done)
        self.btn_folder.clicked.connect(self._pick_folder)
        self.btn_scan.clicked.connect(self._rescan)
        self.btn_demux.clicked.connect(self._open_demuxers)
        self.btn_log.clicked.connect(self._open_log)
        self.chk_symlinks.toggled.connect(lambda on: self._set_scan_opt("follow_symlinks", on))
        self.chk_hidden.toggled.connect(lambda on: self._set_scan_opt("skip_hidden", on))
        self.cmb_theme.currentTextChanged.connect(self._set_theme)
        self.songs.itemDoubleClicked.connect(lambda *_: self._play_row(self.songs.currentRow()))
        self.btn_play.clicked.connect(self._toggle_play)
        self.btn_stop.clicked.connect(lambda: (self._player.stop(), self._on_track_change()))
        self.btn_prev.clicked.connect(lambda: self._guard(self._player.prev_track))
        self.btn_next.clicked.connect(lambda: self._guard(self._player.next_track))
        self.sld_volume.valueChanged.connect(self._set_volume)
        self.spn_speed.valueChanged.connect(self._set_speed)
        self.chk_video.toggled.connect(self._set_video)

    # ═════════════════ 5. settings ═════════════════
    def _save(self):
        try:
            storage.save(self.cfg)
        except OSError as e:
            log.error("could not save config: %s", e)

    def _pick_folder(self):
        start = str(self.cfg.music_folder or Path.home())
        folder = QFileDialog.getExistingDirectory(self, "Choose music folder", start)
        if not folder:
            return
        self.cfg.music_folder = Path(folder)
        self._titles.clear()
        self.lbl_folder.setText(folder)
        self._save(); self._rescan()

    def _set_scan_opt(self, name: str, on: bool):
        setattr(self.cfg, name, on); self._save(); self._rescan()

    def _set_theme(self, name: str):
        self.cfg.theme = name; apply_theme(name); self._save()

    def _set_volume(self, v: int):
        self.cfg.volume = v; self._player.set_volume(v); self._save()

    def _set_speed(self, s: float):
        self.cfg.speed = s; self._player.set_speed(s); self._save()

    def _set_video(self, on: bool):
        self.cfg.video = on; self._guard(lambda: self._player.set_video(on)); self._save()

    def _open_demuxers(self):
        if self._demux_dlg is None:
            self._demux_dlg = CustomDemuxersDialog(self.cfg.custom_demuxers, self)
            self._demux_dlg.changed.connect(self._save)
        self._demux_dlg.show(); self._demux_dlg.raise_()

    def _open_log(self):
        if self._log_dlg is None:
            self._log_dlg = LogWindow(self)
        self._log_dlg.show(); self._log_dlg.raise_()

    # ═════════════════ 6. scanning ═════════════════
    def _rescan(self):
        c = self.cfg
        if c.music_folder is None:
            return
        if self._scanning:
            self._rescan_pending = True; return
        self._scanning = True; self._rescan_pending = False; self.btn_scan.setEnabled(False)
        args = (c.music_folder, c.follow_symlinks, c.skip_hidden)
        threading.Thread(target=lambda: self.scanDone.emit(playlist.Playlist.build(*args)),
                         daemon=True).start()

    def _on_scan_done(self, songs: playlist.Playlist):
        self._scanning = False; self.btn_scan.setEnabled(True)
        self._songs = songs
        log.info("%d songs in %s (%d entries skipped)", len(songs), self.cfg.music_folder, songs.skipped)
        self.songs.clear()
        for item in songs:
            it = QListWidgetItem(self._display(item.path))
            it.setToolTip(str(item.path))
            self.songs.addItem(it)
        if self._rescan_pending:
            self._rescan()

    # ═════════════════ 7. metadata ═════════════════
    def _display(self, rel: Path) -> str:
        return self._titles.get(self.cfg.music_folder / rel, rel)

    # ═════════════════ 8. playback ═════════════════
    def _guard(self, fn):
        try:
            fn()
        except player.LaunchError as e:
            log.error("%s", e)
            QMessageBox.warning(self, "Demuxer", str(e))

    def _play_row(self, row: int):
        if not 0 <= row < len(self._songs) or self.cfg.music_folder is None:
            return
        if self._player.playlist is not self._songs:
            self._player.load(self._songs, self.cfg.music_folder, self.cfg.custom_demuxers)
        self._guard(lambda: self._player.play_index(row))

    def _toggle_play(self):
        if self._player.is_playing(): self._player.pause()
        elif self._player.player: self._player.play()
        else: self._play_row(max(0, self.songs.currentRow()))

    def _on_track_change(self, *_):
        inv = self._player.current
        if inv is None:
            self.lbl_now.setText("Stopped"); return
        self.songs.setCurrentRow(self._player.idx)
        via = f"  [{inv.entry.label}]" if inv.entry else ""
        self.lbl_now.setText(self.songs.currentItem().text() + via if self.songs.currentItem() else str(inv.path))

    # ═════════════════ 9. close ═════════════════
    def closeEvent(self, e):
        self._player.close(); self._save(); super().closeEvent(e)


# ═════════════════ 10. entry-point ═════════════════
def load_config() -> storage.Config:
    """Stored config → backup → defaults."""
    for loader in (storage.load, storage.load_backup):
        try:
            cfg = loader()
        except (storage.ConfigError, OSError) as e:
            log.warning("config: %s", e)
            continue
        if cfg is not None:
            return cfg
    return storage.Config()


def main() -> int:
    logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    for h in logging.getLogger().handlers:
        h.setLevel(logging.INFO)        # stderr stays quiet, log window gets debug
    logbuffer.install(logging.DEBUG)
    app = QApplication(sys.argv)
    win = MainWindow(load_config()); win.show()
    return app.exec()


if __name__ == "__main__":
    sys.exit(main())
