#!/usr/bin/env python3
# demuxers.py – rev-d3  (2026-10-19)
"""
Custom demuxer rules: which reader command plays which file.

• Command   – reader invocation parsed from one line of text, `{}` marks
  the song path  (e.g. `uade123 -c {}`)
• BeginsWith / HasExts – the two file predicates
• DemuxerEntry – name + predicates + reader command + extra player args
• RuleTable – ordered entries, first matching entry wins
• EditSession – single in-flight text edit of a command / args field

JSON shape is the one stored under `custom_demuxers` in config.json.
Old configs stored the extension predicate as a bare string; that form
is still read (always case-insensitive) but never written.
"""

from __future__ import annotations
import copy, enum, itertools, logging, os, re, string
from dataclasses import dataclass, field
from pathlib import PurePath
from typing  import Any, Dict, Iterator, List, Optional, Tuple, Union

log = logging.getLogger(__name__)

PathLike = Union[str, "os.PathLike[str]"]

# Unicode White_Space; str.split() would also break on the \x1c-\x1f separators
_WHITESPACE = re.compile("[\t\n\x0b\x0c\r \x85\xa0\u1680\u2000-\u200a\u2028\u2029\u202f\u205f\u3000]+")


def split_words(text: str) -> List[str]:
    return [w for w in _WHITESPACE.split(text) if w]


class ConfigError(ValueError):
    """Persisted data does not have the expected shape."""


# ────────────────────────── command template ──────────────────────
class CommandParseError(ValueError):
    """Raised by Command.parse; `kind` says what went wrong."""

    def __init__(self, kind: "ExpectedButEnd"):
        super().__init__(f"parse error: {kind}")
        self.kind = kind


@dataclass(frozen=True)
class ExpectedButEnd:
    what: str
    def __str__(self):
        return f"Expected {self.what}, but reached end."


@dataclass(frozen=True)
class Custom:
    """Literal argument, passed through verbatim."""
    text: str
    def __str__(self):
        return self.text


class _SongPath:
    """Placeholder replaced by the file being played."""
    _inst: "_SongPath | None" = None

    def __new__(cls):
        if cls._inst is None:
            cls._inst = super().__new__(cls)
        return cls._inst
    def __repr__(self):
        return "SongPath"
    def __str__(self):
        return "{}"
    def __copy__(self):
        return self
    def __deepcopy__(self, memo):
        return self


SongPath = _SongPath()
Arg = Union[Custom, _SongPath]


@dataclass
class Command:
    name: str = ""
    args: List[Arg] = field(default_factory=list)

    @classmethod
    def parse(cls, src: str) -> "Command":
        """Split *src* on whitespace; no quoting, `{}` is the song path."""
        tokens = split_words(src)
        if not tokens:
            raise CommandParseError(ExpectedButEnd("command"))
        args: List[Arg] = [SongPath if tok == "{}" else Custom(tok) for tok in tokens[1:]]
        return cls(name=tokens[0], args=args)

    def serialize(self) -> str:
        return f"{self.name} " + "".join(f"{arg} " for arg in self.args)

    __str__ = serialize

    def materialize(self, song_path: PathLike) -> List[str]:
        """argv ready for subprocess, every `{}` replaced by *song_path*."""
        path = os.fspath(song_path)
        return [self.name, *(path if arg is SongPath else arg.text for arg in self.args)]

    # ---------- json
    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "args": ["SongPath" if a is SongPath else {"Custom": a.text} for a in self.args],
        }

    @classmethod
    def from_json(cls, obj: Any) -> "Command":
        if not isinstance(obj, dict):
            raise ConfigError(f"reader_cmd: expected object, got {type(obj).__name__}")
        name, args = obj.get("name"), obj.get("args")
        if not isinstance(name, str) or not isinstance(args, list):
            raise ConfigError("reader_cmd: needs string `name` and list `args`")
        return cls(name=name, args=[_arg_from_json(a) for a in args])


def _arg_from_json(obj: Any) -> Arg:
    if obj == "SongPath" or obj == {"SongPath": None}:
        return SongPath
    if isinstance(obj, dict) and len(obj) == 1 and isinstance(obj.get("Custom"), str):
        return Custom(obj["Custom"])
    raise ConfigError(f"unknown command argument: {obj!r}")


# ────────────────────────── path helpers ──────────────────────────
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)

def file_name(path: PathLike) -> Optional[str]:
    name = PurePath(path).name
    if name in ("", ".", ".."):
        return None
    return name

def file_extension(path: PathLike) -> Optional[str]:
    """Text after the last dot of the file name; None for `.bashrc` or `README`."""
    name = file_name(path)
    if name is None:
        return None
    stem, dot, ext = name.rpartition(".")
    if not dot or not stem:
        return None
    return ext

def _is_text(s: str) -> bool:
    # undecodable bytes come back from os.* as lone surrogates
    try:
        s.encode("utf-8")
    except UnicodeEncodeError:
        return False
    return True


# ────────────────────────── predicates ────────────────────────────
@dataclass
class BeginsWith:
    fragment: str = ""

    label       = "Begins with"
    description = "Begins with a string (e.g. `mdat.`) for TFMX files"

    def matches(self, path: PathLike) -> bool:
        name = file_name(path)
        if name is None or not _is_text(name):
            return False
        return name.startswith(self.fragment)

    def to_json(self) -> Dict[str, Any]:
        return {"BeginsWith": self.fragment}


@dataclass
class HasExts:
    ext_list: str = ""            # space separated, e.g. "mod xm it"
    case_sensitive: bool = False

    label       = "Has extension(s)"
    description = "Space separated list of file extensions (e.g. `mod xm it`) for module files"

    def matches(self, path: PathLike) -> bool:
        ext = file_extension(path)
        if ext is None:
            return False
        if self.case_sensitive:
            return any(ext == cand for cand in split_words(self.ext_list))
        ext = ext.translate(_ASCII_LOWER)
        return any(ext == cand.translate(_ASCII_LOWER) for cand in split_words(self.ext_list))

    def to_json(self) -> Dict[str, Any]:
        return {"HasExts": {"ext_list": self.ext_list, "case_sensitive": self.case_sensitive}}


Predicate = Union[BeginsWith, HasExts]
PREDICATE_KINDS = (BeginsWith, HasExts)


def matches_any(predicates: List[Predicate], path: PathLike) -> bool:
    return any(pred.matches(path) for pred in predicates)


def predicate_from_json(obj: Any) -> Predicate:
    if not isinstance(obj, dict) or len(obj) != 1:
        raise ConfigError(f"predicate must be a single-key object: {obj!r}")
    (tag, val), = obj.items()
    if tag == "BeginsWith":
        if not isinstance(val, str):
            raise ConfigError("BeginsWith: expected string")
        return BeginsWith(val)
    if tag in ("HasExts", "HasExt"):
        if isinstance(val, str):                     # v1: bare ext list
            return HasExts(ext_list=val, case_sensitive=False)
        if (isinstance(val, dict) and isinstance(val.get("ext_list"), str)
                and isinstance(val.get("case_sensitive"), bool)):
            return HasExts(ext_list=val["ext_list"], case_sensitive=val["case_sensitive"])
        raise ConfigError(f"{tag}: expected string or {{ext_list, case_sensitive}}")
    raise ConfigError(f"unknown predicate kind: {tag!r}")


# ────────────────────────── entries / table ───────────────────────
_next_id = itertools.count(1)


@dataclass
class DemuxerEntry:
    name: str = ""
    predicates: List[Predicate] = field(default_factory=list)
    reader_cmd: Command = field(default_factory=Command)
    extra_args: List[str] = field(default_factory=list)
    # runtime only – survives reordering, never written to disk
    id: int = field(default_factory=lambda: next(_next_id), compare=False, repr=False)

    @property
    def label(self) -> str:
        return self.name or "<unnamed demuxer>"

    def matches(self, path: PathLike) -> bool:
        return matches_any(self.predicates, path)

    def clone(self) -> "DemuxerEntry":
        dup = copy.deepcopy(self)
        dup.id = next(_next_id)
        return dup

    def to_json(self) -> Dict[str, Any]:
        return {
            "predicates":     [p.to_json() for p in self.predicates],
            "reader_cmd":     self.reader_cmd.to_json(),
            "extra_mpv_args": list(self.extra_args),
            "name":           self.name,
        }

    @classmethod
    def from_json(cls, obj: Any) -> "DemuxerEntry":
        if not isinstance(obj, dict):
            raise ConfigError("custom demuxer entry must be an object")
        for key in ("predicates", "reader_cmd", "extra_mpv_args"):
            if key not in obj:
                raise ConfigError(f"custom demuxer entry: missing `{key}`")
        preds, extra, name = obj["predicates"], obj["extra_mpv_args"], obj.get("name", "")
        if not isinstance(preds, list):
            raise ConfigError("predicates: expected list")
        if not isinstance(extra, list) or not all(isinstance(a, str) for a in extra):
            raise ConfigError("extra_mpv_args: expected list of strings")
        if not isinstance(name, str):
            raise ConfigError("name: expected string")
        return cls(name=name,
                   predicates=[predicate_from_json(p) for p in preds],
                   reader_cmd=Command.from_json(obj["reader_cmd"]),
                   extra_args=list(extra))


class RuleTable:
    """Ordered demuxer entries; index 0 has the highest priority."""

    def __init__(self, entries: Optional[List[DemuxerEntry]] = None):
        self.entries: List[DemuxerEntry] = list(entries or [])

    def __len__(self):
        return len(self.entries)
    def __iter__(self) -> Iterator[DemuxerEntry]:
        return iter(self.entries)
    def __getitem__(self, idx: int) -> DemuxerEntry:
        return self.entries[idx]
    def __repr__(self):
        return f"<RuleTable {[e.label for e in self.entries]!r}>"

    def resolve(self, path: PathLike) -> Optional[DemuxerEntry]:
        for entry in self.entries:
            if entry.matches(path):
                log.debug("%s → demuxer %r", path, entry.label)
                return entry
        return None

    # ---------- editing
    def add(self) -> int:
        self.entries.append(DemuxerEntry())
        return len(self.entries) - 1

    def remove(self, idx: int) -> DemuxerEntry:
        return self.entries.pop(idx)

    def clone(self, idx: int) -> int:
        """Insert a deep copy *before* entry idx; the copy takes over idx."""
        self.entries.insert(idx, self.entries[idx].clone())
        return idx

    def swap_priority(self, i: int, j: int) -> None:
        n = len(self.entries)
        if not (0 <= i < n and 0 <= j < n):
            return
        self.entries[i], self.entries[j] = self.entries[j], self.entries[i]

    # ---------- stable ids
    def index_of(self, entry_id: int) -> Optional[int]:
        return next((i for i, e in enumerate(self.entries) if e.id == entry_id), None)

    def get(self, entry_id: Optional[int]) -> Optional[DemuxerEntry]:
        idx = None if entry_id is None else self.index_of(entry_id)
        return None if idx is None else self.entries[idx]

    # ---------- json
    def to_json(self) -> List[Dict[str, Any]]:
        return [e.to_json() for e in self.entries]

    @classmethod
    def from_json(cls, obj: Any) -> "RuleTable":
        if not isinstance(obj, list):
            raise ConfigError("custom_demuxers: expected list")
        return cls([DemuxerEntry.from_json(e) for e in obj])


# ────────────────────────── edit session ──────────────────────────
class Field(enum.Enum):
    COMMAND    = "command"
    EXTRA_ARGS = "extra_args"


def view_text(entry: DemuxerEntry, which: Field) -> str:
    if which is Field.COMMAND:
        return str(entry.reader_cmd)
    return " ".join(entry.extra_args)


class EditSession:
    """
    One text buffer for the whole table.

    Viewing shows text derived from the entry; begin() copies that text
    into the buffer, commit() writes it back (command: only if it parses).
    """

    def __init__(self):
        self.target: Optional[Tuple[int, Field]] = None
        self.buffer = ""
        self.error  = ""

    def is_editing(self, entry_id: int, which: Field) -> bool:
        return self.target == (entry_id, which)

    def text(self, entry: DemuxerEntry, which: Field) -> str:
        return self.buffer if self.is_editing(entry.id, which) else view_text(entry, which)

    def begin(self, entry: DemuxerEntry, which: Field) -> Optional[Tuple[int, Field]]:
        """Start editing; returns the target whose uncommitted buffer was dropped."""
        dropped = None
        if self.target is not None and self.target != (entry.id, which):
            dropped = self.target
            log.debug("discarding edit of %s on entry %d", dropped[1].value, dropped[0])
        self.target = (entry.id, which)
        self.buffer = view_text(entry, which)
        return dropped

    def cancel(self) -> None:
        self.target = None
        self.buffer = ""

    def commit(self, table: RuleTable) -> bool:
        """Apply the buffer to its entry; False if nothing was changed."""
        if self.target is None:
            return False
        entry_id, which = self.target
        buf = self.buffer
        self.cancel()
        entry = table.get(entry_id)
        if entry is None:
            return False
        if which is Field.EXTRA_ARGS:
            entry.extra_args = split_words(buf)
            return True
        try:
            entry.reader_cmd = Command.parse(buf)
        except CommandParseError as e:
            self.error = str(e)
            return False
        self.error = ""
        return True
