from __future__ import annotations

from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict

from .errors import ParseError
from .models import Settings
from .theory import INTERVAL_LABELS, Pitch

FRET_MARKERS = frozenset({3, 5, 7, 9, 12, 15, 17, 19, 21, 24})
DOUBLE_FRET_MARKERS = frozenset({12, 24})
DEFAULT_MAX_FRETS = 24


class InstrumentFamily(str, Enum):
	GUITAR = "guitar"
	BASS = "bass"
	UKULELE = "ukulele"
	MANDOLIN = "mandolin"
	BANJO = "banjo"

	@property
	def display_name(self) -> str:
		return self.value.capitalize()


def family_for_name(name: str) -> InstrumentFamily:
	lower = name.lower()
	for fam in (InstrumentFamily.BASS, InstrumentFamily.UKULELE, InstrumentFamily.MANDOLIN, InstrumentFamily.BANJO):
		if fam.value in lower:
			return fam
	return InstrumentFamily.GUITAR


class FretPosition(BaseModel):
	model_config = ConfigDict(frozen=True)

	string_index: int
	fret_number: int
	pitch: Pitch

	@property
	def is_open(self) -> bool:
		return self.fret_number == 0


class Tuning(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	open_strings: Tuple[str, ...]
	family: InstrumentFamily = InstrumentFamily.GUITAR

	@property
	def string_count(self) -> int:
		return len(self.open_strings)

	@property
	def string_pitches(self) -> List[Pitch]:
		return [Pitch.from_name(s) for s in self.open_strings]

	@property
	def string_midis(self) -> List[int]:
		return [p.midi for p in self.string_pitches]

	@property
	def lowest_pitch(self) -> Pitch:
		return min(self.string_pitches, key=lambda p: p.midi)

	@property
	def highest_pitch(self) -> Pitch:
		return max(self.string_pitches, key=lambda p: p.midi)

	@property
	def range_semitones(self) -> int:
		return self.highest_pitch.midi - self.lowest_pitch.midi

	def pitch_at(self, string_index: int, fret: int) -> Pitch:
		if not 0 <= string_index < self.string_count:
			raise IndexError(f"{self.name} has no string {string_index}")
		open_pitch = self.string_pitches[string_index]
		return open_pitch.transpose(fret)

	def find_note_positions(self, pitch: Pitch, max_frets: int = DEFAULT_MAX_FRETS) -> List[FretPosition]:
		"""Every (string, fret) sounding ``pitch``; a pitch on several strings yields several positions."""
		out = []
		for idx, midi in enumerate(self.string_midis):
			fret = pitch.midi - midi
			if 0 <= fret <= max_frets:
				out.append(FretPosition(string_index=idx, fret_number=fret, pitch=pitch))
		return out

	def can_play_note(self, pitch: Pitch, max_frets: int = DEFAULT_MAX_FRETS) -> bool:
		return any(0 <= pitch.midi - midi <= max_frets for midi in self.string_midis)

	def pitch_classes_for(self, positions: Iterable[Tuple[int, int]]) -> List[int]:
		out: List[int] = []
		for string_index, fret in positions:
			pc = self.pitch_at(string_index, fret).pitch_class
			if pc not in out:
				out.append(pc)
		return out

	def transpose(self, semitones: int) -> "Tuning":
		sign = "+" if semitones > 0 else ""
		return Tuning(
			name=f"{self.name} ({sign}{semitones})",
			open_strings=tuple(p.transpose(semitones).full_name for p in self.string_pitches),
			family=self.family,
		)


_STANDARD_TUNINGS: Dict[str, Tuple[str, ...]] = {
	"Guitar (6-string)": ("E2", "A2", "D3", "G3", "B3", "E4"),
	"Guitar (7-string)": ("B1", "E2", "A2", "D3", "G3", "B3", "E4"),
	"Guitar (8-string)": ("F#1", "B1", "E2", "A2", "D3", "G3", "B3", "E4"),
	"Bass (4-string)": ("E1", "A1", "D2", "G2"),
	"Bass (5-string)": ("B0", "E1", "A1", "D2", "G2"),
	"Bass (6-string)": ("B0", "E1", "A1", "D2", "G2", "C3"),
	"Ukulele": ("G4", "C4", "E4", "A4"),
	"Mandolin": ("G3", "D4", "A4", "E5"),
	"Banjo (5-string)": ("G4", "D3", "G3", "B3", "D4"),
	"Drop D": ("D2", "A2", "D3", "G3", "B3", "E4"),
	"Drop C": ("C2", "G2", "C3", "F3", "A3", "D4"),
	"Drop B": ("B1", "F#2", "B2", "E3", "G#3", "C#4"),
	"Open G": ("D2", "G2", "D3", "G3", "B3", "D4"),
	"Open D": ("D2", "A2", "D3", "F#3", "A3", "D4"),
	"Open E": ("E2", "B2", "E3", "G#3", "B3", "E4"),
	"DADGAD": ("D2", "A2", "D3", "G3", "A3", "D4"),
	"Nashville": ("E3", "A3", "D4", "G3", "B3", "E4"),
}

_TUNINGS: Dict[str, Tuning] = {
	name: Tuning(name=name, open_strings=strings, family=family_for_name(name))
	for name, strings in _STANDARD_TUNINGS.items()
}


def all_tunings() -> Dict[str, Tuning]:
	return dict(_TUNINGS)


def get_tuning(name: str) -> Optional[Tuning]:
	return _TUNINGS.get(name)


def require_tuning(name: str) -> Tuning:
	t = _TUNINGS.get(name)
	if t is None:
		raise ParseError(f"Unknown tuning: {name!r}")
	return t


def tunings_for(family: InstrumentFamily) -> Dict[str, Tuning]:
	return {name: t for name, t in _TUNINGS.items() if t.family == family}


def settings_tuning(settings: Settings) -> Tuning:
	return require_tuning(settings.default_tuning)


def note_positions(note: str, settings: Settings) -> List[FretPosition]:
	"""Fretboard positions of ``note`` on the configured tuning and fret count.

	A note without an octave ("E", "Bb") is placed in ``settings.default_octave``.
	"""
	pitch = Pitch.from_name(note, default_octave=settings.default_octave)
	return settings_tuning(settings).find_note_positions(pitch, max_frets=settings.max_frets)


def is_fret_marker(fret: int) -> bool:
	return fret in FRET_MARKERS


def is_double_fret_marker(fret: int) -> bool:
	return fret in DOUBLE_FRET_MARKERS


# Keyboard -------------------------------------------------------------------

WHITE_SEMITONES = (0, 2, 4, 5, 7, 9, 11)
BLACK_SEMITONES = (1, 3, 6, 8, 10)
WHITE_KEY_INDEX = {0: 0, 2: 1, 4: 2, 5: 3, 7: 4, 9: 5, 11: 6}

# Fractional position among the seven white keys; spaced for even-looking
# 2+3 groups rather than physical key widths
BLACK_KEY_OFFSETS = {1: 0.65, 3: 1.35, 6: 3.65, 8: 4.25, 10: 4.9}

FIRST_BLACK_GROUP = (1, 3)
SECOND_BLACK_GROUP = (6, 8, 10)


class KeyboardPreset(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	key_count: int
	start_note: str
	description: str = ""


KEYBOARD_PRESETS: Dict[str, KeyboardPreset] = {
	p.name: p
	for p in [
		KeyboardPreset(
			name="Micro Keyboard (25 keys)",
			key_count=25,
			start_note="C3",
			description="Compact 25-key keyboard for basic exercises",
		),
		KeyboardPreset(
			name="Keyboard (61 keys)",
			key_count=61,
			start_note="C2",
			description="Standard 61-key keyboard",
		),
		KeyboardPreset(
			name="Piano (88 keys)",
			key_count=88,
			start_note="A0",
			description="Full 88-key piano from A0 to C8",
		),
	]
}


def is_white_key(midi: int) -> bool:
	return midi % 12 in WHITE_SEMITONES


def white_key_index(midi: int) -> Optional[int]:
	"""Index of a white key within its octave (C=0 .. B=6), None for black keys."""
	return WHITE_KEY_INDEX.get(midi % 12)


def black_key_group(midi: int) -> Optional[int]:
	pc = midi % 12
	if pc in FIRST_BLACK_GROUP:
		return 1
	if pc in SECOND_BLACK_GROUP:
		return 2
	return None


def _absolute_visual_position(midi: int) -> float:
	octave_base = (midi // 12) * 7
	pc = midi % 12
	if pc in WHITE_KEY_INDEX:
		return float(octave_base + WHITE_KEY_INDEX[pc])
	return octave_base + BLACK_KEY_OFFSETS[pc]


def black_key_visual_position(midi: int) -> Optional[float]:
	return BLACK_KEY_OFFSETS.get(midi % 12)


class KeyConfiguration(BaseModel):
	model_config = ConfigDict(frozen=True)

	key_index: int
	midi_note: int
	note_name: str
	octave: int
	is_white_key: bool
	visual_position: float = 0.0
	is_highlighted: bool = False
	is_pressed: bool = False
	interval_label: Optional[str] = None

	@classmethod
	def from_midi(cls, key_index: int, midi: int, start_midi: Optional[int] = None) -> "KeyConfiguration":
		p = Pitch.from_midi(midi)
		origin = midi if start_midi is None else start_midi
		return cls(
			key_index=key_index,
			midi_note=midi,
			note_name=p.name,
			octave=p.octave,
			is_white_key=is_white_key(midi),
			visual_position=_absolute_visual_position(midi) - _absolute_visual_position(origin),
		)

	@property
	def full_name(self) -> str:
		return f"{self.note_name}{self.octave}"

	def with_highlight(self, highlighted: bool = True, interval_label: Optional[str] = None) -> "KeyConfiguration":
		return self.model_copy(update={"is_highlighted": highlighted, "interval_label": interval_label})

	def with_pressed(self, pressed: bool) -> "KeyConfiguration":
		return self.model_copy(update={"is_pressed": pressed})


def build_keyboard(start: Union[int, str, Pitch], key_count: int) -> List[KeyConfiguration]:
	if isinstance(start, str):
		start_midi = Pitch.from_name(start).midi
	elif isinstance(start, Pitch):
		start_midi = start.midi
	else:
		start_midi = int(start)
	return [KeyConfiguration.from_midi(i, start_midi + i, start_midi) for i in range(key_count)]


def keyboard_for_preset(name: str) -> List[KeyConfiguration]:
	preset = KEYBOARD_PRESETS.get(name)
	if preset is None:
		raise ParseError(f"Unknown keyboard preset: {name!r}")
	return build_keyboard(preset.start_note, preset.key_count)


def settings_keyboard(settings: Settings) -> List[KeyConfiguration]:
	return keyboard_for_preset(settings.default_keyboard)


def highlight_keys(keys: Sequence[KeyConfiguration], root: Pitch, intervals: Iterable[int]) -> List[KeyConfiguration]:
	"""Highlight keys whose pitch class belongs to ``intervals`` above ``root``, labelled R, 3, 5..."""
	wanted = {i % 12 for i in intervals}
	out = []
	for k in keys:
		rel = (k.midi_note - root.pitch_class) % 12
		if rel in wanted:
			out.append(k.with_highlight(True, INTERVAL_LABELS[rel]))
		else:
			out.append(k.with_highlight(False))
	return out
