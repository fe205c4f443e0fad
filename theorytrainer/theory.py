from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import ParseError

A4_MIDI = 69
A4_FREQ = 440.0
MIDDLE_C = 60
DEFAULT_OCTAVE = 3

SHARP_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]
FLAT_NAMES = ["C", "Db", "D", "Eb", "E", "F", "Gb", "G", "Ab", "A", "Bb", "B"]

NOTE_PITCH_CLASSES: Dict[str, int] = {
	"C": 0,
	"D": 2,
	"E": 4,
	"F": 5,
	"G": 7,
	"A": 9,
	"B": 11,
	"C#": 1,
	"D#": 3,
	"F#": 6,
	"G#": 8,
	"A#": 10,
	"Db": 1,
	"Eb": 3,
	"Gb": 6,
	"Ab": 8,
	"Bb": 10,
	"B#": 0,
	"Cb": 11,
	"E#": 5,
	"Fb": 4,
}

# Roots whose own name is written with flats
FLAT_ROOTS = {"F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb"}

# Key tonics (by pitch class) whose key signature uses flats
FLAT_MAJOR_TONICS = {5, 10, 3, 8, 1, 6}
FLAT_MINOR_TONICS = {2, 7, 0, 5, 10, 3}

# Tonics where both spellings name a real key; the written accidental decides
ENHARMONIC_MAJOR_TONICS = {1, 6, 11}
ENHARMONIC_MINOR_TONICS = {3, 8, 10}

SHARP_KEY_ORDER = ["C", "G", "D", "A", "E", "B", "F#", "C#"]
FLAT_KEY_ORDER = ["C", "F", "Bb", "Eb", "Ab", "Db", "Gb", "Cb"]
SHARP_ORDER = ["F#", "C#", "G#", "D#", "A#", "E#", "B#"]
FLAT_ORDER = ["Bb", "Eb", "Ab", "Db", "Gb", "Cb", "Fb"]

INTERVAL_NAMES = [
	"Unison",
	"Minor 2nd",
	"Major 2nd",
	"Minor 3rd",
	"Major 3rd",
	"Perfect 4th",
	"Tritone",
	"Perfect 5th",
	"Minor 6th",
	"Major 6th",
	"Minor 7th",
	"Major 7th",
]

INTERVAL_LABELS = ["R", "♭2", "2", "♭3", "3", "4", "♭5", "5", "♭6", "6", "♭7", "7"]

SEMITONES = {
	"m2": 1,
	"M2": 2,
	"m3": 3,
	"M3": 4,
	"P4": 5,
	"TT": 6,
	"P5": 7,
	"m6": 8,
	"M6": 9,
	"m7": 10,
	"M7": 11,
	"P8": 12,
}

_NOTE_RE = re.compile(r"^([A-Ga-g])([#b♯♭]?)(-?\d+)?$")
_KEY_RE = re.compile(r"^([A-Ga-g][#b♯♭]?)\s*(m|min|minor|maj|major)?$", re.IGNORECASE)


def normalize_note_name(name: str) -> str:
	"""Canonical ASCII spelling: unicode accidentals replaced, letter upper-cased."""
	s = name.strip().replace("♯", "#").replace("♭", "b")
	if s:
		s = s[0].upper() + s[1:]
	return s


def pitch_class_of(name: str) -> int:
	pc = NOTE_PITCH_CLASSES.get(normalize_note_name(name))
	if pc is None:
		raise ParseError(f"Invalid note name: {name!r}")
	return pc


def try_pitch_class(name: str) -> Optional[int]:
	return NOTE_PITCH_CLASSES.get(normalize_note_name(name))


def spell_pitch_class(pitch_class: int, prefer_flats: bool = False) -> str:
	names = FLAT_NAMES if prefer_flats else SHARP_NAMES
	return names[pitch_class % 12]


def midi_to_freq(m: int) -> float:
	return float(A4_FREQ * (2.0 ** ((m - A4_MIDI) / 12.0)))


def interval_names() -> List[str]:
	return list(SEMITONES.keys())


def interval_to_pair(root_midi: int, name: str, direction: str = "ascending") -> Tuple[int, int]:
	d = SEMITONES[name]
	if direction == "descending":
		d = -d
	return root_midi, root_midi + d


class Spelling(str, Enum):
	SHARP = "sharp"
	FLAT = "flat"


class Pitch(BaseModel):
	"""A pitch class plus octave. Equality ignores the spelling preference."""

	model_config = ConfigDict(frozen=True)

	pitch_class: int = Field(ge=0, le=11)
	octave: int = DEFAULT_OCTAVE
	spelling: Spelling = Spelling.SHARP

	@classmethod
	def from_midi(cls, midi: int, spelling: Spelling = Spelling.SHARP) -> "Pitch":
		return cls(pitch_class=midi % 12, octave=midi // 12 - 1, spelling=spelling)

	@classmethod
	def from_name(cls, text: str, default_octave: int = DEFAULT_OCTAVE) -> "Pitch":
		"""Parse "C4", "Bb3", "F♯" or "e". A missing octave becomes ``default_octave``."""
		m = _NOTE_RE.match(text.strip())
		if m is None:
			raise ParseError(f"Invalid note format: {text!r}")
		letter, accidental, octave = m.groups()
		name = normalize_note_name(letter + accidental)
		pc = NOTE_PITCH_CLASSES.get(name)
		if pc is None:
			raise ParseError(f"Invalid note name: {text!r}")
		spelling = Spelling.FLAT if name in FLAT_ROOTS else Spelling.SHARP
		return cls(
			pitch_class=pc,
			octave=int(octave) if octave is not None else default_octave,
			spelling=spelling,
		)

	@property
	def prefer_flats(self) -> bool:
		return self.spelling == Spelling.FLAT

	@property
	def midi(self) -> int:
		return (self.octave + 1) * 12 + self.pitch_class

	@property
	def name(self) -> str:
		return spell_pitch_class(self.pitch_class, self.prefer_flats)

	@property
	def symbol(self) -> str:
		return self.name.replace("#", "♯").replace("b", "♭")

	@property
	def full_name(self) -> str:
		return f"{self.name}{self.octave}"

	@property
	def chromatic_octave(self) -> int:
		return (self.midi - 12) // 12

	def frequency_hz(self) -> float:
		return midi_to_freq(self.midi)

	def transpose(self, semitones: int) -> "Pitch":
		return Pitch.from_midi(self.midi + semitones, spelling=self.spelling)

	def enharmonic(self) -> "Pitch":
		flipped = Spelling.SHARP if self.prefer_flats else Spelling.FLAT
		return self.model_copy(update={"spelling": flipped})

	def interval_to(self, other: "Pitch") -> int:
		return abs(other.midi - self.midi)

	def in_scale(self, root_pitch_class: int, intervals: Sequence[int]) -> bool:
		return (self.pitch_class - root_pitch_class) % 12 in intervals

	def __eq__(self, other: object) -> bool:
		if not isinstance(other, Pitch):
			return NotImplemented
		return self.pitch_class == other.pitch_class and self.octave == other.octave

	def __hash__(self) -> int:
		return hash((self.pitch_class, self.octave))

	def __str__(self) -> str:
		return self.full_name


class IntervalQuality(str, Enum):
	PERFECT = "P"
	MAJOR = "M"
	MINOR = "m"
	AUGMENTED = "+"
	DIMINISHED = "°"

	@property
	def symbol(self) -> str:
		return self.value


_QUALITIES = {
	0: IntervalQuality.PERFECT,
	5: IntervalQuality.PERFECT,
	7: IntervalQuality.PERFECT,
	2: IntervalQuality.MAJOR,
	4: IntervalQuality.MAJOR,
	9: IntervalQuality.MAJOR,
	11: IntervalQuality.MAJOR,
	1: IntervalQuality.MINOR,
	3: IntervalQuality.MINOR,
	8: IntervalQuality.MINOR,
	10: IntervalQuality.MINOR,
	6: IntervalQuality.DIMINISHED,
}

CONSONANT = {0, 3, 4, 5, 7, 8, 9}
PERFECT = {0, 5, 7}


class Interval(BaseModel):
	model_config = ConfigDict(frozen=True)

	semitones: int = Field(ge=0)

	@property
	def simple(self) -> int:
		return self.semitones % 12

	@property
	def octaves(self) -> int:
		return self.semitones // 12

	@property
	def name(self) -> str:
		if self.octaves == 0:
			return INTERVAL_NAMES[self.simple]
		if self.octaves == 1 and self.simple == 0:
			return "Octave"
		return f"{INTERVAL_NAMES[self.simple]} + {self.octaves}oct"

	@property
	def label(self) -> str:
		if self.octaves == 0:
			return INTERVAL_LABELS[self.simple]
		if self.simple == 0:
			return f"O{self.octaves}"
		# 9ths, 11ths, 13ths: the degree number grows by 7 per octave
		raw = INTERVAL_LABELS[self.simple]
		accidental = raw[:-1]
		return f"{accidental}{int(raw[-1]) + 7 * self.octaves}"

	@property
	def quality(self) -> IntervalQuality:
		return _QUALITIES[self.simple]

	@property
	def is_consonant(self) -> bool:
		return self.simple in CONSONANT

	@property
	def is_perfect(self) -> bool:
		return self.simple in PERFECT

	def inverted(self) -> "Interval":
		return Interval(semitones=12 - self.simple)

	def __add__(self, other: "Interval") -> "Interval":
		return Interval(semitones=self.semitones + other.semitones)

	def __sub__(self, other: "Interval") -> "Interval":
		return Interval(semitones=abs(self.semitones - other.semitones))

	def __str__(self) -> str:
		return f"{self.name} ({self.semitones} semitones)"


UNISON = Interval(semitones=0)
MINOR_SECOND = Interval(semitones=1)
MAJOR_SECOND = Interval(semitones=2)
MINOR_THIRD = Interval(semitones=3)
MAJOR_THIRD = Interval(semitones=4)
PERFECT_FOURTH = Interval(semitones=5)
TRITONE = Interval(semitones=6)
PERFECT_FIFTH = Interval(semitones=7)
MINOR_SIXTH = Interval(semitones=8)
MAJOR_SIXTH = Interval(semitones=9)
MINOR_SEVENTH = Interval(semitones=10)
MAJOR_SEVENTH = Interval(semitones=11)
OCTAVE = Interval(semitones=12)


def parse_key(key: str) -> Tuple[int, bool]:
	"""Split a key context such as "Bb", "Dm" or "E minor" into (tonic pc, is_minor)."""
	m = _KEY_RE.match(key.strip())
	if m is None:
		raise ParseError(f"Invalid key: {key!r}")
	tonic, quality = m.groups()
	is_minor = quality is not None and quality.lower() in ("m", "min", "minor")
	# "m" is case sensitive: "M" would read as major
	if quality == "M":
		is_minor = False
	return pitch_class_of(tonic), is_minor


def key_prefers_flats(key: str) -> bool:
	"""Whether a key context spells accidentals with flats.

	Decided by the tonic's pitch class, so "A#" and "Bb" behave the same,
	except for tonics with a playable key under both spellings (F#/Gb, C#/Db,
	B/Cb major; D#/Eb, G#/Ab, A#/Bb minor), where the written accidental wins.
	"""
	tonic, is_minor = parse_key(key)
	m = _KEY_RE.match(key.strip())
	accidental = normalize_note_name(m.group(1))[1:] if m else ""
	if accidental and tonic in (ENHARMONIC_MINOR_TONICS if is_minor else ENHARMONIC_MAJOR_TONICS):
		return accidental == "b"
	if is_minor:
		return tonic in FLAT_MINOR_TONICS
	return tonic in FLAT_MAJOR_TONICS


class KeySignature(BaseModel):
	model_config = ConfigDict(frozen=True)

	sharps: int = 0
	flats: int = 0
	accidentals: Tuple[str, ...] = ()


def key_signature(key: str) -> KeySignature:
	"""Sharps or flats of a major or minor key, as literally spelled."""
	tonic_pc, is_minor = parse_key(key)
	m = _KEY_RE.match(key.strip())
	tonic = normalize_note_name(m.group(1)) if m else ""
	if is_minor:
		relative = (tonic_pc + 3) % 12
		if "#" in tonic:
			flats = False
		elif "b" in tonic[1:]:
			flats = True
		else:
			flats = relative in FLAT_MAJOR_TONICS
		tonic = spell_pitch_class(relative, flats)
	if tonic in SHARP_KEY_ORDER:
		n = SHARP_KEY_ORDER.index(tonic)
		return KeySignature(sharps=n, accidentals=tuple(SHARP_ORDER[:n]))
	if tonic in FLAT_KEY_ORDER:
		n = FLAT_KEY_ORDER.index(tonic)
		return KeySignature(flats=n, accidentals=tuple(FLAT_ORDER[:n]))
	return KeySignature()
