from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import ParseError
from .models import Difficulty, Settings
from .theory import Pitch

MAX_CHORD_INVERSIONS = 6


class ChordInversion(int, Enum):
	ROOT = 0
	FIRST = 1
	SECOND = 2
	THIRD = 3
	FOURTH = 4
	FIFTH = 5

	@property
	def display_name(self) -> str:
		return [
			"Root Position",
			"First Inversion",
			"Second Inversion",
			"Third Inversion",
			"Fourth Inversion",
			"Fifth Inversion",
		][self.value]


class Chord(BaseModel):
	model_config = ConfigDict(frozen=True)

	type: str
	symbol: str
	display_name: str
	intervals: Tuple[int, ...]
	category: str

	@model_validator(mode="after")
	def _check_intervals(self) -> "Chord":
		if not self.intervals or self.intervals[0] != 0:
			raise ValueError(f"{self.type}: intervals must start at 0")
		return self

	def notes_for_root(self, root: Pitch) -> List[Pitch]:
		return [
			Pitch(
				pitch_class=(root.pitch_class + i) % 12,
				octave=root.octave + i // 12,
				spelling=root.spelling,
			)
			for i in self.intervals
		]

	def pitch_classes(self, root_pc: int) -> List[int]:
		"""Distinct pitch classes in interval order."""
		out: List[int] = []
		for i in self.intervals:
			pc = (root_pc + i) % 12
			if pc not in out:
				out.append(pc)
		return out

	def symbol_for(self, root_name: str) -> str:
		return f"{root_name}{self.symbol}"

	def display_name_for(self, root_name: str, inversion: ChordInversion = ChordInversion.ROOT) -> str:
		name = f"{root_name} {self.display_name}"
		if inversion != ChordInversion.ROOT:
			name += f" ({inversion.display_name})"
		return name

	def available_inversions(self, max_inversions: int = MAX_CHORD_INVERSIONS) -> List[ChordInversion]:
		count = max(1, min(len(self.intervals), max_inversions))
		return list(ChordInversion)[:count]

	def build_voicing(self, root: Pitch, inversion: ChordInversion = ChordInversion.ROOT) -> List[int]:
		"""MIDI notes of the chord with ``inversion`` applied.

		Intervals from the inversion index upward stay where they are; the
		ones below it move up an octave. An inversion the chord does not have
		falls back to root position.
		"""
		base = root.midi
		k = int(inversion)
		if k == 0 or k >= len(self.intervals):
			return [base + i for i in self.intervals]
		tail = [base + i for i in self.intervals[k:]]
		head = [base + i + 12 for i in self.intervals[:k]]
		return tail + head

	def quality(self) -> str:
		if len(self.intervals) == 2:
			return "Power chord"
		if len(self.intervals) == 3:
			return "Triad"
		if 10 in self.intervals or 11 in self.intervals:
			return "Seventh chord"
		if any(i >= 14 for i in self.intervals):
			return "Extended chord"
		return self.category

	def needs_multiple_octaves(self) -> bool:
		return max(self.intervals) > 12

	@property
	def difficulty(self) -> Difficulty:
		return chord_difficulty(self.type)

	def __str__(self) -> str:
		return self.display_name


def _c(type_: str, symbol: str, display_name: str, intervals: List[int], category: str) -> Chord:
	return Chord(type=type_, symbol=symbol, display_name=display_name, intervals=tuple(intervals), category=category)


_CHORDS: Dict[str, Chord] = {
	c.type: c
	for c in [
		_c("major", "", "Major", [0, 4, 7], "Basic Triads"),
		_c("minor", "m", "Minor", [0, 3, 7], "Basic Triads"),
		_c("diminished", "°", "Diminished", [0, 3, 6], "Basic Triads"),
		_c("augmented", "+", "Augmented", [0, 4, 8], "Basic Triads"),
		_c("sus2", "sus2", "Suspended 2nd", [0, 2, 7], "Suspended"),
		_c("sus4", "sus4", "Suspended 4th", [0, 5, 7], "Suspended"),
		_c("7sus2", "7sus2", "7 Suspended 2nd", [0, 2, 7, 10], "Suspended"),
		_c("7sus4", "7sus4", "7 Suspended 4th", [0, 5, 7, 10], "Suspended"),
		_c("major7", "maj7", "Major 7th", [0, 4, 7, 11], "Seventh Chords"),
		_c("minor7", "m7", "Minor 7th", [0, 3, 7, 10], "Seventh Chords"),
		_c("dominant7", "7", "Dominant 7th", [0, 4, 7, 10], "Seventh Chords"),
		_c("diminished7", "°7", "Diminished 7th", [0, 3, 6, 9], "Seventh Chords"),
		_c("half-diminished7", "ø7", "Half Diminished 7th", [0, 3, 6, 10], "Seventh Chords"),
		_c("augmented7", "+7", "Augmented 7th", [0, 4, 8, 10], "Seventh Chords"),
		_c("augmented-major7", "+maj7", "Augmented Major 7th", [0, 4, 8, 11], "Seventh Chords"),
		_c("minor-major7", "m(maj7)", "Minor Major 7th", [0, 3, 7, 11], "Seventh Chords"),
		_c("major6", "6", "Major 6th", [0, 4, 7, 9], "Sixth Chords"),
		_c("minor6", "m6", "Minor 6th", [0, 3, 7, 9], "Sixth Chords"),
		_c("6/9", "6/9", "6/9", [0, 4, 7, 9, 14], "Sixth Chords"),
		_c("m6/9", "m6/9", "Minor 6/9", [0, 3, 7, 9, 14], "Sixth Chords"),
		_c("add9", "add9", "Add 9th", [0, 4, 7, 14], "Add Chords"),
		_c("add11", "add11", "Add 11th", [0, 4, 7, 17], "Add Chords"),
		_c("add13", "add13", "Add 13th", [0, 4, 7, 21], "Add Chords"),
		_c("madd9", "m(add9)", "Minor Add 9th", [0, 3, 7, 14], "Add Chords"),
		_c("madd11", "m(add11)", "Minor Add 11th", [0, 3, 7, 17], "Add Chords"),
		_c("add4", "add4", "Add 4th", [0, 4, 5, 7], "Add Chords"),
		_c("major9", "maj9", "Major 9th", [0, 4, 7, 11, 14], "Extended (9ths)"),
		_c("minor9", "m9", "Minor 9th", [0, 3, 7, 10, 14], "Extended (9ths)"),
		_c("dominant9", "9", "Dominant 9th", [0, 4, 7, 10, 14], "Extended (9ths)"),
		_c("9sus4", "9sus4", "9 Suspended 4th", [0, 5, 7, 10, 14], "Extended (9ths)"),
		_c("7b9", "7♭9", "7 Flat 9", [0, 4, 7, 10, 13], "Extended (9ths)"),
		_c("7#9", "7♯9", "7 Sharp 9", [0, 4, 7, 10, 15], "Extended (9ths)"),
		_c("maj7#9", "maj7♯9", "Major 7 Sharp 9", [0, 4, 7, 11, 15], "Extended (9ths)"),
		_c("major11", "maj11", "Major 11th", [0, 4, 7, 11, 14, 17], "Extended (11ths)"),
		_c("minor11", "m11", "Minor 11th", [0, 3, 7, 10, 14, 17], "Extended (11ths)"),
		_c("dominant11", "11", "Dominant 11th", [0, 4, 7, 10, 14, 17], "Extended (11ths)"),
		_c("7#11", "7♯11", "7 Sharp 11", [0, 4, 7, 10, 18], "Extended (11ths)"),
		_c("maj7#11", "maj7♯11", "Major 7 Sharp 11", [0, 4, 7, 11, 18], "Extended (11ths)"),
		_c("m7b5add11", "m7♭5(add11)", "Minor 7 Flat 5 Add 11", [0, 3, 6, 10, 17], "Extended (11ths)"),
		_c("major13", "maj13", "Major 13th", [0, 4, 7, 11, 14, 17, 21], "Extended (13ths)"),
		_c("minor13", "m13", "Minor 13th", [0, 3, 7, 10, 14, 17, 21], "Extended (13ths)"),
		_c("dominant13", "13", "Dominant 13th", [0, 4, 7, 10, 14, 17, 21], "Extended (13ths)"),
		_c("7b13", "7♭13", "7 Flat 13", [0, 4, 7, 10, 20], "Extended (13ths)"),
		_c("7#13", "7♯13", "7 Sharp 13", [0, 4, 7, 10, 22], "Extended (13ths)"),
		_c("power-chord", "5", "Power Chord (5th)", [0, 7], "Power Chords"),
		_c("power-chord-octave", "5(8)", "Power Chord + Octave", [0, 7, 12], "Power Chords"),
		_c("power-sus2", "sus2(no5)", "Power Sus2", [0, 2], "Power Chords"),
		_c("power-sus4", "5sus4", "Power Sus4", [0, 5, 7], "Power Chords"),
		_c("7alt", "7alt", "7 Altered", [0, 4, 7, 10, 13, 15], "Altered Chords"),
		_c("7b5", "7♭5", "7 Flat 5", [0, 4, 6, 10], "Altered Chords"),
		_c("7#5", "7♯5", "7 Sharp 5", [0, 4, 8, 10], "Altered Chords"),
		_c("maj7b5", "maj7♭5", "Major 7 Flat 5", [0, 4, 6, 11], "Altered Chords"),
		_c("maj7#5", "maj7♯5", "Major 7 Sharp 5", [0, 4, 8, 11], "Altered Chords"),
		_c("7b9b13", "7♭9♭13", "7 Flat 9 Flat 13", [0, 4, 7, 10, 13, 20], "Altered Chords"),
		_c("7#9b13", "7♯9♭13", "7 Sharp 9 Flat 13", [0, 4, 7, 10, 15, 20], "Altered Chords"),
		_c("maj7#5#11", "maj7♯5♯11", "Major 7 Sharp 5 Sharp 11", [0, 4, 8, 11, 18], "Jazz Chords"),
		_c("m7b9", "m7♭9", "Minor 7 Flat 9", [0, 3, 7, 10, 13], "Jazz Chords"),
		_c("dim7add9", "°7(add9)", "Diminished 7 Add 9", [0, 3, 6, 9, 14], "Jazz Chords"),
		_c("maj9#11", "maj9♯11", "Major 9 Sharp 11", [0, 4, 7, 11, 14, 18], "Jazz Chords"),
		_c("m11b5", "m11♭5", "Minor 11 Flat 5", [0, 3, 6, 10, 14, 17], "Jazz Chords"),
		_c("13sus4", "13sus4", "13 Suspended 4th", [0, 5, 7, 10, 14, 17, 21], "Jazz Chords"),
		_c("quartal3", "Q3", "Quartal Triad", [0, 5, 10], "Quartal Chords"),
		_c("quartal4", "Q4", "Quartal 4-note", [0, 5, 10, 15], "Quartal Chords"),
		_c("quartal5", "Q5", "Quartal 5-note", [0, 5, 10, 15, 20], "Quartal Chords"),
		_c("so-what", "SW", "So What Chord", [0, 5, 10, 15, 19], "Quartal Chords"),
		_c("cluster-maj", "CMaj", "Major Cluster", [0, 2, 4], "Cluster Chords"),
		_c("cluster-min", "Cmin", "Minor Cluster", [0, 1, 3], "Cluster Chords"),
		_c("cluster-chromatic", "CChr", "Chromatic Cluster", [0, 1, 2], "Cluster Chords"),
		_c("major-over-major", "|Maj", "Major over Major", [0, 4, 7, 14, 18, 21], "Polychords"),
		_c("minor-over-major", "m|Maj", "Minor over Major", [0, 4, 7, 15, 18, 22], "Polychords"),
		_c("mystic", "Mys", "Mystic Chord", [0, 6, 10, 16, 21, 26], "Special/Exotic"),
		_c("elektra", "Elek", "Elektra Chord", [0, 7, 9, 13, 16], "Special/Exotic"),
		_c("dream", "Dream", "Dream Chord", [0, 5, 6, 7], "Special/Exotic"),
		_c("farben", "Farb", "Farben Chord", [0, 8, 11, 16, 21], "Special/Exotic"),
		_c("tristan", "Trist", "Tristan Chord", [0, 3, 6, 10], "Special/Exotic"),
		_c("petrushka", "Petr", "Petrushka Chord", [0, 1, 4, 6, 7, 10], "Special/Exotic"),
		_c("viennese-trichord", "VT", "Viennese Trichord", [0, 1, 6], "Special/Exotic"),
		_c("major-no3", "(no3)", "Major (no 3rd)", [0, 7], "Omit Chords"),
		_c("major7-no3", "maj7(no3)", "Major 7 (no 3rd)", [0, 7, 11], "Omit Chords"),
		_c("major7-no5", "maj7(no5)", "Major 7 (no 5th)", [0, 4, 11], "Omit Chords"),
		_c("7-no3", "7(no3)", "7 (no 3rd)", [0, 7, 10], "Omit Chords"),
		_c("9-no3", "9(no3)", "9 (no 3rd)", [0, 7, 10, 14], "Omit Chords"),
		_c("11-no5", "11(no5)", "11 (no 5th)", [0, 4, 10, 14, 17], "Omit Chords"),
		# Slash chords keep duplicate intervals for the doubled bass
		_c("major-b3-bass", "/♭3", "Major/♭3 Bass", [0, 3, 4, 7], "Slash Chords"),
		_c("major-5-bass", "/5", "Major/5 Bass", [0, 4, 7, 7], "Slash Chords"),
		_c("minor-b7-bass", "m/♭7", "Minor/♭7 Bass", [0, 3, 7, 10], "Slash Chords"),
	]
}

COMMON_CHORD_TYPES = ["major", "minor", "major7", "minor7", "dominant7", "sus2", "sus4", "add9", "power-chord"]

BEGINNER_CHORDS = {"major", "minor", "diminished", "augmented"}
INTERMEDIATE_CHORDS = {"sus2", "sus4", "major7", "minor7", "dominant7", "major6", "minor6", "add9"}


def all_chords() -> Dict[str, Chord]:
	return dict(_CHORDS)


def get_chord(chord_type: str) -> Optional[Chord]:
	return _CHORDS.get(chord_type)


def require_chord(chord_type: str) -> Chord:
	c = _CHORDS.get(chord_type)
	if c is None:
		raise ParseError(f"Unknown chord type: {chord_type!r}")
	return c


def inversions_for(chord_type: str, settings: Settings) -> List[ChordInversion]:
	return require_chord(chord_type).available_inversions(settings.max_chord_inversions)


def by_category() -> Dict[str, List[Chord]]:
	out: Dict[str, List[Chord]] = {}
	for c in _CHORDS.values():
		out.setdefault(c.category, []).append(c)
	return out


def common_chords() -> List[Chord]:
	return [_CHORDS[t] for t in COMMON_CHORD_TYPES]


def chord_difficulty(chord_type: str) -> Difficulty:
	if chord_type in BEGINNER_CHORDS:
		return Difficulty.BEGINNER
	if chord_type in INTERMEDIATE_CHORDS:
		return Difficulty.INTERMEDIATE
	return Difficulty.ADVANCED


def chords_by_difficulty() -> Dict[Difficulty, List[Chord]]:
	out: Dict[Difficulty, List[Chord]] = {}
	for c in _CHORDS.values():
		out.setdefault(c.difficulty, []).append(c)
	return out
