from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, model_validator

from .errors import ParseError
from .models import Difficulty
from .theory import Pitch

DEGREE_NAMES = ["1", "♭2", "2", "♭3", "3", "4", "♭5", "5", "♭6", "6", "♭7", "7"]

STEP_NAMES = {1: "H", 2: "W", 3: "WH"}


class Scale(BaseModel):
	model_config = ConfigDict(frozen=True)

	name: str
	intervals: Tuple[int, ...]
	mode_names: Optional[Tuple[str, ...]] = None

	@model_validator(mode="after")
	def _check_intervals(self) -> "Scale":
		iv = self.intervals
		if not iv or iv[0] != 0:
			raise ValueError(f"{self.name}: intervals must start at 0")
		if any(b <= a for a, b in zip(iv, iv[1:])) or iv[-1] > 11:
			raise ValueError(f"{self.name}: intervals must be ascending within one octave")
		return self

	def __len__(self) -> int:
		return len(self.intervals)

	def contains_pitch_class(self, root_pc: int, pitch_class: int) -> bool:
		return (pitch_class - root_pc) % 12 in self.intervals

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
		return [(root_pc + i) % 12 for i in self.intervals]

	def mode_intervals(self, mode_index: int) -> List[int]:
		"""Intervals of the mode starting on degree ``mode_index``.

		Works for any scale length; the index wraps around the scale.
		"""
		if mode_index == 0:
			return list(self.intervals)
		n = len(self.intervals)
		mode = mode_index % n
		offset = self.intervals[mode]
		rotated = [(self.intervals[(i + mode) % n] - offset) % 12 for i in range(n)]
		return sorted(rotated)

	def mode_name(self, mode_index: int) -> str:
		if self.mode_names is not None and 0 <= mode_index < len(self.mode_names):
			return self.mode_names[mode_index]
		return f"Mode {mode_index + 1}"

	def mode_root(self, base_root: Pitch, mode_index: int) -> Pitch:
		return base_root.transpose(self.intervals[mode_index % len(self.intervals)])

	@property
	def degree_labels(self) -> List[str]:
		return [DEGREE_NAMES[i] for i in self.intervals]

	def step_pattern(self) -> List[str]:
		steps = [b - a for a, b in zip(self.intervals, self.intervals[1:] + (12,))]
		return [STEP_NAMES.get(s, str(s)) for s in steps]

	@property
	def difficulty(self) -> Difficulty:
		return scale_difficulty(self.name)

	def __str__(self) -> str:
		return self.name


def _scale(name: str, intervals: List[int], modes: Optional[List[str]] = None) -> Scale:
	return Scale(name=name, intervals=tuple(intervals), mode_names=tuple(modes) if modes else None)


_SCALES: Dict[str, Scale] = {
	s.name: s
	for s in [
		_scale("Chromatic", list(range(12))),
		_scale(
			"Major",
			[0, 2, 4, 5, 7, 9, 11],
			["Ionian", "Dorian", "Phrygian", "Lydian", "Mixolydian", "Aeolian", "Locrian"],
		),
		_scale(
			"Natural Minor",
			[0, 2, 3, 5, 7, 8, 10],
			["Natural Minor", "Locrian", "Ionian", "Dorian", "Phrygian", "Lydian", "Mixolydian"],
		),
		_scale(
			"Harmonic Minor",
			[0, 2, 3, 5, 7, 8, 11],
			[
				"Harmonic Minor",
				"Locrian ♯6",
				"Ionian ♯5",
				"Dorian ♯4",
				"Phrygian Dominant",
				"Lydian ♯9",
				"Altered Dominant",
			],
		),
		_scale(
			"Melodic Minor",
			[0, 2, 3, 5, 7, 9, 11],
			[
				"Melodic Minor",
				"Dorian ♭2",
				"Lydian Augmented",
				"Lydian Dominant",
				"Mixolydian ♭6",
				"Locrian ♯2",
				"Altered",
			],
		),
		# Pentatonic and blues
		_scale("Major Pentatonic", [0, 2, 4, 7, 9]),
		_scale("Minor Pentatonic", [0, 3, 5, 7, 10]),
		_scale("Blues", [0, 3, 5, 6, 7, 10]),
		# Church modes
		_scale("Dorian", [0, 2, 3, 5, 7, 9, 10]),
		_scale("Phrygian", [0, 1, 3, 5, 7, 8, 10]),
		_scale("Lydian", [0, 2, 4, 6, 7, 9, 11]),
		_scale("Mixolydian", [0, 2, 4, 5, 7, 9, 10]),
		_scale("Aeolian", [0, 2, 3, 5, 7, 8, 10]),
		_scale("Locrian", [0, 1, 3, 5, 6, 8, 10]),
		# Jazz
		_scale("Bebop Dominant", [0, 2, 4, 5, 7, 9, 10, 11]),
		_scale("Bebop Major", [0, 2, 4, 5, 7, 8, 9, 11]),
		_scale("Altered", [0, 1, 3, 4, 6, 8, 10]),
		_scale("Whole Tone", [0, 2, 4, 6, 8, 10]),
		_scale("Diminished", [0, 2, 3, 5, 6, 8, 9, 11]),
		# Ethnic and exotic
		_scale("Hungarian Minor", [0, 2, 3, 6, 7, 8, 11]),
		_scale("Japanese", [0, 1, 5, 7, 8]),
		_scale("Arabic", [0, 1, 4, 5, 7, 8, 11]),
		_scale("Gypsy", [0, 1, 4, 5, 7, 8, 10]),
		_scale("Enigmatic", [0, 1, 4, 6, 8, 10, 11]),
		_scale("Double Harmonic", [0, 1, 4, 5, 7, 8, 11]),
		_scale("Neapolitan Major", [0, 1, 3, 5, 7, 9, 11]),
		_scale("Neapolitan Minor", [0, 1, 3, 5, 7, 8, 11]),
	]
}

BEGINNER_SCALES = {"major", "minor", "natural minor", "major pentatonic", "minor pentatonic", "chromatic"}
INTERMEDIATE_SCALES = {"dorian", "mixolydian", "aeolian", "blues", "harmonic minor"}


def all_scales() -> Dict[str, Scale]:
	return dict(_SCALES)


def scale_names() -> List[str]:
	return list(_SCALES.keys())


SCALE_ALIASES = {"major": "Major", "minor": "Natural Minor", "ionian": "Major"}


def get_scale(name: str) -> Optional[Scale]:
	"""Exact registry name first, then a case-insensitive match or alias ("minor")."""
	s = _SCALES.get(name)
	if s is not None:
		return s
	key = name.strip().lower()
	if key in SCALE_ALIASES:
		return _SCALES[SCALE_ALIASES[key]]
	for candidate in _SCALES.values():
		if candidate.name.lower() == key:
			return candidate
	return None


def require_scale(name: str) -> Scale:
	s = get_scale(name)
	if s is None:
		raise ParseError(f"Unknown scale: {name!r}")
	return s


def scale_difficulty(name: str) -> Difficulty:
	key = name.lower()
	if key in BEGINNER_SCALES:
		return Difficulty.BEGINNER
	if key in INTERMEDIATE_SCALES:
		return Difficulty.INTERMEDIATE
	return Difficulty.ADVANCED


def scales_by_difficulty() -> Dict[Difficulty, List[Scale]]:
	out: Dict[Difficulty, List[Scale]] = {}
	for s in _SCALES.values():
		out.setdefault(s.difficulty, []).append(s)
	return out
