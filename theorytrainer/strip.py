"""Correct-answer sets and question builders for the scale strip.

A strip is a row of semitone positions 0..12*octave_count anchored at a strip
root. Answers are computed relative to that anchor, never to C, so a G scale
drawn on a G strip starts at position 0.
"""
from __future__ import annotations

import logging
from typing import FrozenSet, Iterable, List, Optional, Sequence, Set

from .chords import require_chord
from .models import (
	Difficulty,
	ScaleStripAnswer,
	ScaleStripConfiguration,
	ScaleStripMode,
	ScaleStripQuestion,
	ScaleStripQuestionMode,
	ValidationMode,
)
from .scales import require_scale, scale_difficulty
from .theory import (
	INTERVAL_NAMES,
	Interval,
	key_prefers_flats,
	pitch_class_of,
	spell_pitch_class,
)

logger = logging.getLogger(__name__)

NATURAL_NOTES = ["C", "D", "E", "F", "G", "A", "B"]
MINOR_SCALES = {"minor", "natural minor", "aeolian", "harmonic minor", "melodic minor"}

DEFAULT_OCTAVE_ROOTS = ["C", "F", "G", "D", "A", "E", "B"]
DEFAULT_CHROMATIC_ROOTS = ["C", "F#", "Gb", "Bb", "G"]
DEFAULT_INTERVAL_ROOTS = ["C", "G", "F", "D"]
DEFAULT_INTERVALS = [0, 2, 4, 5, 7, 9, 11, 12]
DEFAULT_SCALE_ROOTS = ["C", "G", "F", "D", "A", "E", "B"]
DEFAULT_SCALE_TYPES = ["major", "minor", "dorian", "mixolydian"]
DEFAULT_CHORD_ROOTS = ["C", "G", "D", "A", "E", "F"]
DEFAULT_CHORD_TYPES = ["major", "minor", "diminished", "augmented", "major7", "dominant7"]


def strip_offset(root: str, strip_root: str) -> int:
	"""Position of ``root`` on a strip anchored at ``strip_root``."""
	return (pitch_class_of(root) - pitch_class_of(strip_root)) % 12


def strip_position(offset: int, semitones: int, total: int) -> int:
	"""Position of a note ``semitones`` above ``offset`` on a ``total``-semitone strip.

	Positions wrap into ``[0, total)``; the top position ``total`` is only
	used for the strip root's own octave.
	"""
	pos = offset + semitones
	if offset == 0 and pos == total:
		return total
	return pos % total


def calculate_positions(pitch_classes: Iterable[int], strip_root: str) -> Set[int]:
	s = pitch_class_of(strip_root)
	return {(pc - s) % 12 for pc in pitch_classes}


def natural_note_positions(strip_root: str) -> FrozenSet[int]:
	return frozenset(calculate_positions((pitch_class_of(n) for n in NATURAL_NOTES), strip_root))


def spell_notes(pitch_classes: Iterable[int], key_context: str) -> FrozenSet[str]:
	flats = key_prefers_flats(key_context)
	return frozenset(spell_pitch_class(pc, flats) for pc in pitch_classes)


def generate_answer(
	intervals: Sequence[int],
	root: str,
	strip_root: str,
	octave_count: int = 1,
	include_octave: bool = False,
	key_context: Optional[str] = None,
) -> ScaleStripAnswer:
	"""Positions and spelled note names for ``intervals`` above ``root``.

	Positions wrap at the strip length (12 per octave). With
	``include_octave`` the root an octave up is added when it still fits on
	the strip.
	"""
	total = 12 * octave_count
	offset = strip_offset(root, strip_root)
	positions = {strip_position(offset, i, total) for i in intervals}
	if include_octave and offset + 12 <= total:
		positions.add(offset + 12)
	root_pc = pitch_class_of(root)
	notes = spell_notes(((root_pc + i) % 12 for i in intervals), key_context or root)
	return ScaleStripAnswer(selected_positions=frozenset(positions), selected_notes=notes)


def scale_key_context(root: str, scale_name: str) -> str:
	if scale_name.strip().lower() in MINOR_SCALES:
		return f"{root}m"
	return root


def scale_answer(
	scale_name: str,
	root: str,
	strip_root: str,
	include_octave: bool = False,
	key_context: Optional[str] = None,
) -> ScaleStripAnswer:
	scale = require_scale(scale_name)
	return generate_answer(
		scale.intervals,
		root,
		strip_root,
		include_octave=include_octave,
		key_context=key_context or scale_key_context(root, scale_name),
	)


def chord_octave_count(chord_type: str) -> int:
	return 2 if require_chord(chord_type).needs_multiple_octaves() else 1


def chord_answer(
	chord_type: str,
	root: str,
	strip_root: str,
	key_context: Optional[str] = None,
) -> ScaleStripAnswer:
	chord = require_chord(chord_type)
	return generate_answer(
		chord.intervals,
		root,
		strip_root,
		octave_count=chord_octave_count(chord_type),
		key_context=key_context,
	)


def interval_answer(root: str, strip_root: str, semitones: int, octave_count: int = 1) -> ScaleStripAnswer:
	pos = strip_position(strip_offset(root, strip_root), semitones, 12 * octave_count)
	target = (pitch_class_of(root) + semitones) % 12
	return ScaleStripAnswer(
		selected_positions=frozenset({pos}),
		selected_notes=spell_notes([target], root),
	)


def octave_answer(root: str) -> ScaleStripAnswer:
	return ScaleStripAnswer(
		selected_positions=frozenset({0, 12}),
		selected_notes=spell_notes([pitch_class_of(root)], root),
	)


def chromatic_answer(root: str, include_octave: bool = True) -> ScaleStripAnswer:
	return generate_answer(list(range(12)), root, root, include_octave=include_octave)


def interval_difficulty(semitones: int) -> Difficulty:
	if semitones in (0, 5, 7, 12):
		return Difficulty.BEGINNER
	return Difficulty.INTERMEDIATE


def interval_display_name(semitones: int) -> str:
	if semitones == 12:
		return "Octave"
	return INTERVAL_NAMES[semitones % 12]


# Question builders ----------------------------------------------------------


def _slug(name: str) -> str:
	return name.lower().replace(" ", "_").replace("#", "s")


def octave_questions(roots: Sequence[str] = DEFAULT_OCTAVE_ROOTS) -> List[ScaleStripQuestion]:
	out = []
	for n, root in enumerate(roots, start=1):
		out.append(
			ScaleStripQuestion(
				id=f"octave_from_{_slug(root)}_{n}",
				text=f"Select the Octave from {root}",
				topic_id="intervals",
				difficulty=Difficulty.BEGINNER,
				point_value=10,
				configuration=ScaleStripConfiguration(
					show_interval_labels=False,
					root_note=root,
					show_empty_positions=True,
					key_context=root,
				),
				correct_answer=octave_answer(root),
				scale_type="octave",
				related_concept_ids=("octave", "basic_intervals"),
				explanation=(
					f"From {root} to the next {root} is 12 semitones, so positions 1 and 13 "
					"both hold the root."
				),
			)
		)
	return out


def chromatic_questions(roots: Sequence[str] = DEFAULT_CHROMATIC_ROOTS) -> List[ScaleStripQuestion]:
	out = []
	for n, root in enumerate(roots, start=1):
		flats = key_prefers_flats(root)
		out.append(
			ScaleStripQuestion(
				id=f"chromatic_fill_{_slug(root)}_{n}",
				text=f"Fill in the missing notes in the chromatic scale starting from {root}",
				topic_id="scales",
				difficulty=Difficulty.BEGINNER,
				point_value=12,
				configuration=ScaleStripConfiguration(
					show_interval_labels=False,
					show_note_labels=False,
					display_mode=ScaleStripMode.FILL_IN_BLANKS,
					root_note=root,
					validation_mode=ValidationMode.NOTE_NAMES_ENHARMONIC,
					pre_highlighted_positions=natural_note_positions(root),
					show_empty_positions=True,
					key_context=root,
				),
				correct_answer=chromatic_answer(root),
				scale_type="chromatic",
				question_mode=ScaleStripQuestionMode.NOTES,
				related_concept_ids=("chromatic_scale", "enharmonics"),
				explanation=(
					f"The chromatic scale holds all 12 pitches from {root}. "
					f"In this key the black-key notes are usually written with {'flats' if flats else 'sharps'}."
				),
			)
		)
	return out


def interval_questions(
	roots: Sequence[str] = DEFAULT_INTERVAL_ROOTS,
	intervals: Sequence[int] = DEFAULT_INTERVALS,
) -> List[ScaleStripQuestion]:
	out = []
	n = 1
	for root in roots:
		for semitones in intervals:
			name = interval_display_name(semitones)
			answer = interval_answer(root, root, semitones)
			iv = Interval(semitones=semitones)
			target = next(iter(answer.selected_notes))
			out.append(
				ScaleStripQuestion(
					id=f"interval_{_slug(name)}_{_slug(root)}_{n}",
					text=f"Select the {name} from {root}",
					topic_id="intervals",
					difficulty=interval_difficulty(semitones),
					point_value=5,
					configuration=ScaleStripConfiguration(
						allow_multiple_selection=False,
						root_note=root,
						key_context=root,
					),
					correct_answer=answer,
					scale_type="interval",
					related_concept_ids=("basic_intervals", f"interval_{semitones}"),
					explanation=(
						f"A {name} from {root} is {target}, {semitones} semitones away "
						f"({iv.quality.symbol} quality)."
					),
				)
			)
			n += 1
	return out


def scale_questions(
	roots: Sequence[str] = DEFAULT_SCALE_ROOTS,
	scale_types: Sequence[str] = DEFAULT_SCALE_TYPES,
) -> List[ScaleStripQuestion]:
	out = []
	n = 1
	for root in roots:
		for scale_type in scale_types:
			scale = require_scale(scale_type)
			answer = scale_answer(scale_type, root, root, include_octave=True)
			out.append(
				ScaleStripQuestion(
					id=f"scale_{_slug(scale_type)}_{_slug(root)}_{n}",
					text=f"Select all notes in the {root} {scale_type.capitalize()} scale",
					topic_id="scales",
					difficulty=scale_difficulty(scale_type),
					point_value=14,
					configuration=ScaleStripConfiguration(
						show_interval_labels=False,
						display_mode=ScaleStripMode.CONSTRUCTION,
						root_note=root,
						validation_mode=ValidationMode.NOTE_NAMES_ENHARMONIC,
						key_context=scale_key_context(root, scale_type),
					),
					correct_answer=answer,
					scale_type=scale_type,
					question_mode=ScaleStripQuestionMode.CONSTRUCTION,
					related_concept_ids=("scales", f"{_slug(scale.name)}_scale"),
					explanation=(
						f"The {root} {scale.name.lower()} scale follows the pattern "
						f"{'-'.join(scale.step_pattern())} with degrees {'-'.join(scale.degree_labels)}."
					),
				)
			)
			n += 1
	return out


def chord_questions(
	roots: Sequence[str] = DEFAULT_CHORD_ROOTS,
	chord_types: Sequence[str] = DEFAULT_CHORD_TYPES,
) -> List[ScaleStripQuestion]:
	out = []
	n = 1
	for root in roots:
		for chord_type in chord_types:
			chord = require_chord(chord_type)
			octaves = chord_octave_count(chord_type)
			out.append(
				ScaleStripQuestion(
					id=f"chord_{_slug(chord_type)}_{_slug(root)}_{n}",
					text=f"Select the notes of {chord.symbol_for(root)} ({chord.display_name})",
					topic_id="chords",
					difficulty=chord.difficulty,
					point_value=12,
					configuration=ScaleStripConfiguration(
						display_mode=ScaleStripMode.CONSTRUCTION,
						root_note=root,
						octave_count=octaves,
						key_context=root,
					),
					correct_answer=chord_answer(chord_type, root, root),
					scale_type=chord_type,
					question_mode=ScaleStripQuestionMode.CONSTRUCTION,
					related_concept_ids=("chords", "triads" if len(chord.intervals) == 3 else "extended_chords"),
					explanation=(
						f"{chord.symbol_for(root)} is a {chord.quality().lower()} built from "
						f"{', '.join(str(i) for i in chord.intervals)} semitones above {root}."
					),
				)
			)
			n += 1
	logger.debug("built %d chord strip questions", len(out))
	return out
