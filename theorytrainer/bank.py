"""Built-in question sections.

Each section is a loader returning fresh question objects; the pool decides
when to call it. ``introduction`` is hand-written, ``fundamentals`` is built
from the scale-strip builders.
"""
from __future__ import annotations

from typing import Callable, Dict, List, Sequence, Tuple

from .models import (
	ChordInteractiveQuestion,
	Difficulty,
	DifficultyRange,
	FretSelection,
	MultipleChoiceQuestion,
	QuestionType,
	QuizTemplate,
	ScaleDisplayMode,
	ScaleInteractionMode,
	ScaleInteractiveQuestion,
)
from .scales import require_scale
from .strip import chord_questions, chromatic_questions, interval_questions, octave_questions, scale_questions
from .theory import key_prefers_flats, pitch_class_of, spell_pitch_class

INTRODUCTION = "introduction"
FUNDAMENTALS = "fundamentals"


def _mc(
	id: str,
	text: str,
	topic_id: str,
	correct: str,
	wrong: Sequence[str],
	concepts: Sequence[str],
	explanation: str,
	variations: Sequence[str] = (),
	difficulty: Difficulty = Difficulty.BEGINNER,
	points: float = 1.0,
) -> MultipleChoiceQuestion:
	return MultipleChoiceQuestion(
		id=id,
		text=text,
		topic_id=topic_id,
		difficulty=difficulty,
		point_value=points,
		correct_answer=correct,
		correct_answer_variations=tuple(variations),
		incorrect_answer_pool=tuple(wrong),
		related_concept_ids=tuple(concepts),
		explanation=explanation,
	)


def introduction_multiple_choice() -> List[MultipleChoiceQuestion]:
	return [
		_mc(
			"intro_mc_001",
			"What is the musical alphabet?",
			"music_basics",
			"A, B, C, D, E, F, G",
			["A, B, C, D, E, F, G, H", "A, B, C, D, E", "Do, Re, Mi, Fa, Sol, La, Ti", "C, D, E, F, G, A, B"],
			["musical_alphabet", "note_names"],
			"The musical alphabet has seven letters, A to G, which repeat in order.",
			variations=["A B C D E F G", "ABCDEFG"],
		),
		_mc(
			"intro_mc_002",
			"How many lines does a musical staff have?",
			"notes_and_staff",
			"5",
			["4", "6", "7", "8"],
			["staff_lines", "staff_basics"],
			"A staff is 5 horizontal lines with 4 spaces between them.",
			variations=["Five", "5 lines"],
		),
		_mc(
			"intro_mc_003",
			"Which note comes after G in the musical alphabet?",
			"music_basics",
			"A",
			["H", "F", "B", "C"],
			["musical_alphabet", "note_names"],
			"After G the alphabet starts again at A.",
		),
		_mc(
			"intro_mc_004",
			"What are the notes on the lines of the treble clef, from bottom to top?",
			"notes_and_staff",
			"E, G, B, D, F",
			["F, A, C, E", "G, B, D, F, A", "E, F, G, A, B", "C, E, G, B, D"],
			["treble_clef", "staff_lines", "note_names"],
			"Every Good Boy Does Fine: E, G, B, D and F sit on the treble lines.",
			variations=["EGBDF"],
		),
		_mc(
			"intro_mc_005",
			"What are the notes in the spaces of the treble clef, from bottom to top?",
			"notes_and_staff",
			"F, A, C, E",
			["E, G, B, D", "A, C, E, G", "F, G, A, B", "D, F, A, C"],
			["treble_clef", "staff_spaces", "note_names"],
			"The spaces spell FACE.",
			variations=["FACE"],
		),
		_mc(
			"intro_mc_006",
			"How many half steps make a whole step?",
			"music_basics",
			"2",
			["1", "3", "4", "12"],
			["half_steps", "whole_steps", "basic_intervals"],
			"A whole step is two half steps, for example C to D.",
			variations=["Two"],
		),
		_mc(
			"intro_mc_007",
			"Which pair of natural notes is only a half step apart?",
			"music_basics",
			"E and F",
			["C and D", "F and G", "G and A", "A and B"],
			["half_steps", "basic_intervals", "natural_notes"],
			"E-F and B-C are the only natural half steps; there is no black key between them.",
			variations=["B and C"],
			difficulty=Difficulty.INTERMEDIATE,
			points=2.0,
		),
		_mc(
			"intro_mc_008",
			"How many beats does a whole note last in 4/4 time?",
			"basic_rhythm",
			"4",
			["1", "2", "3", "8"],
			["note_values", "simple_rhythms"],
			"A whole note fills a full bar of 4/4: four beats.",
			variations=["Four"],
		),
		_mc(
			"intro_mc_009",
			"How many eighth notes fit in one quarter note?",
			"basic_rhythm",
			"2",
			["1", "3", "4", "8"],
			["note_values", "simple_rhythms"],
			"A quarter note divides into two eighth notes.",
			variations=["Two"],
		),
		_mc(
			"intro_mc_010",
			"What does the top number of a time signature tell you?",
			"basic_rhythm",
			"The number of beats in each measure",
			[
				"Which note value gets one beat",
				"The tempo of the piece",
				"How many measures are in the piece",
				"The key of the piece",
			],
			["time_signatures", "simple_rhythms"],
			"The top number counts beats per measure; the bottom number names the beat unit.",
			difficulty=Difficulty.INTERMEDIATE,
			points=2.0,
		),
		_mc(
			"intro_mc_011",
			"How many sharps are in the key of G major?",
			"key_signatures",
			"1",
			["0", "2", "3", "1 flat"],
			["key_signatures", "sharp_keys"],
			"G major has one sharp, F#.",
			variations=["One", "1 (F#)"],
		),
		_mc(
			"intro_mc_012",
			"Which key has one flat?",
			"key_signatures",
			"F major",
			["G major", "D major", "B-flat major", "C major"],
			["key_signatures", "flat_keys"],
			"F major has a single flat, Bb.",
			variations=["D minor"],
			difficulty=Difficulty.INTERMEDIATE,
			points=2.0,
		),
		_mc(
			"intro_mc_013",
			"What is the interval from C up to G?",
			"music_basics",
			"Perfect 5th",
			["Major 3rd", "Perfect 4th", "Major 6th", "Octave"],
			["basic_intervals"],
			"C to G spans 7 half steps, a perfect fifth.",
			variations=["P5", "Fifth"],
			difficulty=Difficulty.INTERMEDIATE,
			points=2.0,
		),
		_mc(
			"intro_mc_014",
			"What symbol raises a note by a half step?",
			"notes_and_staff",
			"Sharp (#)",
			["Flat (b)", "Natural", "Fermata", "Tie"],
			["accidentals", "note_names"],
			"A sharp raises a note one half step; a flat lowers it.",
			variations=["Sharp", "#"],
		),
	]


def _scale_notes(key: str, scale_type: str) -> List[str]:
	scale = require_scale(scale_type)
	flats = key_prefers_flats(key)
	notes = [spell_pitch_class(pc, flats) for pc in scale.pitch_classes(pitch_class_of(key))]
	return notes + [notes[0]]


def _fill_notes(
	id: str,
	key: str,
	scale_type: str,
	visible: Sequence[int],
	concepts: Sequence[str],
	difficulty: Difficulty = Difficulty.BEGINNER,
	points: float = 2.0,
	interaction: ScaleInteractionMode = ScaleInteractionMode.FILL_NOTES,
) -> ScaleInteractiveQuestion:
	notes = _scale_notes(key, scale_type)
	name = require_scale(scale_type).name
	verb = "Fill in the missing notes of" if interaction == ScaleInteractionMode.FILL_NOTES else "Build"
	return ScaleInteractiveQuestion(
		id=id,
		text=f"{verb} the {key} {name.lower()} scale",
		topic_id="basic_scales",
		difficulty=difficulty,
		point_value=points,
		scale_key=key,
		scale_type=scale_type,
		display_mode=ScaleDisplayMode.MIXED if visible else ScaleDisplayMode.HIDE_NOTES,
		interaction_mode=interaction,
		initial_state={
			"visible_notes": {str(i): notes[i] for i in visible},
			"hidden_positions": [i for i in range(len(notes)) if i not in visible],
		},
		expected_answer={str(i): n for i, n in enumerate(notes)},
		related_concept_ids=tuple(concepts),
		explanation=f"The {key} {name.lower()} scale is {', '.join(notes)}.",
	)


def introduction_scale_questions() -> List[ScaleInteractiveQuestion]:
	g_steps = require_scale("major").step_pattern()
	return [
		_fill_notes("intro_scale_001", "C", "major", [0, 2, 4, 7], ["major_scale", "scale_construction", "natural_notes"]),
		ScaleInteractiveQuestion(
			id="intro_scale_002",
			text="Identify the steps between the notes of the G major scale",
			topic_id="basic_scales",
			difficulty=Difficulty.INTERMEDIATE,
			point_value=3.0,
			scale_key="G",
			scale_type="major",
			interaction_mode=ScaleInteractionMode.FILL_INTERVALS,
			initial_state={"notes": _scale_notes("G", "major"), "visible_steps": {"0-1": "W", "1-2": "W"}},
			expected_answer={f"{i}-{i + 1}": step for i, step in enumerate(g_steps)},
			related_concept_ids=("major_scale_pattern", "whole_steps", "half_steps", "basic_intervals"),
			explanation="The major scale pattern is W-W-H-W-W-W-H.",
		),
		_fill_notes(
			"intro_scale_003",
			"F",
			"major",
			[0],
			["f_major", "flat_keys", "scale_construction"],
			difficulty=Difficulty.INTERMEDIATE,
			points=3.0,
			interaction=ScaleInteractionMode.CONSTRUCT,
		),
		_fill_notes(
			"intro_scale_004",
			"A",
			"minor",
			[0, 2, 4],
			["minor_scale", "relative_minor", "natural_notes"],
			difficulty=Difficulty.INTERMEDIATE,
		),
		_fill_notes(
			"intro_scale_005",
			"E",
			"chromatic",
			[0, 2, 4, 6, 8, 10],
			["chromatic_scale", "half_steps", "all_twelve_notes"],
			difficulty=Difficulty.ADVANCED,
			points=4.0,
		),
	]


def _shape(frets: Sequence[int]) -> Tuple[FretSelection, ...]:
	"""Fret numbers from the lowest string up; negative marks a muted string."""
	return tuple(FretSelection(string_index=i, fret=f) for i, f in enumerate(frets) if f >= 0)


def _chord(
	id: str,
	root: str,
	chord_type: str,
	shapes: Sequence[Sequence[int]],
	concepts: Sequence[str],
	explanation: str,
	difficulty: Difficulty = Difficulty.BEGINNER,
	points: float = 2.0,
	text: str = "",
) -> ChordInteractiveQuestion:
	return ChordInteractiveQuestion(
		id=id,
		text=text or f"Place your fingers to form a {root} {chord_type} chord",
		topic_id="basic_chords",
		difficulty=difficulty,
		point_value=points,
		chord_type=chord_type,
		root=root,
		acceptable_positions=tuple(_shape(s) for s in shapes),
		related_concept_ids=tuple(concepts),
		explanation=explanation,
	)


def introduction_chord_questions() -> List[ChordInteractiveQuestion]:
	return [
		_chord(
			"intro_chord_001",
			"C",
			"major",
			[[-1, 3, 2, 0, 1, 0]],
			["c_major_chord", "open_chords", "chord_fingering"],
			"Open C major: 3rd fret on the A string, 2nd on D, 1st on B.",
		),
		_chord(
			"intro_chord_002",
			"G",
			"major",
			[[3, 2, 0, 0, 0, 3], [3, 2, 0, 0, 3, 3]],
			["g_major_chord", "open_chords", "chord_variations"],
			"Open G major uses the 3rd fret on both E strings and the 2nd fret on A.",
			text="Form a G major chord on the fretboard",
		),
		_chord(
			"intro_chord_003",
			"A",
			"minor",
			[[-1, 0, 2, 2, 1, 0]],
			["a_minor_chord", "minor_chords", "open_chords"],
			"Open A minor: 2nd fret on D and G, 1st fret on B.",
			text="Create an A minor chord",
		),
		_chord(
			"intro_chord_004",
			"D",
			"major",
			[[-1, -1, 0, 2, 3, 2]],
			["d_major_chord", "chord_tones"],
			"Open D major uses only the top four strings: D, A, D, F#.",
			difficulty=Difficulty.INTERMEDIATE,
		),
		_chord(
			"intro_chord_005",
			"E",
			"minor",
			[[0, 2, 2, 0, 0, 0]],
			["e_minor_chord", "easy_chords", "chord_construction"],
			"Open E minor needs two fingers on the 2nd fret of A and D.",
			text="Build an E minor chord from scratch",
			difficulty=Difficulty.INTERMEDIATE,
		),
	]


def introduction_questions() -> List:
	return [*introduction_multiple_choice(), *introduction_scale_questions(), *introduction_chord_questions()]


def fundamentals_questions() -> List:
	return [
		*octave_questions(),
		*chromatic_questions(),
		*interval_questions(),
		*scale_questions(),
		*chord_questions(),
	]


BUILTIN_SECTIONS: Dict[str, Callable[[], List]] = {
	INTRODUCTION: introduction_questions,
	FUNDAMENTALS: fundamentals_questions,
}


INTRODUCTION_SECTION_TEMPLATE = QuizTemplate(
	id="introduction_section",
	name="Introduction Section Quiz",
	section_id=INTRODUCTION,
	question_distribution={
		QuestionType.MULTIPLE_CHOICE: 10,
		QuestionType.SCALE_INTERACTIVE: 3,
		QuestionType.CHORD_INTERACTIVE: 2,
	},
	topic_weights={
		"music_basics": 0.3,
		"notes_and_staff": 0.3,
		"basic_rhythm": 0.2,
		"key_signatures": 0.2,
	},
	difficulty_range=DifficultyRange(
		minimum=Difficulty.BEGINNER,
		maximum=Difficulty.INTERMEDIATE,
		distribution={Difficulty.BEGINNER: 0.6, Difficulty.INTERMEDIATE: 0.4},
	),
	required_concepts=frozenset({"note_names", "staff_lines", "basic_intervals", "simple_rhythms"}),
	estimated_minutes=15,
)

FUNDAMENTALS_SECTION_TEMPLATE = QuizTemplate(
	id="fundamentals_section",
	name="Fundamentals Section Quiz",
	section_id=FUNDAMENTALS,
	question_distribution={QuestionType.SCALE_STRIP: 12},
	topic_weights={"intervals": 0.4, "scales": 0.35, "chords": 0.25},
	difficulty_range=DifficultyRange(minimum=Difficulty.BEGINNER, maximum=Difficulty.ADVANCED),
	required_concepts=frozenset({"octave", "chromatic_scale", "scales", "triads"}),
	estimated_minutes=12,
)

SECTION_TEMPLATES: Dict[str, QuizTemplate] = {
	INTRODUCTION: INTRODUCTION_SECTION_TEMPLATE,
	FUNDAMENTALS: FUNDAMENTALS_SECTION_TEMPLATE,
}
