import pytest

from theorytrainer.models import (
	ChordInteractiveQuestion,
	FretSelection,
	MultipleChoiceQuestion,
	ScaleInteractiveQuestion,
	ScaleStripAnswer,
	ScaleStripConfiguration,
	ScaleStripQuestion,
	ValidationMode,
)
from theorytrainer.validation import canonical_answer, enharmonic_score, feedback_for, pattern_score, validate_answer


def strip_question(mode, positions=(), notes=(), partial=True, points=10.0):
	return ScaleStripQuestion(
		id="q",
		text="Select the C major triad",
		topic_id="chords",
		point_value=points,
		configuration=ScaleStripConfiguration(validation_mode=mode),
		correct_answer=ScaleStripAnswer(selected_positions=frozenset(positions), selected_notes=frozenset(notes)),
		allow_partial_credit=partial,
	)


def test_enharmonic_scenario_wrong_note_scores_two_thirds():
	q = strip_question(ValidationMode.NOTE_NAMES_ENHARMONIC, notes={"C", "E", "G"}, points=3.0)
	result = validate_answer(q, ScaleStripAnswer(selected_notes=frozenset({"C", "D#", "G"})))
	assert not result.is_correct
	assert 0.0 < result.earned_points < 3.0
	assert result.earned_points == pytest.approx(2.0)
	assert result.details["enharmonic"] == 0


def test_enharmonic_spelling_gets_partial_credit():
	score, ok, counts = enharmonic_score({"C", "D#", "G"}, {"C", "Eb", "G"})
	assert not ok
	assert counts["enharmonic"] == 1
	assert score == pytest.approx((2 + 0.75) / 3)


def test_enharmonic_excess_penalty():
	score, ok, _ = enharmonic_score({"C", "E", "G", "B"}, {"C", "E", "G"})
	assert not ok
	assert score == pytest.approx(1.0 - 0.25 / 3)


def test_enharmonic_exact_is_correct():
	score, ok, _ = enharmonic_score(["c", "E", "G♯"], ["C", "E", "G#"])
	assert ok and score == 1.0


def test_exact_positions():
	q = strip_question(ValidationMode.EXACT_POSITIONS, positions={0, 4, 7})
	assert validate_answer(q, ScaleStripAnswer(selected_positions=frozenset({0, 4, 7}))).is_correct
	partial = validate_answer(q, ScaleStripAnswer(selected_positions=frozenset({0, 4})))
	assert not partial.is_correct
	assert partial.earned_points == pytest.approx(10 * 2 / 3)


def test_exact_positions_without_partial_credit():
	q = strip_question(ValidationMode.EXACT_POSITIONS, positions={0, 4, 7}, partial=False)
	result = validate_answer(q, ScaleStripAnswer(selected_positions=frozenset({0, 4})))
	assert result.earned_points == 0.0


def test_strip_answer_accepts_plain_dict():
	q = strip_question(ValidationMode.NOTE_NAMES, notes={"C", "E", "G"})
	result = validate_answer(q, {"selected_notes": ["C", "E", "G"]})
	assert result.is_correct


def test_pattern_is_transposition_invariant():
	assert pattern_score({2, 6, 9}, {0, 4, 7}) == 1.0
	assert pattern_score({0, 2, 7}, {0, 4, 7}) == 0.0
	assert pattern_score({0, 4}, {0, 4, 7}) == 0.0
	q = strip_question(ValidationMode.PATTERN, positions={0, 4, 7})
	assert validate_answer(q, ScaleStripAnswer(selected_positions=frozenset({5, 9, 12}))).is_correct


@pytest.mark.parametrize("bad", [None, 42, "C E G", ["C"]])
def test_malformed_strip_answer_never_raises(bad):
	q = strip_question(ValidationMode.EXACT_POSITIONS, positions={0})
	result = validate_answer(q, bad)
	assert not result.is_correct
	assert result.earned_points == 0.0


def test_multiple_choice_variations():
	q = MultipleChoiceQuestion(
		id="mc",
		text="How many lines does a staff have?",
		topic_id="notes_and_staff",
		point_value=2.0,
		correct_answer="5",
		correct_answer_variations=("Five",),
		incorrect_answer_pool=("4", "6"),
	)
	assert validate_answer(q, "Five").earned_points == 2.0
	wrong = validate_answer(q, "6")
	assert not wrong.is_correct and "5" in wrong.feedback
	assert not validate_answer(q, 5).is_correct


def test_scale_interactive_partial():
	q = ScaleInteractiveQuestion(
		id="si",
		text="Fill in F major",
		topic_id="basic_scales",
		point_value=4.0,
		scale_key="F",
		scale_type="major",
		expected_answer={"0": "F", "1": "G", "2": "A", "3": "Bb"},
	)
	assert validate_answer(q, {"0": "F", "1": "G", "2": "A", "3": "B♭"}).is_correct
	half = validate_answer(q, {"0": "F", "1": "G"})
	assert half.earned_points == pytest.approx(2.0)
	assert not validate_answer(q, ["F"]).is_correct


def chord_question(**kw):
	c_shape = tuple(FretSelection(string_index=s, fret=f) for s, f in [(1, 3), (2, 2), (3, 0), (4, 1), (5, 0)])
	return ChordInteractiveQuestion(
		id="ch",
		text="Form a C major chord",
		topic_id="basic_chords",
		point_value=2.0,
		chord_type="major",
		root="C",
		acceptable_positions=(c_shape,),
		**kw,
	)


def test_chord_shape_match():
	result = validate_answer(chord_question(), [(1, 3), (2, 2), (3, 0), (4, 1), (5, 0)])
	assert result.is_correct
	assert result.details["matched"] == "shape"


def test_chord_pitch_class_match_unless_exact_required():
	barre = [(0, 8), (1, 10), (2, 10), (3, 9), (4, 8), (5, 8)]
	assert validate_answer(chord_question(), barre).is_correct
	assert not validate_answer(chord_question(require_exact_position=True), barre).is_correct


def test_chord_wrong_and_malformed():
	assert not validate_answer(chord_question(), [(1, 3), (2, 1), (3, 0)]).is_correct
	assert not validate_answer(chord_question(), [(9, 1)]).is_correct
	assert not validate_answer(chord_question(), "x32010").is_correct
	assert validate_answer(chord_question(), {"positions": [{"string_index": 1, "fret": 3}]}).earned_points == 0.0


def test_feedback_buckets():
	assert feedback_for(1.0).startswith("Perfect")
	assert feedback_for(0.85).startswith("Almost")
	assert feedback_for(0.5).startswith("Good effort")
	assert feedback_for(0.1).startswith("Keep practicing")


def test_canonical_answer_shapes():
	strip = strip_question(ValidationMode.EXACT_POSITIONS, positions={0, 4, 7})
	assert canonical_answer(strip, {"selected_positions": [0, 4]}) == ScaleStripAnswer(selected_positions=frozenset({0, 4}))
	assert canonical_answer(strip, "C E G") is None
	assert canonical_answer(chord_question(), [(2, 2), (1, 3)]) == (
		FretSelection(string_index=1, fret=3),
		FretSelection(string_index=2, fret=2),
	)
	assert canonical_answer(chord_question(), "x32010") is None
	mc = MultipleChoiceQuestion(id="mc", text="?", topic_id="t", correct_answer="A")
	assert canonical_answer(mc, "A") == "A"
	assert canonical_answer(mc, 5) is None
