import pytest
from pydantic import ValidationError

from theorytrainer.errors import ConfigurationError, ParseError, TheoryTrainerError
from theorytrainer.models import (
	ChordInteractiveQuestion,
	Difficulty,
	DifficultyRange,
	FretSelection,
	QuestionAdapter,
	QuestionType,
	ScaleStripAnswer,
	ScaleStripConfiguration,
	ScaleStripQuestion,
	Settings,
	question_from_dict,
)


def test_question_union_round_trips():
	q = ScaleStripQuestion(
		id="s1",
		text="Select the notes of C major",
		topic_id="scales",
		configuration=ScaleStripConfiguration(root_note="C", key_context="C"),
		correct_answer=ScaleStripAnswer(selected_positions=frozenset({0, 4, 7}), selected_notes=frozenset({"C", "E", "G"})),
		related_concept_ids=("scales",),
	)
	data = QuestionAdapter.dump_python(q, mode="json")
	assert data["type"] == "scale_strip"
	back = question_from_dict(data)
	assert back == q
	assert back.question_type == QuestionType.SCALE_STRIP


def test_chord_question_from_dict():
	q = question_from_dict(
		{
			"type": "chord_interactive",
			"id": "c",
			"text": "Play E minor",
			"topic_id": "basic_chords",
			"chord_type": "minor",
			"root": "E",
			"acceptable_positions": [[{"string_index": 1, "fret": 2}, {"string_index": 2, "fret": 2}]],
		}
	)
	assert isinstance(q, ChordInteractiveQuestion)
	assert q.acceptable_positions[0][0] == FretSelection(string_index=1, fret=2)


def test_unknown_question_type_is_rejected():
	with pytest.raises(ValidationError):
		question_from_dict({"type": "essay", "id": "x", "text": "?", "topic_id": "t"})


def test_questions_are_frozen():
	q = question_from_dict({"type": "multiple_choice", "id": "m", "text": "?", "topic_id": "t", "correct_answer": "A"})
	with pytest.raises(ValidationError):
		q.text = "changed"


def test_difficulty_helpers():
	assert Difficulty.EXPERT.level == 3
	assert Difficulty.ADVANCED.point_multiplier == 3
	assert Difficulty.from_level(9) == Difficulty.EXPERT
	assert Difficulty.from_level(-1) == Difficulty.BEGINNER


def test_difficulty_range_weights():
	r = DifficultyRange(minimum=Difficulty.BEGINNER, maximum=Difficulty.ADVANCED)
	assert r.difficulties() == [Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED]
	assert r.weight_for(Difficulty.INTERMEDIATE) == pytest.approx(1 / 3)
	assert r.weight_for(Difficulty.EXPERT) == 0.0
	skewed = DifficultyRange(distribution={Difficulty.BEGINNER: 0.6, Difficulty.INTERMEDIATE: 0.4})
	assert skewed.weight_for(Difficulty.BEGINNER) == 0.6


def test_settings_bounds():
	assert Settings().passing_score == 0.7
	with pytest.raises(ValidationError):
		Settings(max_frets=30)
	with pytest.raises(ValidationError):
		Settings(waveform="square")


def test_error_hierarchy():
	assert issubclass(ParseError, ValueError)
	assert issubclass(ConfigurationError, TheoryTrainerError)
	err = ConfigurationError("bad", ["a", "b"])
	assert err.problems == ["a", "b"]
	assert ConfigurationError("bad").problems == []
