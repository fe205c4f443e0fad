from theorytrainer.bank import (
	BUILTIN_SECTIONS,
	SECTION_TEMPLATES,
	fundamentals_questions,
	introduction_chord_questions,
	introduction_questions,
	introduction_scale_questions,
)
from theorytrainer.instruments import require_tuning
from theorytrainer.chords import require_chord
from theorytrainer.theory import pitch_class_of
from theorytrainer.validation import validate_answer


def test_templates_are_valid():
	for template in SECTION_TEMPLATES.values():
		assert template.is_valid, template.validation_problems()
		assert template.section_id in BUILTIN_SECTIONS


def test_question_ids_are_unique_across_sections():
	ids = [q.id for q in introduction_questions()] + [q.id for q in fundamentals_questions()]
	assert len(ids) == len(set(ids))


def test_required_concepts_are_available():
	for section_id, template in SECTION_TEMPLATES.items():
		concepts = {c for q in BUILTIN_SECTIONS[section_id]() for c in q.related_concept_ids}
		assert template.required_concepts <= concepts


def test_scale_questions_accept_their_own_answers():
	for q in introduction_scale_questions():
		assert validate_answer(q, q.expected_answer).is_correct, q.id


def test_chord_shapes_sound_the_named_chord():
	for q in introduction_chord_questions():
		tuning = require_tuning(q.tuning)
		expected = {(pitch_class_of(q.root) + i) % 12 for i in require_chord(q.chord_type).intervals}
		for shape in q.acceptable_positions:
			pcs = set(tuning.pitch_classes_for([(s.string_index, s.fret) for s in shape]))
			assert pcs == expected, q.id
			assert validate_answer(q, [(s.string_index, s.fret) for s in shape]).is_correct
