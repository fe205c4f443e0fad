import warnings

import numpy as np
import pytest

from theorytrainer.bank import INTRODUCTION, INTRODUCTION_SECTION_TEMPLATE
from theorytrainer.errors import ConfigurationError, InsufficientCandidatesWarning
from theorytrainer.generator import (
	QuizGenerator,
	adaptive_topic_weights,
	average_difficulty,
	backfill_concepts,
	build_choices,
	distribution_from_preferences,
	equal_topic_weights,
)
from theorytrainer.models import (
	Difficulty,
	DifficultyRange,
	MultipleChoiceQuestion,
	QuestionType,
	QuizTemplate,
	QuizType,
	Settings,
)
from theorytrainer.pool import QuestionPool


def mc(id, concepts=(), topic="t", difficulty=Difficulty.BEGINNER):
	return MultipleChoiceQuestion(
		id=id,
		text=id,
		topic_id=topic,
		difficulty=difficulty,
		correct_answer="yes",
		incorrect_answer_pool=("no", "maybe", "never", "always", "sometimes"),
		related_concept_ids=tuple(concepts),
	)


def template(count=3, weights=None, required=(), low=Difficulty.BEGINNER, high=Difficulty.INTERMEDIATE, **kw):
	return QuizTemplate(
		id="tmpl",
		name="Test Quiz",
		section_id="demo",
		question_distribution={QuestionType.MULTIPLE_CHOICE: count},
		topic_weights={"t": 1.0} if weights is None else weights,
		difficulty_range=DifficultyRange(minimum=low, maximum=high),
		required_concepts=frozenset(required),
		**kw,
	)


def pool_of(questions):
	return QuestionPool({"demo": lambda: list(questions)})


def test_weight_sum_half_is_invalid_before_generation():
	calls = []
	pool = QuestionPool({"demo": lambda: calls.append(1) or [mc("a")]})
	bad = template(weights={"t": 0.25, "u": 0.25})
	assert not bad.is_valid
	with pytest.raises(ConfigurationError) as err:
		QuizGenerator(pool, seed=1).generate(bad)
	assert any("weights" in p for p in err.value.problems)
	assert calls == []


def test_other_template_problems():
	assert not template(count=0).is_valid
	assert not template(low=Difficulty.ADVANCED, high=Difficulty.BEGINNER).is_valid
	assert template(weights={"t": 0.96}).is_valid
	assert not template(weights={"t": 1.06}).is_valid


def test_introduction_template_generation():
	gen = QuizGenerator(QuestionPool(), seed=7)
	with warnings.catch_warnings():
		warnings.simplefilter("error", InsufficientCandidatesWarning)
		quiz = gen.generate(INTRODUCTION_SECTION_TEMPLATE)
	assert len(quiz.questions) == 15
	assert len({q.id for q in quiz.questions}) == 15
	counts = quiz.metadata.question_types
	assert counts == {"multiple_choice": 10, "scale_interactive": 3, "chord_interactive": 2}
	covered = {c for q in quiz.questions for c in q.related_concept_ids}
	assert INTRODUCTION_SECTION_TEMPLATE.required_concepts <= covered
	assert all(INTRODUCTION_SECTION_TEMPLATE.difficulty_range.contains(q.difficulty) for q in quiz.questions)
	assert gen.last_report.is_complete
	assert quiz.section_id == INTRODUCTION
	assert quiz.metadata.title == "Introduction Section Quiz"


def test_same_seed_same_quiz():
	a = QuizGenerator(QuestionPool(), seed=11).generate(INTRODUCTION_SECTION_TEMPLATE)
	b = QuizGenerator(QuestionPool(), seed=11).generate(INTRODUCTION_SECTION_TEMPLATE)
	assert [q.id for q in a.questions] == [q.id for q in b.questions]


def test_required_concept_preferred():
	questions = [mc(f"plain{i}") for i in range(5)] + [mc("needed", concepts=["key"])]
	quiz = QuizGenerator(pool_of(questions), seed=0).generate(template(count=2, required=["key"]))
	assert "needed" in {q.id for q in quiz.questions}


def test_underfill_warns_and_reports():
	gen = QuizGenerator(pool_of([mc("a"), mc("b")]), seed=0)
	with pytest.warns(InsufficientCandidatesWarning):
		quiz = gen.generate(template(count=5, required=["missing"]))
	assert len(quiz.questions) == 2
	assert gen.last_report.shortfall == {"multiple_choice": 3}
	assert gen.last_report.unresolved_concepts == frozenset({"missing"})


def test_fill_ignores_difficulty_when_short():
	questions = [mc("easy"), mc("hard1", difficulty=Difficulty.EXPERT), mc("hard2", difficulty=Difficulty.EXPERT)]
	quiz = QuizGenerator(pool_of(questions), seed=0).generate(template(count=3, high=Difficulty.BEGINNER))
	assert {q.id for q in quiz.questions} == {"easy", "hard1", "hard2"}


def test_backfill_is_pure_and_swaps():
	pool = pool_of([mc("a", ["x"]), mc("b", ["y"]), mc("c", ["z", "w"]), mc("d", ["z"])])
	pool.load_questions_for_section("demo")
	tmpl = template(count=2, required=["x", "z", "w"])
	selected = [pool.get_question_by_id("a"), pool.get_question_by_id("b")]
	new, missing = backfill_concepts(selected, {"z", "w"}, pool, tmpl)
	assert [q.id for q in selected] == ["a", "b"]
	# "a" carries a required concept and stays; "b" is swapped for the best cover
	assert [q.id for q in new] == ["a", "c"]
	assert missing == frozenset()


def test_backfill_reports_unresolvable():
	pool = pool_of([mc("a", ["x"])])
	pool.load_questions_for_section("demo")
	new, missing = backfill_concepts([pool.get_question_by_id("a")], {"q"}, pool, template(count=1))
	assert [q.id for q in new] == ["a"]
	assert missing == frozenset({"q"})


def test_no_shuffle_constraint_keeps_order():
	questions = [mc("first", concepts=["k"]), mc("second")]
	tmpl = template(count=2, required=["k"], constraints={"shuffle_questions": False})
	quiz = QuizGenerator(pool_of(questions), seed=0).generate(tmpl)
	assert quiz.questions[0].id == "first"


def test_distribution_from_preferences():
	prefs = {QuestionType.MULTIPLE_CHOICE: 0.6, QuestionType.SCALE_INTERACTIVE: 0.2, QuestionType.CHORD_INTERACTIVE: 0.2}
	assert distribution_from_preferences(10, prefs) == {
		QuestionType.MULTIPLE_CHOICE: 6,
		QuestionType.SCALE_INTERACTIVE: 2,
		QuestionType.CHORD_INTERACTIVE: 2,
	}
	seven = distribution_from_preferences(7, prefs)
	assert sum(seven.values()) == 7
	assert seven[QuestionType.MULTIPLE_CHOICE] == 5


def test_custom_and_refresher_quizzes():
	gen = QuizGenerator(QuestionPool(), seed=3)
	custom = gen.generate_custom_quiz(INTRODUCTION, ["music_basics", "basic_scales", "basic_chords"], 10)
	assert custom.quiz_type == QuizType.CUSTOM
	assert len(custom.questions) == 10
	refresher = gen.generate_refresher_quiz(
		INTRODUCTION, ["basic_rhythm", "key_signatures"], performance={"basic_rhythm": 0.2, "key_signatures": 0.9}
	)
	assert refresher.quiz_type == QuizType.REFRESHER
	assert refresher.metadata.question_types == {"multiple_choice": 4, "scale_interactive": 1}


def test_adaptive_topic_weights():
	w = adaptive_topic_weights({"weak": 0.2, "strong": 0.95})
	assert w["weak"] > w["strong"]
	assert sum(w.values()) == pytest.approx(1.0)
	boosted = adaptive_topic_weights({"a": 0.5, "b": 0.5}, recent_misses=["b"])
	assert boosted["b"] > boosted["a"]
	many = adaptive_topic_weights({str(i): (0.0 if i == 0 else 1.0) for i in range(30)})
	assert min(many.values()) > 0.0
	assert equal_topic_weights(["a", "b", "a"]) == {"a": 0.5, "b": 0.5}


def test_build_choices():
	q = mc("a")
	options = build_choices(q, np.random.default_rng(1))
	assert len(options) == 4
	assert "yes" in options
	assert len(set(options)) == 4
	short = MultipleChoiceQuestion(id="s", text="s", topic_id="t", correct_answer="yes", incorrect_answer_pool=("no",))
	assert sorted(build_choices(short)) == ["no", "yes"]


def test_average_difficulty():
	assert average_difficulty([]) == Difficulty.BEGINNER
	qs = [mc("a"), mc("b", difficulty=Difficulty.ADVANCED)]
	assert average_difficulty(qs) == Difficulty.INTERMEDIATE


def test_generator_from_settings():
	questions = [mc("first", concepts=["k"]), mc("second")]
	settings = Settings(random_seed=3, shuffle_questions=False)
	quiz = QuizGenerator.from_settings(pool_of(questions), settings).generate(template(count=2, required=["k"]))
	assert [q.id for q in quiz.questions] == ["first", "second"]
	a = QuizGenerator.from_settings(QuestionPool(), Settings(random_seed=11)).generate(INTRODUCTION_SECTION_TEMPLATE)
	b = QuizGenerator(QuestionPool(), seed=11).generate(INTRODUCTION_SECTION_TEMPLATE)
	assert [q.id for q in a.questions] == [q.id for q in b.questions]
