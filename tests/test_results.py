from datetime import datetime, timedelta

import pytest

from theorytrainer.errors import SessionStateError
from theorytrainer.models import MultipleChoiceQuestion
from theorytrainer.results import QuizResult, TopicPerformance, letter_grade, split_topics
from theorytrainer.session import Complete, Quiz, Skip, Start, SubmitAnswer, apply_event

T0 = datetime(2024, 3, 1, 9, 0, 0)


def mc(id, topic, points=1.0):
	return MultipleChoiceQuestion(id=id, text=id, topic_id=topic, point_value=points, correct_answer="A")


@pytest.mark.parametrize(
	"score,grade",
	[(1.0, "A+"), (0.97, "A+"), (0.90, "A-"), (0.8999, "B+"), (0.70, "C-"), (0.60, "D-"), (0.5999, "F"), (0.0, "F")],
)
def test_letter_grade_boundaries(score, grade):
	assert letter_grade(score) == grade


def finished_quiz():
	questions = (mc("r1", "rhythm"), mc("r2", "rhythm"), mc("s1", "staff", 2.0), mc("s2", "staff", 2.0))
	q = Quiz(id="qz", section_id="introduction", questions=questions, time_limit_seconds=600)
	q = apply_event(q, Start(at=T0))
	q = apply_event(q, SubmitAnswer(question_id="r1", answer="A", time_spent_seconds=10))
	q = apply_event(q, SubmitAnswer(question_id="r2", answer="B", time_spent_seconds=20, hints_used=1))
	q = apply_event(q, SubmitAnswer(question_id="s1", answer="A", time_spent_seconds=30))
	q = apply_event(q, Skip(question_id="s2"))
	return apply_event(q, Complete(at=T0 + timedelta(seconds=120)))


def test_result_counts_skips_in_points_not_accuracy():
	result = QuizResult.from_session(finished_quiz())
	assert result.total_points == 6.0
	assert result.earned_points == 3.0
	assert result.score_percentage == pytest.approx(0.5)
	assert result.answered_count == 3
	assert result.skipped_count == 1
	assert result.accuracy == pytest.approx(2 / 3)
	assert result.completion == 1.0
	assert result.incorrect_question_ids == ("r2",)
	assert result.skipped_question_ids == ("s2",)
	assert result.hints_used == 1
	assert not result.passed
	assert result.letter_grade == "F"
	assert result.time_spent_seconds == 120.0
	assert result.within_time_limit


def test_topic_performance():
	result = QuizResult.from_session(finished_quiz())
	rhythm = result.topic_performance["rhythm"]
	assert rhythm.accuracy == 0.5
	assert rhythm.average_time == 15.0
	staff = result.topic_performance["staff"]
	assert staff.answered == 1
	assert staff.score_percentage == pytest.approx(0.5)


def test_passing_score_is_configurable():
	assert QuizResult.from_session(finished_quiz(), passing_score=0.5).passed


def test_result_requires_completed_quiz():
	q = apply_event(Quiz(id="x", section_id="s", questions=(mc("a", "t"),)), Start())
	with pytest.raises(SessionStateError):
		QuizResult.from_session(q)


def test_split_topics_uses_mean_and_threshold():
	perf = {
		"a": TopicPerformance(topic_id="a", earned_points=9, total_points=10),
		"b": TopicPerformance(topic_id="b", earned_points=5, total_points=10),
		"c": TopicPerformance(topic_id="c", earned_points=7, total_points=10),
	}
	weak, strong = split_topics(perf)
	assert weak == ["b"]
	assert strong == ["a"]
	# everything high: nothing is weak even below the mean
	high = {t: TopicPerformance(topic_id=t, earned_points=p, total_points=10) for t, p in [("x", 10), ("y", 9)]}
	assert split_topics(high) == ([], ["x"])
	assert split_topics({}) == ([], [])


def test_history_entry():
	entry = QuizResult.from_session(finished_quiz()).to_history_entry()
	assert entry.quiz_id == "qz"
	assert sorted(entry.topic_ids) == ["rhythm", "staff"]
	assert entry.correct_count == 2
	assert entry.letter_grade == "F"
	assert entry.completed_at == T0 + timedelta(seconds=120)
