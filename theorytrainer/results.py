from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import SessionStateError
from .models import HistoryEntry, QuizType
from .session import Quiz, QuizStatus

logger = logging.getLogger(__name__)

DEFAULT_PASSING_SCORE = 0.7
STRONG_TOPIC_THRESHOLD = 0.8

GRADE_TABLE: List[Tuple[float, str]] = [
	(0.97, "A+"),
	(0.93, "A"),
	(0.90, "A-"),
	(0.87, "B+"),
	(0.83, "B"),
	(0.80, "B-"),
	(0.77, "C+"),
	(0.73, "C"),
	(0.70, "C-"),
	(0.67, "D+"),
	(0.63, "D"),
	(0.60, "D-"),
]


def letter_grade(score: float) -> str:
	"""Letter for a 0..1 score; anything under 0.60 is an F."""
	for cutoff, letter in GRADE_TABLE:
		if score >= cutoff:
			return letter
	return "F"


class TopicPerformance(BaseModel):
	model_config = ConfigDict(frozen=True)

	topic_id: str
	question_count: int = 0
	answered: int = 0
	correct: int = 0
	earned_points: float = 0.0
	total_points: float = 0.0
	total_time_seconds: float = 0.0

	@property
	def accuracy(self) -> float:
		return self.correct / self.answered if self.answered else 0.0

	@property
	def score_percentage(self) -> float:
		return self.earned_points / self.total_points if self.total_points > 0 else 0.0

	@property
	def average_time(self) -> float:
		return self.total_time_seconds / self.answered if self.answered else 0.0


def split_topics(performance: Dict[str, TopicPerformance]) -> Tuple[List[str], List[str]]:
	"""(weak, strong) topics.

	Weak is below both the across-topic mean and 0.8; strong is at or above
	both.
	"""
	if not performance:
		return [], []
	mean = sum(p.score_percentage for p in performance.values()) / len(performance)
	weak = [t for t, p in performance.items() if p.score_percentage < mean and p.score_percentage < STRONG_TOPIC_THRESHOLD]
	strong = [
		t for t, p in performance.items() if p.score_percentage >= mean and p.score_percentage >= STRONG_TOPIC_THRESHOLD
	]
	return weak, strong


class QuizResult(BaseModel):
	model_config = ConfigDict(frozen=True)

	quiz_id: str
	title: str = ""
	quiz_type: QuizType = QuizType.SECTION
	section_id: str = ""
	question_count: int = 0
	answered_count: int = 0
	correct_count: int = 0
	skipped_count: int = 0
	earned_points: float = 0.0
	total_points: float = 0.0
	time_spent_seconds: float = 0.0
	time_limit_seconds: Optional[int] = None
	hints_used: int = 0
	topic_performance: Dict[str, TopicPerformance] = Field(default_factory=dict)
	incorrect_question_ids: Tuple[str, ...] = ()
	skipped_question_ids: Tuple[str, ...] = ()
	passing_score: float = DEFAULT_PASSING_SCORE
	completed_at: datetime = Field(default_factory=datetime.now)

	@property
	def score_percentage(self) -> float:
		return self.earned_points / self.total_points if self.total_points > 0 else 0.0

	@property
	def accuracy(self) -> float:
		"""Correct over answered; skipped questions are not in the denominator."""
		return self.correct_count / self.answered_count if self.answered_count else 0.0

	@property
	def letter_grade(self) -> str:
		return letter_grade(self.score_percentage)

	@property
	def passed(self) -> bool:
		return self.score_percentage >= self.passing_score

	@property
	def completion(self) -> float:
		if not self.question_count:
			return 0.0
		return (self.answered_count + self.skipped_count) / self.question_count

	@property
	def average_time_per_question(self) -> float:
		return self.time_spent_seconds / self.question_count if self.question_count else 0.0

	@property
	def within_time_limit(self) -> bool:
		return self.time_limit_seconds is None or self.time_spent_seconds <= self.time_limit_seconds

	@property
	def weak_topics(self) -> List[str]:
		return split_topics(self.topic_performance)[0]

	@property
	def strong_topics(self) -> List[str]:
		return split_topics(self.topic_performance)[1]

	@classmethod
	def from_session(cls, quiz: Quiz, passing_score: float = DEFAULT_PASSING_SCORE) -> "QuizResult":
		if quiz.status != QuizStatus.COMPLETED:
			raise SessionStateError(f"quiz {quiz.id} is {quiz.status.value}, results need a completed quiz")

		topics: Dict[str, Dict[str, float]] = {}
		answered = correct = skipped = hints = 0
		incorrect: List[str] = []
		skipped_ids: List[str] = []
		for q in quiz.questions:
			t = topics.setdefault(
				q.topic_id,
				{"question_count": 0, "answered": 0, "correct": 0, "earned_points": 0.0, "total_points": 0.0, "total_time_seconds": 0.0},
			)
			t["question_count"] += 1
			t["total_points"] += q.point_value
			a = quiz.answers.get(q.id)
			if a is None:
				continue
			hints += a.hints_used
			if a.is_skipped:
				skipped += 1
				skipped_ids.append(q.id)
				continue
			answered += 1
			t["answered"] += 1
			t["earned_points"] += a.earned_points
			t["total_time_seconds"] += a.time_spent_seconds
			if a.is_correct:
				correct += 1
				t["correct"] += 1
			else:
				incorrect.append(q.id)

		performance = {
			topic: TopicPerformance(
				topic_id=topic,
				question_count=int(v["question_count"]),
				answered=int(v["answered"]),
				correct=int(v["correct"]),
				earned_points=v["earned_points"],
				total_points=v["total_points"],
				total_time_seconds=v["total_time_seconds"],
			)
			for topic, v in topics.items()
		}
		result = cls(
			quiz_id=quiz.id,
			title=quiz.title,
			quiz_type=quiz.quiz_type,
			section_id=quiz.section_id,
			question_count=len(quiz.questions),
			answered_count=answered,
			correct_count=correct,
			skipped_count=skipped,
			earned_points=quiz.earned_points,
			total_points=quiz.total_points,
			time_spent_seconds=quiz.elapsed_seconds(),
			time_limit_seconds=quiz.time_limit_seconds,
			hints_used=hints,
			topic_performance=performance,
			incorrect_question_ids=tuple(incorrect),
			skipped_question_ids=tuple(skipped_ids),
			passing_score=passing_score,
			completed_at=quiz.end_time or datetime.now(),
		)
		logger.debug("quiz %s scored %.3f (%s)", quiz.id, result.score_percentage, result.letter_grade)
		return result

	def to_history_entry(self) -> HistoryEntry:
		return HistoryEntry(
			quiz_id=self.quiz_id,
			title=self.title,
			quiz_type=self.quiz_type,
			section_id=self.section_id,
			topic_ids=list(self.topic_performance.keys()),
			score_percentage=self.score_percentage,
			earned_points=self.earned_points,
			total_points=self.total_points,
			correct_count=self.correct_count,
			answered_count=self.answered_count,
			question_count=self.question_count,
			time_spent_seconds=self.time_spent_seconds,
			passed=self.passed,
			letter_grade=self.letter_grade,
			completed_at=self.completed_at,
		)
