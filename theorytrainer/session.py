"""Quiz sessions as immutable values driven by events.

``apply_event(quiz, event)`` returns the next quiz value; the
``SessionController`` owns the latest value and serializes updates.
"""
from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

from .errors import SessionStateError
from .models import AnswerValidation, AnswerValue, Difficulty, Question, QuizType
from .validation import canonical_answer, validate_answer

logger = logging.getLogger(__name__)


class QuizStatus(str, Enum):
	NOT_STARTED = "not_started"
	IN_PROGRESS = "in_progress"
	PAUSED = "paused"
	COMPLETED = "completed"
	ABANDONED = "abandoned"

	@property
	def is_finished(self) -> bool:
		return self in (QuizStatus.COMPLETED, QuizStatus.ABANDONED)

	@property
	def can_resume(self) -> bool:
		return self in (QuizStatus.IN_PROGRESS, QuizStatus.PAUSED)


class QuestionAnswer(BaseModel):
	model_config = ConfigDict(frozen=True)

	question_id: str
	answer: Optional[AnswerValue] = None
	validation: Optional[AnswerValidation] = None
	answered_at: datetime = Field(default_factory=datetime.now)
	time_spent_seconds: float = 0.0
	hints_used: int = 0
	is_skipped: bool = False

	@property
	def is_correct(self) -> bool:
		return self.validation is not None and self.validation.is_correct

	@property
	def earned_points(self) -> float:
		return self.validation.earned_points if self.validation is not None else 0.0


class QuizMetadata(BaseModel):
	model_config = ConfigDict(frozen=True)

	title: str = ""
	description: str = ""
	template_id: Optional[str] = None
	estimated_minutes: int = 0
	difficulty: Difficulty = Difficulty.BEGINNER
	covered_topics: Tuple[str, ...] = ()
	question_types: Dict[str, int] = Field(default_factory=dict)


class Quiz(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	quiz_type: QuizType = QuizType.SECTION
	section_id: str
	topic_id: Optional[str] = None
	questions: Tuple[Question, ...] = ()
	metadata: QuizMetadata = QuizMetadata()
	answers: Dict[str, QuestionAnswer] = Field(default_factory=dict)
	current_index: int = 0
	status: QuizStatus = QuizStatus.NOT_STARTED
	start_time: Optional[datetime] = None
	end_time: Optional[datetime] = None
	paused_at: Optional[datetime] = None
	paused_seconds: float = 0.0
	time_limit_seconds: Optional[int] = None

	@property
	def title(self) -> str:
		return self.metadata.title

	@property
	def current_question(self):
		if 0 <= self.current_index < len(self.questions):
			return self.questions[self.current_index]
		return None

	def question(self, question_id: str):
		for q in self.questions:
			if q.id == question_id:
				return q
		return None

	@property
	def total_points(self) -> float:
		return sum(q.point_value for q in self.questions)

	@property
	def earned_points(self) -> float:
		return sum(a.earned_points for a in self.answers.values())

	@property
	def score(self) -> float:
		"""Earned over total points, 0..1."""
		total = self.total_points
		return self.earned_points / total if total > 0 else 0.0

	@property
	def progress(self) -> float:
		if not self.questions:
			return 0.0
		return len(self.answers) / len(self.questions)

	@property
	def is_complete(self) -> bool:
		return len(self.answers) == len(self.questions)

	def unanswered_questions(self) -> List:
		return [q for q in self.questions if q.id not in self.answers]

	def elapsed_seconds(self, now: Optional[datetime] = None) -> float:
		if self.start_time is None:
			return 0.0
		end = self.end_time or now or datetime.now()
		paused = self.paused_seconds
		if self.paused_at is not None and self.end_time is None:
			paused += max(0.0, (end - self.paused_at).total_seconds())
		return max(0.0, (end - self.start_time).total_seconds() - paused)

	def remaining_seconds(self, now: Optional[datetime] = None) -> Optional[float]:
		if self.time_limit_seconds is None:
			return None
		return max(0.0, self.time_limit_seconds - self.elapsed_seconds(now))

	def is_time_expired(self, now: Optional[datetime] = None) -> bool:
		remaining = self.remaining_seconds(now)
		return remaining is not None and remaining <= 0.0


# Events ---------------------------------------------------------------------


class _Event(BaseModel):
	model_config = ConfigDict(frozen=True)

	at: datetime = Field(default_factory=datetime.now)


class Start(_Event):
	pass


class Pause(_Event):
	pass


class Resume(_Event):
	pass


class SubmitAnswer(_Event):
	question_id: str
	answer: Any = None
	time_spent_seconds: float = 0.0
	hints_used: int = 0


class Skip(_Event):
	question_id: str
	time_spent_seconds: float = 0.0


class Next(_Event):
	pass


class Previous(_Event):
	pass


class GoTo(_Event):
	index: int


class Complete(_Event):
	pass


class Abandon(_Event):
	pass


SessionEvent = Union[Start, Pause, Resume, SubmitAnswer, Skip, Next, Previous, GoTo, Complete, Abandon]


def _require(quiz: Quiz, event: _Event, *allowed: QuizStatus) -> None:
	if quiz.status not in allowed:
		raise SessionStateError(f"cannot apply {type(event).__name__} to a quiz that is {quiz.status.value}")


def _update(quiz: Quiz, **changes: Any) -> Quiz:
	return quiz.model_copy(update=changes)


def _start(quiz: Quiz, e: Start) -> Quiz:
	_require(quiz, e, QuizStatus.NOT_STARTED)
	return _update(quiz, status=QuizStatus.IN_PROGRESS, start_time=e.at, current_index=0)


def _pause(quiz: Quiz, e: Pause) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	return _update(quiz, status=QuizStatus.PAUSED, paused_at=e.at)


def _resume(quiz: Quiz, e: Resume) -> Quiz:
	_require(quiz, e, QuizStatus.PAUSED)
	paused = quiz.paused_seconds
	if quiz.paused_at is not None:
		paused += max(0.0, (e.at - quiz.paused_at).total_seconds())
	return _update(quiz, status=QuizStatus.IN_PROGRESS, paused_at=None, paused_seconds=paused)


def _question_or_raise(quiz: Quiz, question_id: str):
	q = quiz.question(question_id)
	if q is None:
		raise SessionStateError(f"question {question_id!r} is not part of quiz {quiz.id}")
	previous = quiz.answers.get(question_id)
	if previous is not None and previous.is_skipped:
		raise SessionStateError(f"question {question_id!r} was skipped and cannot be answered")
	return q


def _submit(quiz: Quiz, e: SubmitAnswer) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	q = _question_or_raise(quiz, e.question_id)
	entry = QuestionAnswer(
		question_id=q.id,
		answer=canonical_answer(q, e.answer),
		validation=validate_answer(q, e.answer),
		answered_at=e.at,
		time_spent_seconds=e.time_spent_seconds,
		hints_used=e.hints_used,
	)
	return _update(quiz, answers={**quiz.answers, q.id: entry})


def _skip(quiz: Quiz, e: Skip) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	q = _question_or_raise(quiz, e.question_id)
	entry = QuestionAnswer(
		question_id=q.id,
		answered_at=e.at,
		time_spent_seconds=e.time_spent_seconds,
		is_skipped=True,
	)
	return _update(quiz, answers={**quiz.answers, q.id: entry})


def _go_to(quiz: Quiz, index: int) -> Quiz:
	# Out-of-range navigation leaves the position unchanged
	if not 0 <= index < len(quiz.questions):
		return quiz
	return _update(quiz, current_index=index)


def _next(quiz: Quiz, e: Next) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	return _go_to(quiz, quiz.current_index + 1)


def _previous(quiz: Quiz, e: Previous) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	return _go_to(quiz, quiz.current_index - 1)


def _goto(quiz: Quiz, e: GoTo) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS)
	return _go_to(quiz, e.index)


def _close_pause(quiz: Quiz, at: datetime) -> float:
	if quiz.paused_at is None:
		return quiz.paused_seconds
	return quiz.paused_seconds + max(0.0, (at - quiz.paused_at).total_seconds())


def _complete(quiz: Quiz, e: Complete) -> Quiz:
	_require(quiz, e, QuizStatus.IN_PROGRESS, QuizStatus.PAUSED)
	return _update(
		quiz,
		status=QuizStatus.COMPLETED,
		end_time=e.at,
		paused_seconds=_close_pause(quiz, e.at),
		paused_at=None,
	)


def _abandon(quiz: Quiz, e: Abandon) -> Quiz:
	_require(quiz, e, QuizStatus.NOT_STARTED, QuizStatus.IN_PROGRESS, QuizStatus.PAUSED)
	return _update(
		quiz,
		status=QuizStatus.ABANDONED,
		end_time=e.at,
		paused_seconds=_close_pause(quiz, e.at),
		paused_at=None,
	)


_HANDLERS: Dict[type, Callable[[Quiz, Any], Quiz]] = {
	Start: _start,
	Pause: _pause,
	Resume: _resume,
	SubmitAnswer: _submit,
	Skip: _skip,
	Next: _next,
	Previous: _previous,
	GoTo: _goto,
	Complete: _complete,
	Abandon: _abandon,
}


def apply_event(quiz: Quiz, event: SessionEvent) -> Quiz:
	"""Return the quiz that results from ``event``; the input is not modified.

	Raises SessionStateError when the quiz's status does not accept the
	event, when a question id is not in the quiz, or when a skipped question
	is answered.
	"""
	handler = _HANDLERS.get(type(event))
	if handler is None:
		raise TypeError(f"Unknown session event {type(event).__name__}")
	return handler(quiz, event)


class ProgressStore(Protocol):
	def save_quiz_progress(self, quiz: Quiz) -> None: ...

	def delete_progress(self, quiz_id: str) -> None: ...

	def save_completed_quiz(self, quiz: Quiz) -> Any: ...


class SessionController:
	"""Single owner of one active quiz.

	Events are applied under a lock so concurrent callers cannot lose
	answers. With a store attached, progress is saved after every event and
	the finished quiz is recorded on completion.
	"""

	def __init__(self, quiz: Quiz, store: Optional[ProgressStore] = None, autosave: bool = True) -> None:
		self._quiz = quiz
		self._store = store
		self._autosave = autosave
		self._lock = threading.Lock()

	@property
	def quiz(self) -> Quiz:
		return self._quiz

	def dispatch(self, event: SessionEvent) -> Quiz:
		with self._lock:
			before = self._quiz.status
			quiz = apply_event(self._quiz, event)
			self._quiz = quiz
			if quiz.status != before:
				logger.info("quiz %s: %s -> %s", quiz.id, before.value, quiz.status.value)
			self._persist(quiz, before)
			return quiz

	def _persist(self, quiz: Quiz, before: QuizStatus) -> None:
		if self._store is None:
			return
		if quiz.status == QuizStatus.COMPLETED and before != QuizStatus.COMPLETED:
			self._store.save_completed_quiz(quiz)
		elif quiz.status == QuizStatus.ABANDONED:
			self._store.delete_progress(quiz.id)
		elif self._autosave:
			self._store.save_quiz_progress(quiz)

	def start(self) -> Quiz:
		return self.dispatch(Start())

	def pause(self) -> Quiz:
		return self.dispatch(Pause())

	def resume(self) -> Quiz:
		return self.dispatch(Resume())

	def submit(self, answer: Any, question_id: Optional[str] = None, time_spent_seconds: float = 0.0, hints_used: int = 0) -> Quiz:
		"""Answer ``question_id``, or the current question when omitted."""
		if question_id is None:
			current = self._quiz.current_question
			if current is None:
				raise SessionStateError("quiz has no current question")
			question_id = current.id
		return self.dispatch(
			SubmitAnswer(
				question_id=question_id,
				answer=answer,
				time_spent_seconds=time_spent_seconds,
				hints_used=hints_used,
			)
		)

	def skip(self, question_id: Optional[str] = None) -> Quiz:
		if question_id is None:
			current = self._quiz.current_question
			if current is None:
				raise SessionStateError("quiz has no current question")
			question_id = current.id
		return self.dispatch(Skip(question_id=question_id))

	def next(self) -> Quiz:
		return self.dispatch(Next())

	def previous(self) -> Quiz:
		return self.dispatch(Previous())

	def go_to(self, index: int) -> Quiz:
		return self.dispatch(GoTo(index=index))

	def complete(self) -> Quiz:
		return self.dispatch(Complete())

	def abandon(self) -> Quiz:
		return self.dispatch(Abandon())
