from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from pydantic import ValidationError

from .models import HistoryEntry, QuizStatistics, Settings
from .results import QuizResult
from .session import Quiz, QuizStatus

logger = logging.getLogger(__name__)

HOME_ENV = "THEORYTRAINER_HOME"

_SETTINGS = "settings"
_PROGRESS = "quiz_progress"
_HISTORY = "quiz_history"
_STATS = "quiz_statistics"


def _data_dir() -> Path:
	override = os.environ.get(HOME_ENV)
	dir_ = Path(override) if override else Path.home() / ".theorytrainer"
	dir_.mkdir(parents=True, exist_ok=True)
	return dir_


def _data_path() -> Path:
	return _data_dir() / "data.json"


def _load_raw(path: Optional[Path] = None) -> Dict[str, Any]:
	p = path or _data_path()
	if not p.exists():
		return {}
	try:
		data = json.loads(p.read_text())
	except (OSError, ValueError) as exc:
		logger.warning("could not read %s, starting empty: %s", p, exc)
		return {}
	return data if isinstance(data, dict) else {}


def _save_raw(data: Dict[str, Any], path: Optional[Path] = None) -> None:
	p = path or _data_path()
	p.parent.mkdir(parents=True, exist_ok=True)
	p.write_text(json.dumps(data, indent=2))


def _section(raw: Dict[str, Any], key: str, kind: type) -> Any:
	obj = raw.get(key)
	return obj if isinstance(obj, kind) else kind()


def load_settings(path: Optional[Path] = None) -> Settings:
	obj = _load_raw(path).get(_SETTINGS, {})
	if isinstance(obj, dict):
		try:
			return Settings.model_validate(obj)
		except ValidationError as exc:
			logger.warning("ignoring invalid settings: %s", exc)
	return Settings()


def save_settings(s: Settings, path: Optional[Path] = None) -> None:
	raw = _load_raw(path)
	raw[_SETTINGS] = s.model_dump(mode="json")
	_save_raw(raw, path)


class QuizStore(Protocol):
	def save_quiz_progress(self, quiz: Quiz) -> None: ...

	def get_quiz_progress(self, quiz_id: str) -> Optional[Quiz]: ...

	def delete_progress(self, quiz_id: str) -> None: ...

	def save_completed_quiz(self, quiz: Quiz) -> QuizResult: ...

	def get_quiz_history(
		self, section_id: Optional[str] = None, topic_id: Optional[str] = None, limit: Optional[int] = None
	) -> List[HistoryEntry]: ...


def _with_result(stats: QuizStatistics, result: QuizResult) -> QuizStatistics:
	score = result.score_percentage
	total = stats.total_quizzes + 1
	first = stats.total_quizzes == 0
	return QuizStatistics(
		total_quizzes=total,
		total_score=stats.total_score + score,
		average_score=(stats.total_score + score) / total,
		best_score=score if first else max(stats.best_score, score),
		worst_score=score if first else min(stats.worst_score, score),
		total_questions_answered=stats.total_questions_answered + result.answered_count,
		correct_answers=stats.correct_answers + result.correct_count,
		total_time_seconds=stats.total_time_seconds + result.time_spent_seconds,
		last_quiz_date=result.completed_at,
	)


def statistics_from_history(entries: List[HistoryEntry]) -> QuizStatistics:
	if not entries:
		return QuizStatistics()
	scores = [e.score_percentage for e in entries]
	return QuizStatistics(
		total_quizzes=len(entries),
		total_score=sum(scores),
		average_score=sum(scores) / len(scores),
		best_score=max(scores),
		worst_score=min(scores),
		total_questions_answered=sum(e.answered_count for e in entries),
		correct_answers=sum(e.correct_count for e in entries),
		total_time_seconds=sum(e.time_spent_seconds for e in entries),
		last_quiz_date=max(e.completed_at for e in entries),
	)


class JsonQuizStore:
	"""Quiz progress, history and statistics in the JSON data file.

	Everything shares one file with the settings. History is kept most recent
	first and trimmed to ``Settings.history_limit``.
	"""

	def __init__(self, path: Optional[Path] = None) -> None:
		self.path = Path(path) if path is not None else _data_path()

	def _load(self) -> Dict[str, Any]:
		return _load_raw(self.path)

	def _save(self, raw: Dict[str, Any]) -> None:
		_save_raw(raw, self.path)

	# Progress -----------------------------------------------------------

	def save_quiz_progress(self, quiz: Quiz) -> None:
		raw = self._load()
		progress = _section(raw, _PROGRESS, dict)
		progress[quiz.id] = quiz.model_dump(mode="json")
		raw[_PROGRESS] = progress
		self._save(raw)

	def get_quiz_progress(self, quiz_id: str) -> Optional[Quiz]:
		obj = _section(self._load(), _PROGRESS, dict).get(quiz_id)
		if not isinstance(obj, dict):
			return None
		try:
			return Quiz.model_validate(obj)
		except ValidationError as exc:
			logger.warning("discarding unreadable progress for quiz %s: %s", quiz_id, exc)
			return None

	def get_paused_quizzes(self) -> List[Quiz]:
		"""Saved quizzes that can be resumed, most recently started first."""
		out = []
		for quiz_id in _section(self._load(), _PROGRESS, dict):
			quiz = self.get_quiz_progress(quiz_id)
			if quiz is not None and quiz.status.can_resume:
				out.append(quiz)
		out.sort(key=lambda q: q.start_time.timestamp() if q.start_time else 0.0, reverse=True)
		return out

	def delete_progress(self, quiz_id: str) -> None:
		raw = self._load()
		progress = _section(raw, _PROGRESS, dict)
		if progress.pop(quiz_id, None) is not None:
			raw[_PROGRESS] = progress
			self._save(raw)

	# History ------------------------------------------------------------

	def save_completed_quiz(self, quiz: Quiz) -> QuizResult:
		if quiz.status != QuizStatus.COMPLETED:
			raise ValueError(f"quiz {quiz.id} is {quiz.status.value}, only completed quizzes go to history")
		raw = self._load()
		settings = load_settings(self.path)
		result = QuizResult.from_session(quiz, passing_score=settings.passing_score)

		previous = [e for e in _section(raw, _HISTORY, list) if isinstance(e, dict)]
		history = [e for e in previous if e.get("quiz_id") != quiz.id]
		seen = len(history) != len(previous)
		history.insert(0, result.to_history_entry().model_dump(mode="json"))
		raw[_HISTORY] = history[: settings.history_limit]

		# Running totals count each quiz once; a re-save only replaces its entry
		if seen:
			logger.info("quiz %s was already in history, statistics unchanged", quiz.id)
		else:
			raw[_STATS] = _with_result(self._stats_from(raw), result).model_dump(mode="json")

		progress = _section(raw, _PROGRESS, dict)
		progress.pop(quiz.id, None)
		raw[_PROGRESS] = progress
		self._save(raw)
		logger.info("saved quiz %s to history: %.1f%% (%s)", quiz.id, result.score_percentage * 100, result.letter_grade)
		return result

	def _entries(self, raw: Dict[str, Any]) -> List[HistoryEntry]:
		out = []
		for obj in _section(raw, _HISTORY, list):
			try:
				out.append(HistoryEntry.model_validate(obj))
			except ValidationError as exc:
				logger.warning("skipping unreadable history entry: %s", exc)
		return out

	def get_quiz_history(
		self,
		section_id: Optional[str] = None,
		topic_id: Optional[str] = None,
		limit: Optional[int] = None,
	) -> List[HistoryEntry]:
		entries = self._entries(self._load())
		if section_id is not None:
			entries = [e for e in entries if e.section_id == section_id]
		if topic_id is not None:
			entries = [e for e in entries if topic_id in e.topic_ids]
		if limit is not None:
			entries = entries[:limit]
		return entries

	def delete_from_history(self, quiz_id: str) -> bool:
		raw = self._load()
		history = _section(raw, _HISTORY, list)
		kept = [e for e in history if not (isinstance(e, dict) and e.get("quiz_id") == quiz_id)]
		if len(kept) == len(history):
			return False
		raw[_HISTORY] = kept
		self._save(raw)
		return True

	# Statistics ---------------------------------------------------------

	def _stats_from(self, raw: Dict[str, Any]) -> QuizStatistics:
		obj = raw.get(_STATS)
		if isinstance(obj, dict):
			try:
				return QuizStatistics.model_validate(obj)
			except ValidationError as exc:
				logger.warning("resetting unreadable statistics: %s", exc)
		return QuizStatistics()

	def get_statistics(self, section_id: Optional[str] = None) -> QuizStatistics:
		"""Running totals over every completed quiz, or over one section's history."""
		if section_id is not None:
			return statistics_from_history(self.get_quiz_history(section_id=section_id))
		return self._stats_from(self._load())

	def clear_all(self) -> None:
		"""Drop progress, history and statistics; settings are kept."""
		raw = self._load()
		for key in (_PROGRESS, _HISTORY, _STATS):
			raw.pop(key, None)
		self._save(raw)
