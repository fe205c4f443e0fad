from __future__ import annotations

import logging
from typing import Callable, Dict, Iterable, List, Optional, Set

import numpy as np
from pydantic import BaseModel, Field

from .bank import BUILTIN_SECTIONS
from .models import Difficulty, QuestionType

logger = logging.getLogger(__name__)

SectionLoader = Callable[[], Iterable]

CUSTOM_SECTION = "custom"


class PoolStatistics(BaseModel):
	total_questions: int = 0
	by_type: Dict[str, int] = Field(default_factory=dict)
	by_difficulty: Dict[str, int] = Field(default_factory=dict)
	by_topic: Dict[str, int] = Field(default_factory=dict)


class QuestionPool:
	"""In-memory question cache populated section by section.

	Loading a section is idempotent: questions are keyed by id, and a section
	already loaded is not loaded again. The pool has a single owner and is
	not safe for concurrent mutation.
	"""

	def __init__(self, loaders: Optional[Dict[str, SectionLoader]] = None) -> None:
		self._loaders: Dict[str, SectionLoader] = dict(BUILTIN_SECTIONS if loaders is None else loaders)
		self._questions: Dict[str, object] = {}
		self._section_of: Dict[str, str] = {}
		self._loaded: Set[str] = set()

	def register_section(self, section_id: str, loader: SectionLoader) -> None:
		self._loaders[section_id] = loader

	@property
	def sections(self) -> List[str]:
		return list(self._loaders.keys())

	def is_loaded(self, section_id: str) -> bool:
		return section_id in self._loaded

	def load_questions_for_section(self, section_id: str) -> int:
		"""Load a section once; returns the number of questions added by this call."""
		if section_id in self._loaded:
			return 0
		loader = self._loaders.get(section_id)
		if loader is None:
			logger.warning("unknown question section %r", section_id)
			return 0
		added = 0
		for q in loader():
			if q.id not in self._questions:
				added += 1
			self._put(q, section_id)
		self._loaded.add(section_id)
		logger.info("loaded section %s: %d questions", section_id, added)
		return added

	def _put(self, question, section_id: str) -> None:
		self._questions[question.id] = question
		self._section_of[question.id] = section_id

	def add_question(self, question, section_id: str = CUSTOM_SECTION) -> None:
		self._put(question, section_id)

	def remove_question(self, question_id: str) -> bool:
		if question_id not in self._questions:
			return False
		del self._questions[question_id]
		del self._section_of[question_id]
		return True

	def get_question_by_id(self, question_id: str):
		return self._questions.get(question_id)

	def section_of(self, question_id: str) -> Optional[str]:
		return self._section_of.get(question_id)

	def get_questions(
		self,
		type: Optional[QuestionType] = None,
		section_id: Optional[str] = None,
		topic_id: Optional[str] = None,
		difficulty: Optional[Difficulty] = None,
		limit: Optional[int] = None,
	) -> List:
		"""Questions matching every given filter, in load order."""
		out = []
		for qid, q in self._questions.items():
			if type is not None and q.type != QuestionType(type).value:
				continue
			if section_id is not None and self._section_of[qid] != section_id:
				continue
			if topic_id is not None and q.topic_id != topic_id:
				continue
			if difficulty is not None and q.difficulty != difficulty:
				continue
			out.append(q)
			if limit is not None and len(out) >= limit:
				break
		return out

	def get_random_questions(
		self,
		count: int,
		rng: Optional[np.random.Generator] = None,
		type: Optional[QuestionType] = None,
		section_id: Optional[str] = None,
		topic_id: Optional[str] = None,
		difficulty: Optional[Difficulty] = None,
	) -> List:
		candidates = self.get_questions(type=type, section_id=section_id, topic_id=topic_id, difficulty=difficulty)
		if count <= 0 or not candidates:
			return []
		rng = rng if rng is not None else np.random.default_rng()
		idx = rng.choice(len(candidates), size=min(count, len(candidates)), replace=False)
		return [candidates[int(i)] for i in idx]

	def statistics(self, section_id: Optional[str] = None) -> PoolStatistics:
		st = PoolStatistics()
		for q in self.get_questions(section_id=section_id):
			st.total_questions += 1
			st.by_type[q.type] = st.by_type.get(q.type, 0) + 1
			st.by_difficulty[q.difficulty.value] = st.by_difficulty.get(q.difficulty.value, 0) + 1
			st.by_topic[q.topic_id] = st.by_topic.get(q.topic_id, 0) + 1
		return st

	def clear(self) -> None:
		self._questions.clear()
		self._section_of.clear()
		self._loaded.clear()

	def __len__(self) -> int:
		return len(self._questions)

	def __contains__(self, question_id: object) -> bool:
		return question_id in self._questions
