from __future__ import annotations

import logging
import math
import uuid
import warnings
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError, InsufficientCandidatesWarning
from .models import (
	Difficulty,
	DifficultyRange,
	GenerationStrategy,
	MultipleChoiceQuestion,
	QuestionType,
	QuizTemplate,
	QuizType,
	Settings,
)
from .pool import QuestionPool
from .session import Quiz, QuizMetadata

logger = logging.getLogger(__name__)

TOPIC_WEIGHT_SCORE = 100.0
DIFFICULTY_WEIGHT_SCORE = 50.0
NEW_CONCEPT_SCORE = 20.0
REQUIRED_CONCEPT_SCORE = 100.0
JITTER = 10.0

DEFAULT_TYPE_PREFERENCES: Dict[QuestionType, float] = {
	QuestionType.MULTIPLE_CHOICE: 0.6,
	QuestionType.SCALE_INTERACTIVE: 0.2,
	QuestionType.CHORD_INTERACTIVE: 0.2,
}

RECENT_MISS_BOOST = 0.15
MIN_TOPIC_WEIGHT = 0.05


class GenerationReport(BaseModel):
	"""Requested versus delivered counts, for detecting under-filled quizzes."""

	model_config = ConfigDict(frozen=True)

	requested: Dict[str, int] = Field(default_factory=dict)
	actual: Dict[str, int] = Field(default_factory=dict)
	unresolved_concepts: FrozenSet[str] = frozenset()

	@property
	def is_complete(self) -> bool:
		return self.requested == self.actual and not self.unresolved_concepts

	@property
	def shortfall(self) -> Dict[str, int]:
		return {t: n - self.actual.get(t, 0) for t, n in self.requested.items() if self.actual.get(t, 0) < n}


def _concepts(questions: Iterable) -> Set[str]:
	out: Set[str] = set()
	for q in questions:
		out.update(q.related_concept_ids)
	return out


def _in_range(q, template: QuizTemplate) -> bool:
	return template.difficulty_range.contains(q.difficulty)


def score_candidate(q, template: QuizTemplate, covered: Set[str], rng: np.random.Generator) -> float:
	score = TOPIC_WEIGHT_SCORE * template.topic_weights.get(q.topic_id, 0.0)
	score += DIFFICULTY_WEIGHT_SCORE * template.difficulty_range.weight_for(q.difficulty)
	score += NEW_CONCEPT_SCORE * sum(1 for c in q.related_concept_ids if c not in covered)
	if any(c in template.required_concepts for c in q.related_concept_ids):
		score += REQUIRED_CONCEPT_SCORE
	score += float(rng.uniform(0.0, JITTER))
	return score


def _candidates(pool: QuestionPool, qtype: QuestionType, template: QuizTemplate) -> List:
	return pool.get_questions(type=qtype, section_id=template.section_id, topic_id=template.topic_id)


def backfill_concepts(
	selected: Sequence,
	missing: Iterable[str],
	pool: QuestionPool,
	template: QuizTemplate,
) -> Tuple[List, FrozenSet[str]]:
	"""Swap selected questions for unused ones that cover missing concepts.

	Walks the selection in order; each slot is replaced by the same-type,
	in-range, unused candidate covering the most still-missing concepts, if
	one exists. Returns the new selection and the concepts left uncovered.
	"""
	result = list(selected)
	still_missing = set(missing)
	used = {q.id for q in result}
	for i, current in enumerate(result):
		if not still_missing:
			break
		best = None
		best_cover = 0
		for cand in _candidates(pool, current.question_type, template):
			if cand.id in used or not _in_range(cand, template):
				continue
			cover = len(still_missing.intersection(cand.related_concept_ids))
			if cover > best_cover:
				best, best_cover = cand, cover
		if best is None:
			continue
		# Do not give up a concept only the current question provides
		remaining = _concepts(result[:i] + result[i + 1 :])
		lost = (set(current.related_concept_ids) & template.required_concepts) - remaining - set(best.related_concept_ids)
		if lost:
			continue
		used.discard(current.id)
		used.add(best.id)
		result[i] = best
		still_missing -= set(best.related_concept_ids)
	return result, frozenset(still_missing)


def average_difficulty(questions: Sequence) -> Difficulty:
	if not questions:
		return Difficulty.BEGINNER
	mean = sum(q.difficulty.level for q in questions) / len(questions)
	return Difficulty.from_level(int(round(mean)))


def describe(quiz_type: QuizType, count: int) -> str:
	if quiz_type == QuizType.SECTION:
		return f"Comprehensive quiz covering all topics in this section with {count} questions."
	if quiz_type == QuizType.TOPIC:
		return f"Focused quiz on specific topics with {count} questions."
	if quiz_type == QuizType.REFRESHER:
		return f"Quick {count}-question review of key concepts."
	return f"Custom quiz with {count} questions tailored to your preferences."


def distribution_from_preferences(total: int, preferences: Mapping[QuestionType, float]) -> Dict[QuestionType, int]:
	"""Floor each preference share, then hand the remainder to the strongest preference."""
	dist = {t: int(math.floor(total * p)) for t, p in preferences.items()}
	remainder = total - sum(dist.values())
	if remainder > 0 and preferences:
		top = max(preferences, key=lambda t: preferences[t])
		dist[top] += remainder
	return dist


def equal_topic_weights(topic_ids: Iterable[str]) -> Dict[str, float]:
	topics = list(dict.fromkeys(topic_ids))
	if not topics:
		return {}
	return {t: 1.0 / len(topics) for t in topics}


def adaptive_topic_weights(
	performance: Mapping[str, float],
	recent_misses: Iterable[str] = (),
	min_floor: float = MIN_TOPIC_WEIGHT,
) -> Dict[str, float]:
	"""Softmax over (1 - accuracy) per topic, boosted for recent misses and floored."""
	topics = list(performance.keys())
	if not topics:
		return {}
	misses = set(recent_misses)
	scores = []
	for t in topics:
		base = 1.0 - performance[t]
		if t in misses:
			base += RECENT_MISS_BOOST
		scores.append(max(0.0, base))
	arr = np.asarray(scores, dtype=float)
	exps = np.exp(arr - np.max(arr))
	w = exps / np.sum(exps)
	w = np.maximum(w, min_floor)
	w = w / np.sum(w)
	return {t: float(x) for t, x in zip(topics, w)}


def build_choices(question: MultipleChoiceQuestion, rng: Optional[np.random.Generator] = None) -> List[str]:
	"""Options shown for a multiple-choice question: the answer plus distractors."""
	rng = rng if rng is not None else np.random.default_rng()
	pool = [a for a in question.incorrect_answer_pool if a not in question.all_correct_answers]
	k = min(question.number_of_choices - 1, len(pool))
	picks = [pool[int(i)] for i in rng.choice(len(pool), size=k, replace=False)] if k > 0 else []
	options = [question.correct_answer, *picks]
	if question.shuffle_answers:
		order = rng.permutation(len(options))
		options = [options[int(i)] for i in order]
	return options


class QuizGenerator:
	"""Builds quizzes from templates against a question pool.

	Generation reads the pool but never mutates questions; the only state is
	the random generator, seeded for reproducible quizzes. A template's
	``shuffle_questions`` constraint overrides the generator's own setting.
	"""

	def __init__(
		self,
		pool: QuestionPool,
		rng: Optional[np.random.Generator] = None,
		seed: Optional[int] = None,
		shuffle_questions: bool = True,
	) -> None:
		self.pool = pool
		self.rng = rng if rng is not None else np.random.default_rng(seed)
		self.shuffle_questions = shuffle_questions
		self.last_report: Optional[GenerationReport] = None

	@classmethod
	def from_settings(cls, pool: QuestionPool, settings: Settings) -> "QuizGenerator":
		return cls(pool, seed=settings.random_seed, shuffle_questions=settings.shuffle_questions)

	def generate(self, template: QuizTemplate) -> Quiz:
		problems = template.validation_problems()
		if problems:
			logger.warning("rejected template %s: %s", template.id, "; ".join(problems))
			raise ConfigurationError(f"Invalid quiz template {template.id!r}", problems)

		self.pool.load_questions_for_section(template.section_id)
		selected, report = self.select(template)
		self.last_report = report

		if template.constraints.get("shuffle_questions", self.shuffle_questions):
			order = self.rng.permutation(len(selected))
			selected = [selected[int(i)] for i in order]

		return Quiz(
			id=str(uuid.uuid4()),
			quiz_type=template.quiz_type,
			section_id=template.section_id,
			topic_id=template.topic_id,
			questions=tuple(selected),
			metadata=self._metadata(template, selected),
			time_limit_seconds=template.time_limit_seconds,
		)

	def select(self, template: QuizTemplate) -> Tuple[List, GenerationReport]:
		selected: List = []
		requested: Dict[str, int] = {}
		for qtype, count in template.question_distribution.items():
			if count <= 0:
				continue
			requested[qtype.value] = count
			selected.extend(self._select_type(qtype, count, template, selected))

		missing = set(template.required_concepts) - _concepts(selected)
		unresolved: FrozenSet[str] = frozenset()
		if missing:
			selected, unresolved = backfill_concepts(selected, missing, self.pool, template)
			if unresolved:
				logger.warning("template %s: required concepts not covered: %s", template.id, sorted(unresolved))

		actual: Dict[str, int] = {}
		for q in selected:
			actual[q.type] = actual.get(q.type, 0) + 1
		report = GenerationReport(requested=requested, actual=actual, unresolved_concepts=unresolved)
		if not report.is_complete:
			warnings.warn(
				f"quiz template {template.id!r} under-filled: shortfall {report.shortfall}, "
				f"unresolved concepts {sorted(unresolved)}",
				InsufficientCandidatesWarning,
				stacklevel=2,
			)
		return selected, report

	def _select_type(self, qtype: QuestionType, count: int, template: QuizTemplate, already: Sequence) -> List:
		taken = {q.id for q in already}
		available = [q for q in _candidates(self.pool, qtype, template) if q.id not in taken]
		covered = _concepts(already)
		scored = [(score_candidate(q, template, covered, self.rng), q) for q in available if _in_range(q, template)]
		scored.sort(key=lambda pair: pair[0], reverse=True)
		chosen = [q for _, q in scored[:count]]

		if len(chosen) < count:
			# Fill from anything unused of this type, ignoring difficulty
			chosen_ids = {q.id for q in chosen}
			for q in available:
				if len(chosen) >= count:
					break
				if q.id not in chosen_ids:
					chosen.append(q)
					chosen_ids.add(q.id)
		if len(chosen) < count:
			logger.warning(
				"template %s: only %d of %d %s questions available", template.id, len(chosen), count, qtype.value
			)
		return chosen

	def _metadata(self, template: QuizTemplate, questions: Sequence) -> QuizMetadata:
		types: Dict[str, int] = {}
		for q in questions:
			types[q.type] = types.get(q.type, 0) + 1
		return QuizMetadata(
			title=template.name,
			description=describe(template.quiz_type, len(questions)),
			template_id=template.id,
			estimated_minutes=template.estimated_minutes,
			difficulty=average_difficulty(questions),
			covered_topics=tuple(dict.fromkeys(q.topic_id for q in questions)),
			question_types=types,
		)

	def generate_custom_quiz(
		self,
		section_id: str,
		topic_ids: Iterable[str],
		question_count: int,
		difficulty_range: DifficultyRange = DifficultyRange(),
		type_preferences: Optional[Mapping[QuestionType, float]] = None,
	) -> Quiz:
		template = QuizTemplate(
			id=f"custom_{uuid.uuid4()}",
			name="Custom Quiz",
			quiz_type=QuizType.CUSTOM,
			section_id=section_id,
			question_distribution=distribution_from_preferences(
				question_count, type_preferences or DEFAULT_TYPE_PREFERENCES
			),
			topic_weights=equal_topic_weights(topic_ids),
			difficulty_range=difficulty_range,
			generation_strategy=GenerationStrategy.BALANCED,
			estimated_minutes=int(math.ceil(question_count * 1.5)),
		)
		return self.generate(template)

	def generate_refresher_quiz(
		self,
		section_id: str,
		weak_topics: Iterable[str],
		question_count: int = 5,
		performance: Optional[Mapping[str, float]] = None,
		recent_misses: Iterable[str] = (),
	) -> Quiz:
		"""Short review quiz; with ``performance`` the weakest topics weigh most."""
		topics = list(weak_topics)
		if performance:
			weights = adaptive_topic_weights({t: performance.get(t, 0.0) for t in topics}, recent_misses)
		else:
			weights = equal_topic_weights(topics)
		template = QuizTemplate(
			id=f"refresher_{uuid.uuid4()}",
			name="Refresher Quiz",
			quiz_type=QuizType.REFRESHER,
			section_id=section_id,
			question_distribution={
				QuestionType.MULTIPLE_CHOICE: int(math.ceil(question_count * 0.8)),
				QuestionType.SCALE_INTERACTIVE: int(math.floor(question_count * 0.2)),
			},
			topic_weights=weights,
			difficulty_range=DifficultyRange(minimum=Difficulty.BEGINNER, maximum=Difficulty.INTERMEDIATE),
			generation_strategy=GenerationStrategy.REVIEW,
			estimated_minutes=question_count,
		)
		return self.generate(template)
