from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, FrozenSet, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


Waveform = Literal["sine", "triangle", "saw"]
KeyboardType = Literal["Micro Keyboard (25 keys)", "Keyboard (61 keys)", "Piano (88 keys)"]


class Settings(BaseModel):
	default_octave: int = Field(default=3, ge=0, le=8)
	max_frets: int = Field(default=24, ge=1, le=24)
	max_chord_inversions: int = Field(default=6, ge=1, le=6)
	passing_score: float = Field(default=0.7, ge=0.0, le=1.0)
	history_limit: int = Field(default=100, ge=1, le=1000)
	shuffle_questions: bool = True
	random_seed: Optional[int] = None
	default_tuning: str = "Guitar (6-string)"
	default_keyboard: KeyboardType = "Keyboard (61 keys)"
	waveform: Waveform = Field(default="sine")
	volume: float = Field(default=0.9, ge=0.0, le=1.0)


class Difficulty(str, Enum):
	BEGINNER = "beginner"
	INTERMEDIATE = "intermediate"
	ADVANCED = "advanced"
	EXPERT = "expert"

	@property
	def level(self) -> int:
		return _DIFFICULTY_ORDER.index(self)

	@property
	def display_name(self) -> str:
		return self.value.capitalize()

	@property
	def point_multiplier(self) -> int:
		return self.level + 1

	@property
	def time_multiplier(self) -> float:
		return 1.0 + 0.5 * self.level

	@classmethod
	def from_level(cls, level: int) -> "Difficulty":
		level = max(0, min(level, len(_DIFFICULTY_ORDER) - 1))
		return _DIFFICULTY_ORDER[level]


_DIFFICULTY_ORDER = [Difficulty.BEGINNER, Difficulty.INTERMEDIATE, Difficulty.ADVANCED, Difficulty.EXPERT]


class QuestionType(str, Enum):
	MULTIPLE_CHOICE = "multiple_choice"
	SCALE_STRIP = "scale_strip"
	SCALE_INTERACTIVE = "scale_interactive"
	CHORD_INTERACTIVE = "chord_interactive"

	@property
	def display_name(self) -> str:
		return {
			QuestionType.MULTIPLE_CHOICE: "Multiple Choice",
			QuestionType.SCALE_STRIP: "Scale Strip",
			QuestionType.SCALE_INTERACTIVE: "Scale Exercise",
			QuestionType.CHORD_INTERACTIVE: "Chord Exercise",
		}[self]


class QuizType(str, Enum):
	SECTION = "section"
	TOPIC = "topic"
	REFRESHER = "refresher"
	CUSTOM = "custom"

	@property
	def display_name(self) -> str:
		return {
			QuizType.SECTION: "Section Quiz",
			QuizType.TOPIC: "Topic Quiz",
			QuizType.REFRESHER: "Quick Refresher",
			QuizType.CUSTOM: "Custom Quiz",
		}[self]

	@property
	def description(self) -> str:
		return {
			QuizType.SECTION: "Comprehensive quiz covering the entire section",
			QuizType.TOPIC: "Focused quiz on a specific topic",
			QuizType.REFRESHER: "Quick 5-minute review of key concepts",
			QuizType.CUSTOM: "Personalized quiz based on your preferences",
		}[self]


class GenerationStrategy(str, Enum):
	BALANCED = "balanced"
	FOCUSED = "focused"
	REVIEW = "review"
	COMPREHENSIVE = "comprehensive"


# Scale strip ----------------------------------------------------------------


class ScaleStripMode(str, Enum):
	INTERVALS = "intervals"
	NOTE_NAMES = "note_names"
	FILL_IN_BLANKS = "fill_in_blanks"
	CONSTRUCTION = "construction"


class ValidationMode(str, Enum):
	EXACT_POSITIONS = "exact_positions"
	NOTE_NAMES = "note_names"
	NOTE_NAMES_ENHARMONIC = "note_names_enharmonic"
	PATTERN = "pattern"


class ScaleStripConfiguration(BaseModel):
	model_config = ConfigDict(frozen=True)

	show_interval_labels: bool = True
	show_note_labels: bool = True
	allow_multiple_selection: bool = True
	display_mode: ScaleStripMode = ScaleStripMode.INTERVALS
	pre_highlighted_positions: FrozenSet[int] = frozenset()
	root_note: str = "C"
	octave_count: int = Field(default=1, ge=1, le=4)
	validation_mode: ValidationMode = ValidationMode.EXACT_POSITIONS
	show_empty_positions: bool = False
	highlight_root: bool = True
	key_context: Optional[str] = None

	@property
	def strip_length(self) -> int:
		return 12 * self.octave_count

	@property
	def positions(self) -> List[int]:
		return list(range(self.strip_length + 1))


class ScaleStripAnswer(BaseModel):
	model_config = ConfigDict(frozen=True)

	selected_positions: FrozenSet[int] = frozenset()
	selected_notes: FrozenSet[str] = frozenset()

	@property
	def is_empty(self) -> bool:
		return not self.selected_positions and not self.selected_notes


class FretSelection(BaseModel):
	model_config = ConfigDict(frozen=True)

	string_index: int = Field(ge=0)
	fret: int = Field(ge=0)


# Questions ------------------------------------------------------------------


class QuestionBase(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	text: str
	topic_id: str
	difficulty: Difficulty = Difficulty.BEGINNER
	point_value: float = Field(default=1.0, gt=0)
	explanation: Optional[str] = None
	related_concept_ids: Tuple[str, ...] = ()
	hints: Tuple[str, ...] = ()
	time_limit_seconds: Optional[int] = None
	metadata: Dict[str, Any] = Field(default_factory=dict)

	@property
	def question_type(self) -> QuestionType:
		return QuestionType(getattr(self, "type"))


class MultipleChoiceQuestion(QuestionBase):
	type: Literal["multiple_choice"] = "multiple_choice"
	correct_answer: str
	correct_answer_variations: Tuple[str, ...] = ()
	incorrect_answer_pool: Tuple[str, ...] = ()
	number_of_choices: int = Field(default=4, ge=2)
	shuffle_answers: bool = True

	@property
	def all_correct_answers(self) -> List[str]:
		return [self.correct_answer, *self.correct_answer_variations]


class ScaleStripQuestionMode(str, Enum):
	INTERVALS = "intervals"
	NOTES = "notes"
	CONSTRUCTION = "construction"
	PATTERN = "pattern"


class ScaleStripQuestion(QuestionBase):
	type: Literal["scale_strip"] = "scale_strip"
	configuration: ScaleStripConfiguration = ScaleStripConfiguration()
	correct_answer: ScaleStripAnswer
	scale_type: str = "major"
	question_mode: ScaleStripQuestionMode = ScaleStripQuestionMode.INTERVALS
	allow_partial_credit: bool = True


class ScaleDisplayMode(str, Enum):
	SHOW_ALL = "show_all"
	HIDE_NOTES = "hide_notes"
	HIDE_INTERVALS = "hide_intervals"
	MIXED = "mixed"


class ScaleInteractionMode(str, Enum):
	READ_ONLY = "read_only"
	FILL_NOTES = "fill_notes"
	FILL_INTERVALS = "fill_intervals"
	HIGHLIGHT = "highlight"
	CONSTRUCT = "construct"


class ScaleInteractiveQuestion(QuestionBase):
	type: Literal["scale_interactive"] = "scale_interactive"
	scale_key: str
	scale_type: str
	display_mode: ScaleDisplayMode = ScaleDisplayMode.SHOW_ALL
	interaction_mode: ScaleInteractionMode = ScaleInteractionMode.FILL_NOTES
	initial_state: Dict[str, Any] = Field(default_factory=dict)
	expected_answer: Dict[str, Any] = Field(default_factory=dict)
	allow_partial_credit: bool = True


class ChordInteractiveQuestion(QuestionBase):
	type: Literal["chord_interactive"] = "chord_interactive"
	chord_type: str
	root: str = "C"
	tuning: str = "Guitar (6-string)"
	acceptable_positions: Tuple[Tuple[FretSelection, ...], ...] = ()
	require_exact_position: bool = False


Question = Annotated[
	Union[MultipleChoiceQuestion, ScaleStripQuestion, ScaleInteractiveQuestion, ChordInteractiveQuestion],
	Field(discriminator="type"),
]

QuestionAdapter: TypeAdapter[Any] = TypeAdapter(Question)


def question_from_dict(data: Dict[str, Any]) -> Any:
	return QuestionAdapter.validate_python(data)


# Stored form of a submitted answer; JSON input is matched against the shapes in order
AnswerValue = Annotated[
	Union[Dict[str, str], ScaleStripAnswer, Tuple[FretSelection, ...], str],
	Field(union_mode="left_to_right"),
]


class AnswerValidation(BaseModel):
	model_config = ConfigDict(frozen=True)

	is_correct: bool
	earned_points: float = Field(ge=0.0)
	score: float = Field(default=0.0, ge=0.0, le=1.0)
	feedback: str = ""
	details: Dict[str, Any] = Field(default_factory=dict)


# Templates ------------------------------------------------------------------


class DifficultyRange(BaseModel):
	model_config = ConfigDict(frozen=True)

	minimum: Difficulty = Difficulty.BEGINNER
	maximum: Difficulty = Difficulty.INTERMEDIATE
	distribution: Dict[Difficulty, float] = Field(default_factory=dict)

	@property
	def is_valid(self) -> bool:
		return self.minimum.level <= self.maximum.level

	def difficulties(self) -> List[Difficulty]:
		return [d for d in Difficulty if self.minimum.level <= d.level <= self.maximum.level]

	def contains(self, d: Difficulty) -> bool:
		return self.minimum.level <= d.level <= self.maximum.level

	def weight_for(self, d: Difficulty) -> float:
		levels = self.difficulties()
		if d not in levels:
			return 0.0
		if not self.distribution:
			return 1.0 / len(levels)
		return self.distribution.get(d, 0.0)


class QuizTemplate(BaseModel):
	model_config = ConfigDict(frozen=True)

	id: str
	name: str
	quiz_type: QuizType = QuizType.SECTION
	section_id: str
	topic_id: Optional[str] = None
	question_distribution: Dict[QuestionType, int]
	topic_weights: Dict[str, float]
	difficulty_range: DifficultyRange = DifficultyRange()
	required_concepts: FrozenSet[str] = frozenset()
	generation_strategy: GenerationStrategy = GenerationStrategy.BALANCED
	estimated_minutes: int = 10
	time_limit_seconds: Optional[int] = None
	constraints: Dict[str, Any] = Field(default_factory=dict)

	@property
	def total_questions(self) -> int:
		return sum(self.question_distribution.values())

	def validation_problems(self) -> List[str]:
		problems = []
		if self.total_questions <= 0:
			problems.append("template requests no questions")
		if any(c < 0 for c in self.question_distribution.values()):
			problems.append("question counts must not be negative")
		weight_sum = sum(self.topic_weights.values())
		if weight_sum < 0.95 or weight_sum > 1.05:
			problems.append(f"topic weights sum to {weight_sum:.3f}, expected about 1.0")
		if not self.difficulty_range.is_valid:
			problems.append(
				f"difficulty range is inverted ({self.difficulty_range.minimum.value} > {self.difficulty_range.maximum.value})"
			)
		return problems

	@property
	def is_valid(self) -> bool:
		return not self.validation_problems()


# History --------------------------------------------------------------------


class HistoryEntry(BaseModel):
	quiz_id: str
	title: str = ""
	quiz_type: QuizType = QuizType.SECTION
	section_id: str = ""
	topic_ids: List[str] = Field(default_factory=list)
	score_percentage: float = 0.0
	earned_points: float = 0.0
	total_points: float = 0.0
	correct_count: int = 0
	answered_count: int = 0
	question_count: int = 0
	time_spent_seconds: float = 0.0
	passed: bool = False
	letter_grade: str = "F"
	completed_at: datetime = Field(default_factory=datetime.now)


class QuizStatistics(BaseModel):
	total_quizzes: int = 0
	total_score: float = 0.0
	average_score: float = 0.0
	best_score: float = 0.0
	worst_score: float = 0.0
	total_questions_answered: int = 0
	correct_answers: int = 0
	total_time_seconds: float = 0.0
	last_quiz_date: Optional[datetime] = None

	@property
	def overall_accuracy(self) -> float:
		if self.total_questions_answered == 0:
			return 0.0
		return self.correct_answers / self.total_questions_answered
