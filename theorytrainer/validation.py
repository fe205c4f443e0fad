from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from pydantic import ValidationError

from .chords import get_chord
from .instruments import get_tuning
from .models import (
	AnswerValidation,
	ChordInteractiveQuestion,
	FretSelection,
	MultipleChoiceQuestion,
	ScaleInteractiveQuestion,
	ScaleStripAnswer,
	ScaleStripQuestion,
	ValidationMode,
)
from .theory import normalize_note_name, pitch_class_of, try_pitch_class

logger = logging.getLogger(__name__)

ENHARMONIC_CREDIT = 0.75
EXCESS_PENALTY = 0.25
EXTRA_SELECTION_PENALTY = 0.1


def feedback_for(score: float) -> str:
	if score >= 1.0:
		return "Perfect! You got all the notes/intervals correct."
	if score >= 0.8:
		return f"Almost there! You got {int(score * 100)}% correct."
	if score >= 0.5:
		return f"Good effort! You got {int(score * 100)}% correct."
	return "Keep practicing! Review the pattern and try again."


def _clamp(x: float) -> float:
	return max(0.0, min(1.0, x))


def _invalid(reason: str = "Invalid answer format") -> AnswerValidation:
	return AnswerValidation(is_correct=False, earned_points=0.0, score=0.0, feedback=reason)


def _result(point_value: float, score: float, is_correct: bool, partial: bool, feedback: str, **details: Any) -> AnswerValidation:
	score = _clamp(score)
	if partial:
		earned = point_value * score
	else:
		earned = point_value if is_correct else 0.0
	details["score"] = score
	return AnswerValidation(is_correct=is_correct, earned_points=earned, score=score, feedback=feedback, details=details)


# Set scoring ----------------------------------------------------------------


def exact_set_score(submitted: FrozenSet[Any], expected: FrozenSet[Any]) -> Tuple[float, bool]:
	"""Fraction of expected items selected, less 0.1 per extra selection."""
	if not expected:
		return (1.0, True) if not submitted else (0.0, False)
	hits = len(submitted & expected)
	extra = len(submitted - expected)
	score = hits / len(expected) - EXTRA_SELECTION_PENALTY * extra
	return _clamp(score), submitted == expected


def enharmonic_score(submitted: Iterable[str], expected: Iterable[str]) -> Tuple[float, bool, Dict[str, int]]:
	"""Note-name score giving 0.75 credit for a right pitch class spelled differently.

	score = exact/n + 0.75 * enharmonic/n - 0.25 * excess/n, clamped to [0, 1].
	Only an all-exact submission of the right size is correct.
	"""
	exp = {normalize_note_name(n) for n in expected}
	sub = {normalize_note_name(n) for n in submitted}
	n = len(exp)
	if n == 0:
		ok = not sub
		return (1.0 if ok else 0.0), ok, {"exact": 0, "enharmonic": 0, "missed": 0}
	exact = exp & sub
	open_pcs = Counter(try_pitch_class(e) for e in exp - exact)
	enharmonic = 0
	for note in sorted(sub - exact):
		pc = try_pitch_class(note)
		if pc is not None and open_pcs[pc] > 0:
			open_pcs[pc] -= 1
			enharmonic += 1
	score = len(exact) / n + ENHARMONIC_CREDIT * enharmonic / n
	if len(sub) > n:
		score -= EXCESS_PENALTY * (len(sub) - n) / n
	counts = {"exact": len(exact), "enharmonic": enharmonic, "missed": n - len(exact) - enharmonic}
	return _clamp(score), len(exact) == n and len(sub) == n, counts


def interval_pattern(positions: Iterable[int]) -> List[int]:
	ordered = sorted(positions)
	return [b - a for a, b in zip(ordered, ordered[1:])]


def pattern_score(submitted: Iterable[int], expected: Iterable[int]) -> float:
	"""Transposition-invariant match of the step shapes of two position sets."""
	sub = list(submitted)
	exp = list(expected)
	sub_steps = interval_pattern(sub)
	exp_steps = interval_pattern(exp)
	if len(sub_steps) != len(exp_steps):
		return 0.0
	if not exp_steps:
		return 1.0 if len(sub) == len(exp) else 0.0
	common = Counter(sub_steps) & Counter(exp_steps)
	return sum(common.values()) / len(sub_steps)


# Per-type validators --------------------------------------------------------


def _validate_multiple_choice(q: MultipleChoiceQuestion, answer: Any) -> AnswerValidation:
	if not isinstance(answer, str):
		return _invalid()
	ok = answer in q.all_correct_answers
	return AnswerValidation(
		is_correct=ok,
		earned_points=q.point_value if ok else 0.0,
		score=1.0 if ok else 0.0,
		feedback="Correct!" if ok else f"Incorrect. The correct answer is: {q.correct_answer}",
	)


def _coerce_strip_answer(answer: Any) -> Optional[ScaleStripAnswer]:
	if isinstance(answer, ScaleStripAnswer):
		return answer
	if isinstance(answer, Mapping):
		try:
			return ScaleStripAnswer.model_validate(answer)
		except ValidationError:
			return None
	return None


def _validate_scale_strip(q: ScaleStripQuestion, answer: Any) -> AnswerValidation:
	sub = _coerce_strip_answer(answer)
	if sub is None:
		return _invalid()
	expected = q.correct_answer
	mode = q.configuration.validation_mode
	if mode == ValidationMode.EXACT_POSITIONS:
		score, ok = exact_set_score(sub.selected_positions, expected.selected_positions)
		missed = sorted(expected.selected_positions - sub.selected_positions)
		return _result(q.point_value, score, ok, q.allow_partial_credit, feedback_for(score), missed=missed)
	if mode == ValidationMode.NOTE_NAMES:
		got = frozenset(normalize_note_name(n) for n in sub.selected_notes)
		want = frozenset(normalize_note_name(n) for n in expected.selected_notes)
		score, ok = exact_set_score(got, want)
		return _result(q.point_value, score, ok, q.allow_partial_credit, feedback_for(score), missed=sorted(want - got))
	if mode == ValidationMode.NOTE_NAMES_ENHARMONIC:
		score, ok, counts = enharmonic_score(sub.selected_notes, expected.selected_notes)
		return _result(q.point_value, score, ok, q.allow_partial_credit, feedback_for(score), **counts)
	score = pattern_score(sub.selected_positions, expected.selected_positions)
	return _result(
		q.point_value,
		score,
		score >= 1.0,
		q.allow_partial_credit,
		feedback_for(score),
		expected_pattern=interval_pattern(expected.selected_positions),
		submitted_pattern=interval_pattern(sub.selected_positions),
	)


def _same_value(a: Any, b: Any) -> bool:
	if isinstance(a, str) and isinstance(b, str):
		return normalize_note_name(a) == normalize_note_name(b)
	return a == b


def _validate_scale_interactive(q: ScaleInteractiveQuestion, answer: Any) -> AnswerValidation:
	if not isinstance(answer, Mapping):
		return _invalid()
	total = len(q.expected_answer)
	hits = sum(1 for k, v in q.expected_answer.items() if k in answer and _same_value(answer[k], v))
	score = hits / total if total else 0.0
	return _result(
		q.point_value,
		score,
		score >= 1.0,
		q.allow_partial_credit,
		feedback_for(score),
		expected_answer=dict(q.expected_answer),
	)


def _coerce_frets(answer: Any) -> Optional[FrozenSet[Tuple[int, int]]]:
	if isinstance(answer, Mapping):
		answer = answer.get("positions")
	if isinstance(answer, (str, bytes)) or not isinstance(answer, Iterable):
		return None
	out = set()
	for item in answer:
		if isinstance(item, FretSelection):
			out.add((item.string_index, item.fret))
			continue
		try:
			if isinstance(item, Mapping):
				sel = FretSelection.model_validate(item)
			else:
				s, f = item
				sel = FretSelection(string_index=s, fret=f)
		except (ValidationError, TypeError, ValueError):
			return None
		out.add((sel.string_index, sel.fret))
	return frozenset(out)


def _validate_chord_interactive(q: ChordInteractiveQuestion, answer: Any) -> AnswerValidation:
	frets = _coerce_frets(answer)
	if frets is None:
		return _invalid()
	name = q.chord_type
	chord = get_chord(q.chord_type)
	if chord is not None:
		name = chord.symbol_for(q.root)
	for shape in q.acceptable_positions:
		if frets == frozenset((p.string_index, p.fret) for p in shape):
			return _result(q.point_value, 1.0, True, False, f"Correct! That's a valid {name} chord.", matched="shape")
	ok = False
	if not q.require_exact_position and frets and chord is not None:
		tuning = get_tuning(q.tuning)
		if tuning is None:
			logger.warning("question %s names unknown tuning %r", q.id, q.tuning)
		else:
			try:
				played = set(tuning.pitch_classes_for(sorted(frets)))
			except IndexError:
				return _invalid("That position uses a string the instrument does not have")
			ok = played == set(chord.pitch_classes(pitch_class_of(q.root)))
	if ok:
		return _result(q.point_value, 1.0, True, False, f"Correct! That's a valid {name} chord.", matched="pitch_classes")
	return _result(q.point_value, 0.0, False, False, f"Not quite. Try reviewing the {name} chord shape.")


_VALIDATORS: Dict[str, Callable[[Any, Any], AnswerValidation]] = {
	"multiple_choice": _validate_multiple_choice,
	"scale_strip": _validate_scale_strip,
	"scale_interactive": _validate_scale_interactive,
	"chord_interactive": _validate_chord_interactive,
}


def canonical_answer(question: Any, answer: Any) -> Any:
	"""The submitted ``answer`` in the stored shape for ``question``'s type.

	Returns None when the answer cannot take that shape; such answers are
	scored as invalid anyway.
	"""
	qtype = getattr(question, "type", "")
	if qtype == "multiple_choice":
		return answer if isinstance(answer, str) else None
	if qtype == "scale_strip":
		return _coerce_strip_answer(answer)
	if qtype == "scale_interactive":
		if isinstance(answer, Mapping) and all(isinstance(v, str) for v in answer.values()):
			return {str(k): v for k, v in answer.items()}
		return None
	if qtype == "chord_interactive":
		frets = _coerce_frets(answer)
		if frets is None:
			return None
		return tuple(FretSelection(string_index=s, fret=f) for s, f in sorted(frets))
	return None


def validate_answer(question: Any, answer: Any) -> AnswerValidation:
	"""Score ``answer`` against ``question``.

	Malformed answers produce an incorrect result worth 0 points rather
	than an exception.
	"""
	validator = _VALIDATORS.get(getattr(question, "type", ""))
	if validator is None:
		raise TypeError(f"No validator for question type {getattr(question, 'type', None)!r}")
	return validator(question, answer)
