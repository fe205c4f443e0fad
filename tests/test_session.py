from datetime import datetime, timedelta

import pytest

from theorytrainer.errors import SessionStateError
from theorytrainer.models import (
	ChordInteractiveQuestion,
	FretSelection,
	MultipleChoiceQuestion,
	ScaleInteractiveQuestion,
	ScaleStripAnswer,
	ScaleStripQuestion,
)
from theorytrainer.session import (
	Abandon,
	Complete,
	GoTo,
	Next,
	Pause,
	Previous,
	Quiz,
	QuizStatus,
	Resume,
	SessionController,
	Skip,
	Start,
	SubmitAnswer,
	apply_event,
)

T0 = datetime(2024, 1, 1, 12, 0, 0)


def mc(id, points=1.0):
	return MultipleChoiceQuestion(
		id=id, text=id, topic_id="music_basics", point_value=points, correct_answer="A", incorrect_answer_pool=("B", "C")
	)


def quiz(n=3, **kw):
	return Quiz(id="quiz-1", section_id="introduction", questions=tuple(mc(f"q{i}") for i in range(n)), **kw)


def started(n=3):
	return apply_event(quiz(n), Start(at=T0))


class FakeStore:
	def __init__(self):
		self.saved = []
		self.completed = []
		self.deleted = []

	def save_quiz_progress(self, quiz):
		self.saved.append(quiz)

	def delete_progress(self, quiz_id):
		self.deleted.append(quiz_id)

	def save_completed_quiz(self, quiz):
		self.completed.append(quiz)


def test_start_and_answer():
	q = started()
	assert q.status == QuizStatus.IN_PROGRESS
	assert q.start_time == T0
	q2 = apply_event(q, SubmitAnswer(question_id="q0", answer="A"))
	assert q.answers == {}
	assert q2.answers["q0"].is_correct
	assert q2.earned_points == 1.0
	assert q2.progress == pytest.approx(1 / 3)


def test_resubmit_replaces_answer():
	q = apply_event(started(), SubmitAnswer(question_id="q0", answer="B"))
	q = apply_event(q, SubmitAnswer(question_id="q0", answer="A"))
	assert len(q.answers) == 1
	assert q.answers["q0"].is_correct


@pytest.mark.parametrize("event", [Pause(), SubmitAnswer(question_id="q0"), Next(), Complete(), Resume()])
def test_events_rejected_before_start(event):
	with pytest.raises(SessionStateError):
		apply_event(quiz(), event)


def test_unknown_question_is_rejected():
	with pytest.raises(SessionStateError):
		apply_event(started(), SubmitAnswer(question_id="missing", answer="A"))


def test_skipped_question_cannot_be_answered():
	q = apply_event(started(), Skip(question_id="q1"))
	assert q.answers["q1"].is_skipped
	assert q.answers["q1"].earned_points == 0.0
	with pytest.raises(SessionStateError):
		apply_event(q, SubmitAnswer(question_id="q1", answer="A"))
	with pytest.raises(SessionStateError):
		apply_event(q, Skip(question_id="q1"))


def test_navigation_out_of_range_is_noop():
	q = started()
	assert apply_event(q, Previous()).current_index == 0
	q = apply_event(q, GoTo(index=2))
	assert q.current_index == 2
	assert apply_event(q, Next()).current_index == 2
	assert apply_event(q, GoTo(index=99)).current_index == 2
	assert apply_event(q, Previous()).current_index == 1


def test_pause_time_is_excluded():
	q = started()
	q = apply_event(q, Pause(at=T0 + timedelta(seconds=10)))
	assert q.status == QuizStatus.PAUSED
	with pytest.raises(SessionStateError):
		apply_event(q, SubmitAnswer(question_id="q0", answer="A"))
	q = apply_event(q, Resume(at=T0 + timedelta(seconds=70)))
	assert q.paused_seconds == 60.0
	q = apply_event(q, Complete(at=T0 + timedelta(seconds=100)))
	assert q.status == QuizStatus.COMPLETED
	assert q.elapsed_seconds() == 40.0


def test_complete_from_paused_closes_pause():
	q = apply_event(started(), Pause(at=T0 + timedelta(seconds=5)))
	q = apply_event(q, Complete(at=T0 + timedelta(seconds=20)))
	assert q.paused_seconds == 15.0
	assert q.paused_at is None
	assert q.elapsed_seconds() == 5.0


def test_finished_quiz_rejects_events():
	done = apply_event(started(), Complete(at=T0))
	assert done.status.is_finished
	for event in (Start(), Abandon(), Complete(), SubmitAnswer(question_id="q0")):
		with pytest.raises(SessionStateError):
			apply_event(done, event)


def test_abandon_before_start():
	q = apply_event(quiz(), Abandon())
	assert q.status == QuizStatus.ABANDONED
	assert not q.status.can_resume


def test_time_limit():
	q = apply_event(quiz(time_limit_seconds=30), Start(at=T0))
	assert q.remaining_seconds(T0 + timedelta(seconds=10)) == 20.0
	assert not q.is_time_expired(T0 + timedelta(seconds=10))
	assert q.is_time_expired(T0 + timedelta(seconds=31))
	assert quiz().remaining_seconds() is None


def test_unknown_event_type():
	with pytest.raises(TypeError):
		apply_event(quiz(), object())


def test_quiz_round_trips_through_json():
	q = apply_event(started(), SubmitAnswer(question_id="q0", answer="A"))
	q = apply_event(q, Skip(question_id="q1"))
	restored = Quiz.model_validate_json(q.model_dump_json())
	assert restored.status == QuizStatus.IN_PROGRESS
	assert restored.start_time == T0
	assert restored.questions == q.questions
	assert restored.answers["q0"].is_correct
	assert restored.answers["q1"].is_skipped
	assert restored.earned_points == q.earned_points


def test_controller_autosaves_and_records_completion():
	store = FakeStore()
	ctl = SessionController(quiz(2), store=store)
	ctl.start()
	ctl.submit("A")
	ctl.next()
	ctl.skip()
	final = ctl.complete()
	assert len(store.saved) == 4
	assert store.completed == [final]
	assert final.answers["q0"].is_correct
	assert final.answers["q1"].is_skipped


def test_controller_abandon_deletes_progress():
	store = FakeStore()
	ctl = SessionController(quiz(), store=store, autosave=False)
	ctl.start()
	ctl.abandon()
	assert store.saved == []
	assert store.deleted == ["quiz-1"]


def test_controller_without_current_question():
	ctl = SessionController(quiz(0))
	ctl.start()
	with pytest.raises(SessionStateError):
		ctl.submit("A")


def test_structured_answers_round_trip_through_json():
	strip = ScaleStripQuestion(
		id="strip",
		text="Select the C major triad",
		topic_id="chords",
		correct_answer=ScaleStripAnswer(selected_positions=frozenset({0, 4, 7}), selected_notes=frozenset({"C", "E", "G"})),
	)
	chord = ChordInteractiveQuestion(id="chord", text="Form a C major chord", topic_id="basic_chords", chord_type="major", root="C")
	fill = ScaleInteractiveQuestion(
		id="fill", text="Fill in C major", topic_id="basic_scales", scale_key="C", scale_type="major", expected_answer={"0": "C", "1": "D"}
	)
	q = apply_event(Quiz(id="mixed", section_id="fundamentals", questions=(strip, chord, fill)), Start(at=T0))
	q = apply_event(q, SubmitAnswer(question_id="strip", answer={"selected_positions": [0, 4, 7], "selected_notes": ["C", "E", "G"]}))
	q = apply_event(q, SubmitAnswer(question_id="chord", answer=[(4, 1), (1, 3), (2, 2), (3, 0), (5, 0)]))
	q = apply_event(q, SubmitAnswer(question_id="fill", answer={"0": "C", "1": "D"}))

	restored = Quiz.model_validate_json(q.model_dump_json())
	assert restored == q
	assert isinstance(restored.answers["strip"].answer, ScaleStripAnswer)
	assert restored.answers["strip"].answer.selected_positions == frozenset({0, 4, 7})
	frets = restored.answers["chord"].answer
	assert isinstance(frets, tuple) and all(isinstance(f, FretSelection) for f in frets)
	assert frets[0] == FretSelection(string_index=1, fret=3)
	assert restored.answers["fill"].answer == {"0": "C", "1": "D"}
	assert restored.answers["strip"].is_correct


def test_malformed_answer_is_stored_empty():
	q = apply_event(started(), SubmitAnswer(question_id="q0", answer=5))
	entry = q.answers["q0"]
	assert entry.answer is None
	assert not entry.is_correct
	assert Quiz.model_validate_json(q.model_dump_json()) == q
