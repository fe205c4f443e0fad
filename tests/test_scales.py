import pytest

from theorytrainer.errors import ParseError
from theorytrainer.models import Difficulty
from theorytrainer.scales import Scale, all_scales, get_scale, require_scale, scales_by_difficulty
from theorytrainer.theory import Pitch


def test_registry_intervals_start_at_zero_and_ascend():
	for scale in all_scales().values():
		iv = scale.intervals
		assert iv[0] == 0
		assert all(0 <= i <= 11 for i in iv)
		assert all(b > a for a, b in zip(iv, iv[1:]))


def test_invalid_scale_rejected():
	with pytest.raises(ValueError):
		Scale(name="Broken", intervals=(2, 4, 7))
	with pytest.raises(ValueError):
		Scale(name="Broken", intervals=(0, 7, 4))


def test_lookup_by_alias_and_case():
	assert get_scale("minor").name == "Natural Minor"
	assert get_scale("major pentatonic").name == "Major Pentatonic"
	assert get_scale("Dorian").intervals == (0, 2, 3, 5, 7, 9, 10)
	assert get_scale("nope") is None
	with pytest.raises(ParseError):
		require_scale("nope")


def test_major_modes():
	major = require_scale("Major")
	assert major.mode_intervals(1) == list(require_scale("Dorian").intervals)
	assert major.mode_intervals(5) == list(require_scale("Aeolian").intervals)
	assert major.mode_name(4) == "Mixolydian"
	assert major.mode_root(Pitch.from_name("C4"), 1).full_name == "D4"


def test_mode_rotation_pentatonic_wraps():
	penta = require_scale("Major Pentatonic")
	# Fifth mode of major pentatonic is minor pentatonic
	assert penta.mode_intervals(4) == list(require_scale("Minor Pentatonic").intervals)
	assert penta.mode_intervals(9) == penta.mode_intervals(4)
	assert penta.mode_name(2) == "Mode 3"


def test_mode_rotation_blues():
	blues = require_scale("Blues")
	second = blues.mode_intervals(1)
	assert second[0] == 0
	assert len(second) == len(blues)
	assert second == [0, 2, 3, 4, 7, 9]


def test_notes_for_root_and_labels():
	c_major = require_scale("Major")
	notes = c_major.notes_for_root(Pitch.from_name("F3"))
	assert [n.name for n in notes] == ["F", "G", "A", "Bb", "C", "D", "E"]
	assert require_scale("Natural Minor").degree_labels == ["1", "2", "♭3", "4", "5", "♭6", "♭7"]
	assert c_major.contains_pitch_class(7, 6)
	assert not c_major.contains_pitch_class(0, 6)


def test_step_pattern():
	assert require_scale("Major").step_pattern() == ["W", "W", "H", "W", "W", "W", "H"]
	assert require_scale("Harmonic Minor").step_pattern()[5] == "WH"


def test_difficulty_tiers():
	assert require_scale("Major").difficulty == Difficulty.BEGINNER
	assert require_scale("Blues").difficulty == Difficulty.INTERMEDIATE
	assert require_scale("Enigmatic").difficulty == Difficulty.ADVANCED
	tiers = scales_by_difficulty()
	assert sum(len(v) for v in tiers.values()) == len(all_scales())
