SR = 44100

import io
from typing import Sequence, cast
import numpy as np
import numpy.typing as npt
import soundfile as sf

from .models import Settings
from .theory import interval_to_pair, midi_to_freq


def tone(freq: float, dur: float, waveform: str = "sine", volume: float = 1.0) -> npt.NDArray[np.float32]:
	"""Generate a single tone with a simple attack/release envelope.

	Args:
		freq: Frequency in Hz
		dur: Duration in seconds
		waveform: One of {"sine","triangle","saw"}
		volume: Peak amplitude, 0..1
	"""
	t = np.linspace(0.0, dur, int(SR * dur), endpoint=False, dtype=np.float32)
	omega = 2.0 * np.pi * freq
	if waveform == "sine":
		x = np.sin(omega * t).astype(np.float32)
	elif waveform == "triangle":
		x = ((2.0 / np.pi) * np.arcsin(np.sin(omega * t))).astype(np.float32)
	else:
		phase = (freq * t).astype(np.float32)
		x = (2.0 * (phase - np.floor(phase + 0.5))).astype(np.float32)

	# 5ms attack, 50ms release
	attack = min(int(0.005 * SR), x.size)
	release = min(int(0.050 * SR), x.size)
	env = np.ones_like(x, dtype=np.float32)
	if attack > 0:
		env[:attack] = np.linspace(0.0, 1.0, attack, endpoint=False, dtype=np.float32)
	if release > 0:
		env[-release:] = np.linspace(1.0, 0.0, release, endpoint=False, dtype=np.float32)

	y = (x * env * np.float32(volume)).astype(np.float32)
	return cast(npt.NDArray[np.float32], y)


def _normalize(x: npt.NDArray[np.float32], volume: float = 1.0) -> npt.NDArray[np.float32]:
	max_abs = float(np.max(np.abs(x))) if x.size else 0.0
	if max_abs > 0.0:
		x = (x / max_abs * volume).astype(np.float32)
	return cast(npt.NDArray[np.float32], x)


def chord(freqs: Sequence[float], dur: float = 1.2, waveform: str = "sine", volume: float = 0.9) -> npt.NDArray[np.float32]:
	"""All frequencies sounded together, peak-normalized to ``volume``."""
	n = int(SR * dur)
	if not freqs:
		return np.zeros(n, dtype=np.float32)
	x = np.sum([tone(f, dur, waveform) for f in freqs], axis=0).astype(np.float32)
	return _normalize(x, volume)


def arpeggio(
	freqs: Sequence[float], note_dur: float = 0.35, gap: float = 0.05, waveform: str = "sine", volume: float = 0.9
) -> npt.NDArray[np.float32]:
	if not freqs:
		return np.zeros(0, dtype=np.float32)
	n_gap = np.zeros(int(SR * gap), dtype=np.float32)
	parts = []
	for i, f in enumerate(freqs):
		if i:
			parts.append(n_gap)
		parts.append(tone(f, note_dur, waveform, volume))
	return np.concatenate(parts)


def melodic(
	f1: float, f2: float, gap: float = 0.10, dur: float = 0.60, waveform: str = "sine", volume: float = 1.0
) -> npt.NDArray[np.float32]:
	return arpeggio([f1, f2], note_dur=dur, gap=gap, waveform=waveform, volume=volume)


def render_voicing(midis: Sequence[int], arpeggiate: bool = False, waveform: str = "sine", volume: float = 0.9) -> bytes:
	"""WAV bytes for a chord voicing given as MIDI numbers (e.g. ``Chord.build_voicing``)."""
	freqs = [midi_to_freq(m) for m in midis]
	x = arpeggio(freqs, waveform=waveform, volume=volume) if arpeggiate else chord(freqs, waveform=waveform, volume=volume)
	return wav_bytes(x)


def render_interval(
	root_midi: int, name: str, direction: str = "ascending", harmonic: bool = False, waveform: str = "sine", volume: float = 1.0
) -> bytes:
	"""WAV bytes for a named interval ("m2".."P8") above or below ``root_midi``."""
	m1, m2 = interval_to_pair(root_midi, name, direction)
	f1, f2 = midi_to_freq(m1), midi_to_freq(m2)
	x = chord([f1, f2], dur=1.0, waveform=waveform, volume=volume) if harmonic else melodic(f1, f2, waveform=waveform, volume=volume)
	return wav_bytes(x)


def play_voicing(midis: Sequence[int], settings: Settings, arpeggiate: bool = False) -> bytes:
	return render_voicing(midis, arpeggiate, settings.waveform, settings.volume)


def play_interval(root_midi: int, name: str, settings: Settings, direction: str = "ascending", harmonic: bool = False) -> bytes:
	return render_interval(root_midi, name, direction, harmonic, settings.waveform, settings.volume)


def wav_bytes(x: npt.NDArray[np.float32]) -> bytes:
	buf = io.BytesIO()
	sf.write(buf, x, SR, format="WAV")
	return buf.getvalue()
