import typing

import pytest

import patchbay.timing


class FakeClock:

	"""A settable stand-in for time.perf_counter."""

	def __init__ (self) -> None:
		self.now = 100.0

	def __call__ (self) -> float:
		return self.now


def test_beat_clock_counts_beats () -> None:

	"""At 120 BPM one second is two beats."""

	clock = FakeClock()
	beats = patchbay.timing.BeatClock(120, clock=clock)

	clock.now += 1.0

	assert beats.beats() == pytest.approx(2.0)


def test_tempo_change_keeps_position () -> None:

	"""Changing the BPM continues from the current beat."""

	clock = FakeClock()
	beats = patchbay.timing.BeatClock(120, clock=clock)

	clock.now += 1.0
	beats.bpm = 60

	assert beats.beats() == pytest.approx(2.0)

	clock.now += 1.0

	assert beats.beats() == pytest.approx(3.0)


def test_beat_clock_reset () -> None:

	"""reset restarts counting from the given beat."""

	clock = FakeClock()
	beats = patchbay.timing.BeatClock(120, clock=clock)

	clock.now += 5.0
	beats.reset(16.0)

	assert beats.beats() == pytest.approx(16.0)


def test_beat_clock_rejects_bad_tempo () -> None:

	"""BPM must be positive."""

	with pytest.raises(ValueError):
		patchbay.timing.BeatClock(0)

	beats = patchbay.timing.BeatClock(120, clock=FakeClock())

	with pytest.raises(ValueError):
		beats.bpm = -1


def test_frame_clock () -> None:

	"""At 120 BPM and 60 FPS a beat is 30 frames."""

	frames = patchbay.timing.FrameClock(bpm=120, fps=60)

	assert frames.beats_to_frames(1.0) == pytest.approx(30.0)

	for _ in range(15):
		beat = frames.advance()

	assert beat == pytest.approx(0.5)


def test_tap_tempo_averages_intervals () -> None:

	"""Taps half a second apart give 120 BPM."""

	clock = FakeClock()
	tapper = patchbay.timing.TapTempo(bpm=90, clock=clock)

	assert tapper.tap() == 90

	bpm: typing.Optional[float] = None
	for _ in range(3):
		clock.now += 0.5
		bpm = tapper.tap()

	assert bpm == pytest.approx(120.0)


def test_tap_tempo_timeout_restarts () -> None:

	"""A long pause starts a new measurement."""

	clock = FakeClock()
	tapper = patchbay.timing.TapTempo(clock=clock)

	tapper.tap()
	clock.now += 0.5
	tapper.tap()

	clock.now += 10.0
	tapper.tap()
	clock.now += 1.0

	assert tapper.tap() == pytest.approx(60.0)
