"""Beat sources for :meth:`patchbay.hub.Hub.tick`.

The hub only ever sees a beat number.  These helpers turn a tempo into one,
from the wall clock (:class:`BeatClock`) or from a frame counter
(:class:`FrameClock`) when rendering offline at a fixed frame rate.
"""

import logging
import time
import typing


logger = logging.getLogger(__name__)


class BeatClock:

	"""
	Wall-clock beats at a given tempo.

	Changing :attr:`bpm` keeps the current beat position and continues at the
	new rate, so a tempo change never makes the beat jump.
	"""

	def __init__ (self, bpm: float = 120.0, clock: typing.Callable[[], float] = time.perf_counter) -> None:

		if bpm <= 0:
			raise ValueError("BPM must be positive")

		self._clock = clock
		self._bpm = float(bpm)
		self._origin = clock()
		self._origin_beat = 0.0

	@property
	def bpm (self) -> float:
		return self._bpm

	@bpm.setter
	def bpm (self, value: float) -> None:

		if value <= 0:
			raise ValueError("BPM must be positive")

		self._origin_beat = self.beats()
		self._origin = self._clock()
		self._bpm = float(value)

		logger.info(f"Tempo set to {value:.2f} BPM")

	def beats (self) -> float:

		"""Beats elapsed since the clock was created or last reset."""

		return self._origin_beat + (self._clock() - self._origin) * self._bpm / 60.0

	def reset (self, beat: float = 0.0) -> None:
		self._origin = self._clock()
		self._origin_beat = beat


class FrameClock:

	"""Beats derived from a frame count, for fixed-rate rendering."""

	def __init__ (self, bpm: float = 120.0, fps: float = 60.0) -> None:

		if bpm <= 0 or fps <= 0:
			raise ValueError("BPM and FPS must be positive")

		self.bpm = bpm
		self.fps = fps
		self.frame = 0

	def beats_to_frames (self, beats: float) -> float:
		return beats * 60.0 / self.bpm * self.fps

	def beats (self) -> float:
		return self.frame / self.beats_to_frames(1.0)

	def advance (self) -> float:

		"""Move to the next frame and return its beat."""

		self.frame += 1
		return self.beats()


class TapTempo:

	"""
	Tempo from taps.

	The tempo is the average interval of the most recent taps.  A gap longer
	than *timeout* seconds starts a new measurement.
	"""

	def __init__ (
		self,
		bpm: float = 120.0,
		max_taps: int = 4,
		timeout: float = 2.0,
		clock: typing.Callable[[], float] = time.perf_counter
	) -> None:

		self.bpm = bpm
		self.max_taps = max(2, max_taps)
		self.timeout = timeout
		self._clock = clock
		self._taps: typing.List[float] = []

	def tap (self) -> float:

		"""Register a tap and return the current tempo estimate."""

		now = self._clock()

		if self._taps and now - self._taps[-1] > self.timeout:
			self._taps.clear()

		self._taps.append(now)
		self._taps = self._taps[-self.max_taps:]

		if len(self._taps) >= 2:
			interval = (self._taps[-1] - self._taps[0]) / (len(self._taps) - 1)
			if interval > 0:
				self.bpm = 60.0 / interval

		return self.bpm
