"""The shared table of live external-transport values.

MIDI, OSC and audio listeners run on their own threads and write the
latest raw sample for a control name with :meth:`TransportFeed.set`.  The
hub reads it once per evaluation of a transport control.  Each write is
stamped with a sequence number so the hub can tell whether a device has
moved since a snapshot recall last took over the control.

Raw MIDI and OSC values are normalised to [0, 1]; audio values are the
detected level of one buffer (see :func:`detect_level`).
"""

import math
import threading
import typing


class TransportFeed:

	"""Lock-guarded ``name -> (value, sequence)`` table."""

	def __init__ (self) -> None:

		self._lock = threading.Lock()
		self._values: typing.Dict[str, typing.Tuple[float, int]] = {}
		self._sequence = 0

	def set (self, name: str, value: float) -> None:

		with self._lock:
			self._sequence += 1
			self._values[name] = (float(value), self._sequence)

	def entry (self, name: str) -> typing.Optional[typing.Tuple[float, int]]:

		with self._lock:
			return self._values.get(name)

	def transport_value (self, name: str) -> typing.Optional[float]:

		"""The latest raw value for *name*, or None when nothing has been received."""

		entry = self.entry(name)
		return None if entry is None else entry[0]

	@property
	def sequence (self) -> int:

		with self._lock:
			return self._sequence

	def discard (self, name: str) -> None:

		with self._lock:
			self._values.pop(name, None)

	def names (self) -> typing.List[str]:

		with self._lock:
			return list(self._values)


# ─── Audio level detection ────────────────────────────────────────────────────


def pre_emphasis (samples: typing.Sequence[float], coefficient: float) -> typing.List[float]:

	"""High-pass tilt ``y[i] = x[i] - c * x[i - 1]``; coefficient 0 is a no-op."""

	if not samples or coefficient == 0.0:
		return list(samples)

	emphasized = [samples[0]]

	for i in range(1, len(samples)):
		emphasized.append(samples[i] - coefficient * samples[i - 1])

	return emphasized


def detect_level (samples: typing.Sequence[float], pre: float = 0.0, detect: float = 0.0) -> float:

	"""
	Level of one buffer: *detect* 0 is peak, 1 is RMS, values between mix them.
	"""

	if not samples:
		return 0.0

	emphasized = pre_emphasis(samples, pre)

	peak = max(abs(s) for s in emphasized)
	rms = math.sqrt(sum(s * s for s in emphasized) / len(emphasized))

	detect = max(0.0, min(1.0, detect))
	return peak * (1.0 - detect) + rms * detect
