"""MIDI control change input for ``midi`` controls.

Incoming CC messages are matched against the ``midi`` controls of the
hub's live document by ``(channel, cc)`` and written to the transport feed
as a normalised ``[0, 1]`` value.  The mapping is looked up per message, so
a reload that changes a control's channel or controller takes effect
immediately.

With ``hrcc`` enabled, controllers 0-31 are treated as the most significant
half of a 14-bit value whose least significant half arrives on ``cc + 32``.
"""

import logging
import threading
import typing

import mido

import patchbay.config

if typing.TYPE_CHECKING:
	import patchbay.hub


logger = logging.getLogger(__name__)

_MAX_7BIT = 127
_MAX_14BIT = 16383


def select_input_device (device_name: typing.Optional[str] = None, callback: typing.Optional[typing.Callable] = None) -> typing.Tuple[typing.Optional[str], typing.Optional[typing.Any]]:

	"""
	Open a MIDI input port.

	With no *device_name* the first available port is used.  A name that is
	not found falls back to the first port with a warning.

	Returns:
		A tuple of ``(device_name, port)``, or ``(None, None)`` when there is
		no input to open.
	"""

	inputs = mido.get_input_names()
	logger.info(f"Available MIDI inputs: {inputs}")

	if not inputs:
		logger.error("No MIDI input devices found")
		return None, None

	target = device_name if device_name is not None else inputs[0]

	if target not in inputs:
		logger.warning(f"MIDI input device '{target}' not found, falling back to '{inputs[0]}'")
		target = inputs[0]

	port = mido.open_input(target, callback=callback)
	logger.info(f"Opened MIDI input: {target}")

	return target, port


class MidiInput:

	"""
	Feeds ``midi`` controls from a MIDI input port.

	mido calls :meth:`handle` on its own thread; the only shared state it
	touches is the lock-guarded transport feed and this object's pending
	MSB table.
	"""

	def __init__ (self, hub: "patchbay.hub.Hub", device_name: typing.Optional[str] = None, hrcc: bool = False) -> None:

		self._hub = hub
		self.device_name = device_name
		self.hrcc = hrcc

		self._port: typing.Optional[typing.Any] = None
		self._lock = threading.Lock()
		self._msb: typing.Dict[typing.Tuple[int, int], int] = {}

	@property
	def running (self) -> bool:
		return self._port is not None

	def start (self) -> bool:

		"""Open the port.  Returns False when no input device is available."""

		name, port = select_input_device(self.device_name, callback=self.handle)

		if port is None:
			return False

		self.device_name = name
		self._port = port
		return True

	def stop (self) -> None:

		if self._port is not None:
			self._port.close()
			self._port = None
			logger.info("MIDI input closed")

	def _targets (self, channel: int, cc: int) -> typing.List[str]:

		return [
			control.name
			for control in self._hub.config.of_category(patchbay.config.TRANSPORT)
			if isinstance(control, patchbay.config.Midi) and control.channel == channel and control.cc == cc
		]

	def _write (self, channel: int, cc: int, value: float) -> None:

		for name in self._targets(channel, cc):
			self._hub.feed.set(name, value)

	def handle (self, message: mido.Message) -> None:

		"""Process one incoming message.  Anything but a control change is ignored."""

		if message.type != "control_change":
			return

		channel, cc, value = message.channel, message.control, message.value

		if not self.hrcc or cc > 63:
			self._write(channel, cc, value / _MAX_7BIT)
			return

		with self._lock:

			if cc < 32:
				self._msb[(channel, cc)] = value
				combined: typing.Optional[int] = value << 7
			else:
				msb = self._msb.get((channel, cc - 32))
				combined = None if msb is None else (msb << 7) | value

		if cc < 32:
			self._write(channel, cc, typing.cast(int, combined) / _MAX_14BIT)

		elif combined is None:
			# A 32-63 controller with no MSB partner is a plain 7-bit message.
			self._write(channel, cc, value / _MAX_7BIT)

		else:
			self._write(channel, cc - 32, combined / _MAX_14BIT)
