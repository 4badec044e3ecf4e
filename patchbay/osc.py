"""OSC input for ``osc`` controls and snapshot commands.

Start the listener with ``await OscInput(hub).start()``.  It listens on a
UDP port (default 9000).

Receive Handlers
────────────────
- ``/<name> <number>``: Write a normalised ``[0, 1]`` value for an ``osc`` control
- ``/snapshot/store/<id>``: Store a snapshot
- ``/snapshot/recall/<id> [beats]``: Recall a snapshot
- ``/snapshot/delete/<id>``: Delete a snapshot
- ``/randomize [beats]``: Randomize the UI controls

Snapshot commands run on the render thread at the start of the next frame
via :meth:`patchbay.hub.Hub.post`.
"""

import asyncio
import logging
import typing

import pythonosc.dispatcher
import pythonosc.osc_server

import patchbay.config

if typing.TYPE_CHECKING:
	import patchbay.hub


logger = logging.getLogger(__name__)


def _beats (args: typing.Tuple[typing.Any, ...]) -> typing.Optional[float]:

	if not args:
		return None

	try:
		return float(args[0])
	except (ValueError, TypeError):
		logger.warning(f"Invalid OSC duration argument: {args[0]}")
		return None


class OscInput:

	"""Async OSC listener that writes to the hub's transport feed."""

	def __init__ (self, hub: "patchbay.hub.Hub", receive_port: int = 9000, host: str = "0.0.0.0") -> None:

		self._hub = hub
		self._receive_port = receive_port
		self._host = host

		self._server: typing.Optional[pythonosc.osc_server.AsyncIOOSCUDPServer] = None
		self._transport: typing.Optional[asyncio.BaseTransport] = None
		self._dispatcher = pythonosc.dispatcher.Dispatcher()

		self._dispatcher.map("/snapshot/store/*", self._handle_store)
		self._dispatcher.map("/snapshot/recall/*", self._handle_recall)
		self._dispatcher.map("/snapshot/delete/*", self._handle_delete)
		self._dispatcher.map("/randomize", self._handle_randomize)
		self._dispatcher.set_default_handler(self._handle_value)

	@property
	def port (self) -> typing.Optional[int]:

		"""The bound port, which differs from the requested one when that was 0."""

		if self._transport is None:
			return None

		return self._transport.get_extra_info("sockname")[1]

	async def start (self) -> None:

		self._server = pythonosc.osc_server.AsyncIOOSCUDPServer(
			(self._host, self._receive_port),
			self._dispatcher,
			asyncio.get_running_loop()  # type: ignore[arg-type]
		)

		transport, _ = await self._server.create_serve_endpoint()
		self._transport = transport

		logger.info(f"OSC listening on :{self.port}")

	async def stop (self) -> None:

		if self._transport:
			self._transport.close()
			self._transport = None
			logger.info("OSC listener stopped")

	def map (self, address: str, handler: typing.Callable) -> None:

		"""Register a custom OSC handler."""

		self._dispatcher.map(address, handler)


	# Handlers

	def _handle_value (self, address: str, *args: typing.Any) -> None:

		# address is like /brightness
		name = address.lstrip("/")
		control = self._hub.config.get(name)

		if not isinstance(control, patchbay.config.Osc):
			logger.debug(f"Ignoring OSC message for {address}")
			return

		if not args:
			return

		try:
			value = float(args[0])
		except (ValueError, TypeError):
			logger.warning(f"Invalid OSC value for {name}: {args[0]}")
			return

		self._hub.feed.set(name, value)

	@staticmethod
	def _snapshot_id (address: str) -> typing.Optional[str]:

		# address is like /snapshot/recall/2
		parts = address.split("/")
		return parts[3] if len(parts) >= 4 and parts[3] else None

	def _handle_store (self, address: str, *args: typing.Any) -> None:

		snapshot_id = self._snapshot_id(address)
		if snapshot_id is not None:
			self._hub.post(self._hub.store, snapshot_id)

	def _handle_recall (self, address: str, *args: typing.Any) -> None:

		snapshot_id = self._snapshot_id(address)
		if snapshot_id is not None:
			self._hub.post(self._hub.recall, snapshot_id, _beats(args))

	def _handle_delete (self, address: str, *args: typing.Any) -> None:

		snapshot_id = self._snapshot_id(address)
		if snapshot_id is not None:
			self._hub.post(self._hub.delete, snapshot_id)

	def _handle_randomize (self, address: str, *args: typing.Any) -> None:
		self._hub.post(self._hub.randomize, (), _beats(args))
