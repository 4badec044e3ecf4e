import asyncio
import typing


CallbackType = typing.Callable[..., typing.Any]


class EventEmitter:

	"""
	Synchronous listeners keyed by event name.

	The hub emits from whichever thread triggered the event: reloads from
	the watcher thread, everything else from the render thread.
	"""

	def __init__ (self) -> None:

		"""
		Initialize an empty event registry.
		"""

		self._listeners: typing.Dict[str, typing.List[CallbackType]] = {}


	def on (self, event_name: str, callback: CallbackType) -> None:

		"""
		Register a callback for an event name.

		Coroutine functions are rejected because events fire inside a frame.
		"""

		if asyncio.iscoroutinefunction(callback):
			raise ValueError(f"Async callback registered for {event_name!r}; listeners must be synchronous")

		self._listeners.setdefault(event_name, []).append(callback)

	def off (self, event_name: str, callback: CallbackType) -> None:

		"""
		Unregister a previously registered callback.

		Raises ``ValueError`` if the callback is not registered for the event.
		"""

		if callback not in self._listeners.get(event_name, []):
			raise ValueError(f"Callback not registered for event {event_name!r}")

		self._listeners[event_name].remove(callback)


	def listener_count (self, event_name: str) -> int:
		return len(self._listeners.get(event_name, []))


	def emit (self, event_name: str, *args: typing.Any, **kwargs: typing.Any) -> None:

		"""
		Call every listener for *event_name* in registration order.
		"""

		for callback in list(self._listeners.get(event_name, [])):
			callback(*args, **kwargs)
