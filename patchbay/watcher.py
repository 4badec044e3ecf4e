"""Reload the control document when its file changes on disk."""

import logging
import os
import threading
import typing

if typing.TYPE_CHECKING:
	import patchbay.hub


logger = logging.getLogger(__name__)


class FileWatcher:

	"""
	Polls a document's modification time on a daemon thread.

	Each change is read and handed to :meth:`patchbay.hub.Hub.try_reload`;
	a rejected document leaves the running one in place and the watcher
	keeps going.
	"""

	def __init__ (self, hub: "patchbay.hub.Hub", path: str, interval: float = 0.25) -> None:

		self._hub = hub
		self.path = path
		self.interval = interval

		self._mtime: typing.Optional[float] = None
		self._stop = threading.Event()
		self._thread: typing.Optional[threading.Thread] = None

	def _modified (self) -> typing.Optional[float]:

		try:
			return os.path.getmtime(self.path)
		except OSError:
			return None

	def check (self) -> bool:

		"""
		Reload if the file changed since the last check.

		Returns True when a new document was applied.  A missing file is
		skipped until it reappears.
		"""

		mtime = self._modified()

		if mtime is None or mtime == self._mtime:
			return False

		self._mtime = mtime

		try:
			with open(self.path, "r", encoding="utf-8") as f:
				document = f.read()
		except OSError as e:
			logger.warning(f"Could not read {self.path}: {e}")
			return False

		error = self._hub.try_reload(document)

		if error is not None:
			return False

		logger.info(f"Reloaded {self.path}")
		return True

	def start (self) -> None:

		if self._thread is not None:
			return

		self._stop.clear()
		self._thread = threading.Thread(target=self._run, name="patchbay-watcher", daemon=True)
		self._thread.start()

		logger.info(f"Watching {self.path}")

	def stop (self) -> None:

		self._stop.set()

		if self._thread is not None:
			self._thread.join()
			self._thread = None

	def _run (self) -> None:

		while not self._stop.is_set():
			self.check()
			self._stop.wait(self.interval)
