import typing


class PatchbayError (Exception):

	"""
	Base class for every error raised by the control engine.
	"""


class ValidationError (PatchbayError):

	"""
	A control document was rejected.

	Raised by the parser and validator for structural problems: syntax
	errors, unresolved ``$name`` references, malformed breakpoint
	sequences and conflicting fields.  The live configuration is never
	touched when one of these is raised.
	"""

	def __init__ (self, message: str, control: typing.Optional[str] = None, rule: str = "invalid") -> None:

		self.control = control
		self.rule = rule

		prefix = f"[{control}] " if control else ""
		super().__init__(f"{prefix}{message}")


class CycleError (ValidationError):

	"""
	The dependency graph contains a cycle.

	``path`` lists the control names along the cycle; the first and last
	entries are the same name.
	"""

	def __init__ (self, path: typing.List[str]) -> None:

		self.path = list(path)
		super().__init__(f"Dependency cycle: {' -> '.join(self.path)}", control=self.path[0], rule="cycle")


class SnapshotError (PatchbayError, KeyError):

	"""
	A snapshot id was not found in the store.
	"""

	def __str__ (self) -> str:
		return str(self.args[0]) if self.args else ""
