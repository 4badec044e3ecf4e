"""Disabled expressions and ``$name`` parameter resolution.

A UI control may declare ``disabled`` as a boolean literal or a small
expression evaluated against the other UI controls:

    disabled: not show_grid
    disabled: mode is "off" or animate and mode is not "spiral"

Operands are checkbox names (their truth), ``name is "value"`` and
``name is not "value"`` comparisons against a select's current option,
and the literals ``true``/``false``.  ``not`` applies to a single operand,
``and`` binds tighter than ``or`` and both associate left to right.
There is no grouping.
"""

import dataclasses
import re
import typing

import patchbay.config
import patchbay.errors


_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-\.]*$")


class Context (typing.Protocol):

	"""What an expression reads from while evaluating."""

	def get_bool (self, name: str) -> bool: ...

	def get_string (self, name: str) -> str: ...


# ─── Expression nodes ─────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True)
class Literal:

	value: bool

	def evaluate (self, context: Context) -> bool:
		return self.value

	def names (self) -> typing.List[str]:
		return []


@dataclasses.dataclass(frozen=True)
class Truthy:

	name: str

	def evaluate (self, context: Context) -> bool:
		return context.get_bool(self.name)

	def names (self) -> typing.List[str]:
		return [self.name]


@dataclasses.dataclass(frozen=True)
class Equals:

	name: str
	value: str
	negate: bool = False

	def evaluate (self, context: Context) -> bool:
		return (context.get_string(self.name) == self.value) != self.negate

	def names (self) -> typing.List[str]:
		return [self.name]


@dataclasses.dataclass(frozen=True)
class Not:

	operand: "Expression"

	def evaluate (self, context: Context) -> bool:
		return not self.operand.evaluate(context)

	def names (self) -> typing.List[str]:
		return self.operand.names()


@dataclasses.dataclass(frozen=True)
class And:

	operands: typing.Tuple["Expression", ...]

	def evaluate (self, context: Context) -> bool:
		return all(operand.evaluate(context) for operand in self.operands)

	def names (self) -> typing.List[str]:
		return [name for operand in self.operands for name in operand.names()]


@dataclasses.dataclass(frozen=True)
class Or:

	operands: typing.Tuple["Expression", ...]

	def evaluate (self, context: Context) -> bool:
		return any(operand.evaluate(context) for operand in self.operands)

	def names (self) -> typing.List[str]:
		return [name for operand in self.operands for name in operand.names()]


Expression = typing.Union[Literal, Truthy, Equals, Not, And, Or]


# ─── Parsing ──────────────────────────────────────────────────────────────────


def _unquote (text: str) -> str:

	text = text.strip()

	if len(text) >= 2 and text[0] == text[-1] and text[0] in "\"'":
		return text[1:-1]

	return text


def _operand_name (token: str, source: str, control: typing.Optional[str]) -> str:

	name = token.strip()

	if not _NAME.match(name):
		raise patchbay.errors.ValidationError(
			f"Invalid operand {token!r} in disabled expression {source!r}",
			control=control,
			rule="disabled_expression"
		)

	return name


def _parse_operand (token: str, source: str, control: typing.Optional[str]) -> Expression:

	token = token.strip()

	if not token:
		raise patchbay.errors.ValidationError(
			f"Empty operand in disabled expression {source!r}",
			control=control,
			rule="disabled_expression"
		)

	if token == "true":
		return Literal(True)

	if token == "false":
		return Literal(False)

	if token.startswith("not "):
		return Not(_parse_operand(token[4:], source, control))

	if " is not " in token:
		name, value = token.split(" is not ", 1)
		return Equals(_operand_name(name, source, control), _unquote(value), negate=True)

	if " is " in token:
		name, value = token.split(" is ", 1)
		return Equals(_operand_name(name, source, control), _unquote(value))

	return Truthy(_operand_name(token, source, control))


def parse (source: typing.Union[str, bool], control: typing.Optional[str] = None) -> Expression:

	"""
	Parse a disabled expression.

	Booleans become literals.  Raises :class:`patchbay.errors.ValidationError`
	naming *control* when the text is malformed.
	"""

	if isinstance(source, bool):
		return Literal(source)

	alternatives: typing.List[Expression] = []

	for clause in source.split(" or "):

		terms = tuple(_parse_operand(term, source, control) for term in clause.split(" and "))
		alternatives.append(terms[0] if len(terms) == 1 else And(terms))

	if len(alternatives) == 1:
		return alternatives[0]

	return Or(tuple(alternatives))


# ─── Parameter references ─────────────────────────────────────────────────────


def parse_param (raw: typing.Any) -> typing.Optional[patchbay.config.Param]:

	"""
	Interpret a document value as a modulatable parameter.

	Numbers are returned as floats and ``"$name"`` strings as a
	:class:`patchbay.config.ModRef`.  Anything else returns None so the
	caller can report it.
	"""

	if isinstance(raw, bool):
		return None

	if isinstance(raw, (int, float)):
		return float(raw)

	if isinstance(raw, str) and raw.startswith("$") and len(raw) > 1:
		return patchbay.config.ModRef(raw[1:])

	return None


def resolve (param: patchbay.config.Param, lookup: typing.Callable[[str], float]) -> float:

	"""Return *param*'s value now, reading references through *lookup*."""

	if isinstance(param, patchbay.config.ModRef):
		return lookup(param.name)

	return param


def resolved (control: patchbay.config.Control, lookup: typing.Callable[[str], float]) -> patchbay.config.Control:

	"""
	Return a copy of *control* with every ``$name`` replaced by its value.

	Breakpoints are resolved too.  Controls without references are
	returned as is.
	"""

	changes: typing.Dict[str, typing.Any] = {}

	for field in dataclasses.fields(control):

		value = getattr(control, field.name)

		if isinstance(value, patchbay.config.ModRef):
			changes[field.name] = lookup(value.name)

		elif field.name == "breakpoints":
			breakpoints = tuple(_resolved_breakpoint(bp, lookup) for bp in value)
			if breakpoints != value:
				changes[field.name] = breakpoints

	if not changes:
		return control

	return dataclasses.replace(control, **changes)


def _resolved_breakpoint (breakpoint: patchbay.config.Breakpoint, lookup: typing.Callable[[str], float]) -> patchbay.config.Breakpoint:

	changes = {
		field.name: lookup(getattr(breakpoint, field.name).name)
		for field in dataclasses.fields(breakpoint)
		if isinstance(getattr(breakpoint, field.name), patchbay.config.ModRef)
	}

	return dataclasses.replace(breakpoint, **changes) if changes else breakpoint
