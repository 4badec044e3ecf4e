"""The per-frame evaluation hub.

A :class:`Hub` owns the live control document and answers ``get(name)``
for the rendering layer.  A frame looks like:

    hub.tick(beat)
    radius = hub.get("radius")
    if hub.get_bool("show_grid"):
        ...

``tick`` starts a new frame.  The first ``get`` of a name in a frame
evaluates it and everything it depends on in dependency order; later reads
in the same frame are served from the cache, so every control is evaluated
at most once per frame.

Precedence for a readable control's value, strongest first:

1. ``bypass`` from the document.
2. The active transition's interpolated value.
3. A live value from the transport feed for a UI or transport control,
   unless a recall or the panel has taken over the control since the
   device last sent one.
4. The control's own value (UI state, animation, or transport default).

Any ``mod`` routes on the control are applied after steps 2 to 4.

``reload`` parses and validates on the calling thread (usually the file
watcher) and leaves the result in a pending slot.  The next hub call on
the render thread carries values and state over into a new runtime and
swaps it in with one assignment, so the live runtime is only ever touched
by the thread that evaluates it.
"""

import collections
import logging
import queue
import random
import threading
import typing

import patchbay.animation
import patchbay.config
import patchbay.dependency_graph
import patchbay.easing
import patchbay.effects
import patchbay.errors
import patchbay.event_emitter
import patchbay.expression
import patchbay.snapshots
import patchbay.transport
import patchbay.validation


logger = logging.getLogger(__name__)

UIValue = typing.Union[float, bool, str]


class _Runtime:

	"""
	Everything derived from one document.

	``values`` holds UI state and the held values of transport controls.
	``cache`` and ``base`` are per-frame: the final value and the value
	before routes.
	"""

	def __init__ (
		self,
		config: patchbay.config.ConfigSet,
		graph: patchbay.dependency_graph.DependencyGraph,
		values: typing.Dict[str, UIValue],
		state: patchbay.animation.StateArena,
		sequence: typing.Optional[patchbay.snapshots.SequenceRunner]
	) -> None:

		self.config = config
		self.graph = graph
		self.values = values
		self.state = state
		self.sequence = sequence
		self.cache: typing.Dict[str, float] = {}
		self.base: typing.Dict[str, float] = {}
		self.routes: typing.Dict[str, typing.List[patchbay.config.Mod]] = {
			name: config.routes_for(name) for name in config.names()
		}

	def clear (self) -> None:
		self.cache.clear()
		self.base.clear()


def _initial_value (control: patchbay.config.Control) -> typing.Optional[UIValue]:

	if isinstance(control, (patchbay.config.Slider, patchbay.config.Checkbox, patchbay.config.Select)):
		return control.default

	if isinstance(control, (patchbay.config.Midi, patchbay.config.Osc, patchbay.config.Audio)):
		return control.default

	return None


def _carried_value (old: patchbay.config.Control, new: patchbay.config.Control, value: UIValue) -> UIValue:

	"""Keep *value* across a reload, adjusted to the new declaration."""

	if isinstance(new, patchbay.config.Select) and value not in new.options:
		return new.default

	if isinstance(new, patchbay.config.Slider):
		low, high = patchbay.effects.safe_range(*new.range)
		return patchbay.effects.clamp(typing.cast(float, value), low, high)

	return value


class Hub:

	"""
	Evaluates a control document once per frame.

	Parameters:
		document: Optional YAML text to load immediately.
		feed: The transport table shared with MIDI/OSC/audio listeners.
			A private one is created when omitted.
		transition_beats: Default duration of :meth:`recall` and
			:meth:`randomize` transitions.
		stage_window: How far past a sequence stage (in beats) the first
			frame may be and still fire it.
		seed: Seed for :meth:`randomize`, for reproducible tests.

	Events (see :attr:`events`): ``populated`` after the first successful
	load, ``reloaded`` and ``reload_failed``, ``snapshot_stored``,
	``snapshot_recalled``, ``snapshot_deleted`` and ``transition_ended``.
	"""

	def __init__ (
		self,
		document: typing.Optional[str] = None,
		feed: typing.Optional[patchbay.transport.TransportFeed] = None,
		transition_beats: float = 4.0,
		stage_window: float = 0.0625,
		seed: typing.Optional[int] = None
	) -> None:

		self.feed = feed if feed is not None else patchbay.transport.TransportFeed()
		self.events = patchbay.event_emitter.EventEmitter()
		self.transition_beats = transition_beats
		self.stage_window = stage_window

		empty = patchbay.config.ConfigSet()
		self._runtime = _Runtime(empty, patchbay.dependency_graph.DependencyGraph.build(empty), {}, patchbay.animation.StateArena(), None)
		self._populated = False

		self._reload_lock = threading.Lock()
		self._generation = 0
		self._pending: typing.Optional[typing.Tuple[patchbay.config.ConfigSet, patchbay.dependency_graph.DependencyGraph]] = None

		self._commands: "queue.SimpleQueue[typing.Tuple[typing.Callable[..., typing.Any], typing.Tuple[typing.Any, ...]]]" = queue.SimpleQueue()

		self._beat = 0.0
		self._rng = random.Random(seed)
		self._snapshots = patchbay.snapshots.SnapshotStore()
		self._transition: typing.Optional[patchbay.snapshots.Transition] = None
		self._holds: typing.Dict[str, int] = {}

		self._evaluations: typing.Counter[str] = collections.Counter()
		self._warned: typing.Set[str] = set()

		if document is not None:
			self.reload(document)


	# ─── Document ─────────────────────────────────────────────────────────────

	@property
	def config (self) -> patchbay.config.ConfigSet:

		"""The newest accepted document, including one not yet swapped in."""

		pending = self._pending
		return pending[0] if pending is not None else self._runtime.config

	@property
	def graph (self) -> patchbay.dependency_graph.DependencyGraph:

		pending = self._pending
		return pending[1] if pending is not None else self._runtime.graph

	def _live (self) -> _Runtime:

		"""The runtime to evaluate, swapping in a pending document first."""

		if self._pending is not None:

			with self._reload_lock:
				pending, self._pending = self._pending, None

			if pending is not None:
				self._runtime = self._rebuild(pending[0], pending[1], self._runtime)

		return self._runtime

	def reload (self, document: str) -> None:

		"""
		Parse and validate a new document and queue it for the render thread.

		Raises :class:`patchbay.errors.ValidationError` (or its
		:class:`patchbay.errors.CycleError` subclass) and leaves the live
		document untouched on failure.  The accepted document is swapped in
		by the next hub call, which carries over UI values and state cells
		of controls whose name and kind are unchanged.  If a newer reload
		starts while this one is building, this one is discarded.
		"""

		with self._reload_lock:
			self._generation += 1
			ticket = self._generation

		try:
			config = patchbay.validation.parse_and_validate(document)
			graph = patchbay.dependency_graph.DependencyGraph.build(config)

		except patchbay.errors.ValidationError as e:
			logger.error(f"Rejected control document: {e}")
			self.events.emit("reload_failed", e)
			raise

		with self._reload_lock:

			if ticket != self._generation:
				logger.info("Discarding reload superseded by a newer document")
				return

			self._pending = (config, graph)

		logger.info(f"Loaded {len(config)} controls")
		self.events.emit("reloaded", config)

		if not self._populated:
			self._populated = True
			self.events.emit("populated")

	def try_reload (self, document: str) -> typing.Optional[patchbay.errors.ValidationError]:

		"""Like :meth:`reload` but returns the error instead of raising it."""

		try:
			self.reload(document)
		except patchbay.errors.ValidationError as e:
			return e

		return None

	def _rebuild (
		self,
		config: patchbay.config.ConfigSet,
		graph: patchbay.dependency_graph.DependencyGraph,
		old: _Runtime
	) -> _Runtime:

		values: typing.Dict[str, UIValue] = {}
		old_values = dict(old.values)

		for control in config:

			initial = _initial_value(control)
			if initial is None:
				continue

			previous = old.config.get(control.name)

			if previous is not None and type(previous) is type(control) and control.name in old_values:
				values[control.name] = _carried_value(previous, control, old_values[control.name])
			else:
				values[control.name] = initial

		stems = {self._stem(c) for c in config if isinstance(c, (patchbay.config.RandomSlewed, patchbay.config.RoundRobin))}

		def live (key: patchbay.animation.StateKey) -> bool:

			if key[0] == "slew":
				return key[1] in stems

			control = config.get(key[1])
			previous = old.config.get(key[1])

			return control is not None and previous is not None and type(control) is type(previous)

		sequence = None
		if config.snapshot_sequence is not None:
			sequence = patchbay.snapshots.SequenceRunner(config.snapshot_sequence, self.stage_window)

		return _Runtime(config, graph, values, old.state.retain(live), sequence)


	# ─── Frame ────────────────────────────────────────────────────────────────

	@property
	def beat (self) -> float:
		return self._beat

	def tick (self, current_beat: float) -> None:

		"""
		Start a new frame at *current_beat*.

		Clears the frame cache, runs queued commands, finishes or drops the
		active transition and fires due snapshot sequence stages.  Nothing
		is evaluated until the next :meth:`get`.
		"""

		runtime = self._live()
		runtime.clear()
		self._beat = current_beat

		self._drain_commands()

		transition = self._transition

		if transition is not None and current_beat < transition.start_beat:
			# The clock moved backwards (transport restart).
			logger.debug("Dropping transition after the clock moved backwards")
			self._transition = None
			if runtime.sequence is not None:
				runtime.sequence.reset()

		elif transition is not None and transition.complete(current_beat):
			self._transition = None
			for name, (_, to) in transition.values.items():
				self._commit(runtime, name, to)
			runtime.clear()
			self.events.emit("transition_ended")

		self._run_sequence(runtime)

	def _run_sequence (self, runtime: _Runtime) -> None:

		runner = runtime.sequence

		if runner is None:
			return

		disabled = runner.sequence.disabled
		if disabled is not None and disabled.evaluate(self):
			runner.reset()
			return

		stage = runner.advance(self._beat)

		if stage is None:
			return

		try:
			self.recall(stage)
		except patchbay.errors.SnapshotError as e:
			logger.warning(f"snapshot_sequence stage {stage} failed: {e}")

	def post (self, command: typing.Callable[..., typing.Any], *args: typing.Any) -> None:

		"""Queue ``command(*args)`` from any thread; it runs at the start of the next :meth:`tick`."""

		self._commands.put((command, args))

	def _drain_commands (self) -> None:

		while True:

			try:
				command, args = self._commands.get_nowait()
			except queue.Empty:
				return

			try:
				command(*args)
			except patchbay.errors.PatchbayError as e:
				logger.warning(f"Queued command {getattr(command, '__name__', command)} failed: {e}")


	# ─── Reading ──────────────────────────────────────────────────────────────

	def _warn_once (self, name: str, message: str) -> None:

		if name not in self._warned:
			self._warned.add(name)
			logger.warning(message)

	def _readable (self, runtime: _Runtime, name: str) -> typing.Optional[patchbay.config.Control]:

		control = runtime.config.get(runtime.config.resolve(name))

		if control is None:
			self._warn_once(name, f"No control named {name!r}")
			return None

		if not control.readable:
			self._warn_once(name, f"{name!r} is a {control.kind} control and has no value")
			return None

		return control

	def get (self, name: str) -> float:

		"""
		The value of *name* (or its ``var`` alias) this frame.

		Unknown and unreadable names log a warning once and read as 0.0.
		"""

		runtime = self._live()
		control = self._readable(runtime, name)

		if control is None:
			return 0.0

		return self._value(runtime, control.name)

	def get_bool (self, name: str) -> bool:

		"""A checkbox's state; other controls are true when non-zero."""

		runtime = self._live()
		control = self._readable(runtime, name)

		if control is None:
			return False

		return self._value(runtime, control.name) != 0.0

	def get_string (self, name: str) -> str:

		"""A select's current option; other controls read as ``""``."""

		runtime = self._live()
		control = self._readable(runtime, name)

		if control is None:
			return ""

		if not isinstance(control, patchbay.config.Select):
			self._warn_once(f"{name}:string", f"{name!r} is a {control.kind} control and has no string value")
			return ""

		return self._option(control, self._value(runtime, control.name))

	@staticmethod
	def _option (control: patchbay.config.Select, index: float) -> str:
		return control.options[min(len(control.options) - 1, max(0, int(index)))]

	def select (self, flag: str, on: str, off: str) -> float:

		"""``get(on)`` when *flag* is true, else ``get(off)``."""

		return self.get(on) if self.get_bool(flag) else self.get(off)

	def var_values (self) -> typing.Dict[str, float]:

		"""Every ``var`` alias with its current value, for binding uniforms."""

		return {var: self.get(name) for var, name in self._live().config.aliases.items()}

	def bypassed (self) -> typing.Dict[str, float]:
		return {c.name: c.bypass for c in self._live().config if c.bypass is not None}

	def disabled (self, name: str) -> bool:

		"""The advisory ``disabled`` flag of a UI control; it never affects :meth:`get`."""

		control = self._live().config.get(name)
		expression = getattr(control, "disabled", None)

		return expression is not None and expression.evaluate(self)

	def controls (self) -> typing.List[patchbay.config.Control]:

		"""UI controls and separators in declaration order."""

		return self._live().config.of_category(patchbay.config.UI, patchbay.config.LAYOUT)

	def evaluation_count (self, name: str) -> int:

		"""How many times *name* has been evaluated since the hub was created."""

		return self._evaluations[name]


	# ─── Evaluation ───────────────────────────────────────────────────────────

	def _value (self, runtime: _Runtime, name: str) -> float:

		if name not in runtime.cache:
			for step in runtime.graph.plan(name):
				if step not in runtime.cache and runtime.config[step].readable:
					runtime.cache[step] = self._evaluate(runtime, runtime.config[step])

		return runtime.cache[name]

	def _lookup (self, runtime: _Runtime) -> typing.Callable[[str], float]:
		return lambda name: self._value(runtime, name)

	def _evaluate (self, runtime: _Runtime, control: patchbay.config.Control) -> float:

		self._evaluations[control.name] += 1

		if control.bypass is not None:
			return control.bypass

		value: typing.Optional[float] = None

		if self._transition is not None:
			value = self._transition.value(control.name, self._beat)

		if value is None:
			value = self._override(runtime, control)

		if value is None:
			value = self._compute(runtime, control)

		runtime.base[control.name] = value

		for route in runtime.routes[control.name]:
			for modulator in route.modulators:
				value = self._modulate(runtime, value, runtime.config[modulator])

		return value

	def _modulate (self, runtime: _Runtime, value: float, modulator: patchbay.config.Control) -> float:

		if isinstance(modulator, patchbay.config.Effect):

			effect = patchbay.expression.resolved(modulator, self._lookup(runtime))
			second = 0.0

			if isinstance(effect, patchbay.config.RingModulator):
				second = self._value(runtime, effect.modulator)

			return patchbay.effects.apply(effect, value, runtime.state, second)

		# Decision path: a plain control used as a modulator scales the value.
		return value * self._value(runtime, modulator.name)

	def _stem (self, control: patchbay.config.Control) -> int:

		stem = getattr(control, "stem", None)
		return stem if stem is not None else patchbay.animation.stable_stem(control.name)

	def _compute (self, runtime: _Runtime, control: patchbay.config.Control) -> float:

		name = control.name

		if isinstance(control, patchbay.config.Slider):
			return float(runtime.values[name])

		if isinstance(control, patchbay.config.Checkbox):
			return 1.0 if runtime.values[name] else 0.0

		if isinstance(control, patchbay.config.Select):
			return float(control.options.index(typing.cast(str, runtime.values[name])))

		if control.category == patchbay.config.TRANSPORT:
			return float(runtime.values[name])

		declared = control
		control = patchbay.expression.resolved(control, self._lookup(runtime))
		beat = self._beat

		if isinstance(control, patchbay.config.Ramp):
			return patchbay.animation.ramp(beat, control.beats, control.range, control.phase)

		if isinstance(control, patchbay.config.Triangle):
			return patchbay.animation.triangle(beat, control.beats, control.range, control.phase)

		if isinstance(control, patchbay.config.Random):
			return patchbay.animation.random(beat, control.beats, control.range, self._stem(control), control.delay, control.bias)

		if isinstance(control, patchbay.config.RandomSlewed):
			return patchbay.animation.random_slewed(
				beat,
				control.beats,
				control.range,
				self._stem(control),
				runtime.state,
				control.slew,
				control.delay,
				control.bias,
				key=patchbay.animation.slew_key(self._stem(control), typing.cast(patchbay.config.RandomSlewed, declared).delay),
			)

		if isinstance(control, patchbay.config.RoundRobin):
			return patchbay.animation.round_robin(beat, control.values, control.beats, self._stem(control), runtime.state, control.slew)

		if isinstance(control, patchbay.config.Automate):
			return patchbay.animation.automate(beat, control.breakpoints, control.mode)

		raise TypeError(f"Cannot evaluate {control.kind} control {name!r}")

	def _override (self, runtime: _Runtime, control: patchbay.config.Control) -> typing.Optional[float]:

		"""
		The feed's value for a UI or transport control, or ``None`` when the
		feed has nothing newer than the control's hold.

		Feed values are normalised: sliders and transport controls map them
		into their range, checkboxes are on from 0.5, and selects pick the
		option at that fraction of the list.
		"""

		if control.category not in (patchbay.config.UI, patchbay.config.TRANSPORT):
			return None

		name = control.name
		entry = self.feed.entry(name)

		if entry is None or entry[1] <= self._holds.get(name, 0):
			return None

		raw = entry[0]

		if isinstance(control, patchbay.config.Checkbox):
			return 1.0 if raw >= 0.5 else 0.0

		if isinstance(control, patchbay.config.Select):
			return float(min(len(control.options) - 1, max(0, int(raw * len(control.options)))))

		if isinstance(control, patchbay.config.Audio):
			key = ("audio", name)
			previous = runtime.state.get(key)
			if previous is not None:
				raw = patchbay.effects.slew(previous, raw, control.slew[0], control.slew[1])
			runtime.state.set(key, raw)

		low, high = typing.cast(patchbay.config.Range, getattr(control, "range"))
		return patchbay.easing.map_value(raw, 0.0, 1.0, low, high)


	# ─── Writing ──────────────────────────────────────────────────────────────

	def set (self, name: str, value: UIValue) -> None:

		"""
		Set a UI control's value, as the control panel does.

		Raises ``KeyError`` for names that are not UI controls and
		``ValueError`` for a value of the wrong type or an unknown option.
		"""

		runtime = self._live()
		control = runtime.config.get(runtime.config.resolve(name))

		if control is None or control.category != patchbay.config.UI:
			raise KeyError(f"No UI control named {name!r}")

		runtime.values[control.name] = self._coerce(control, value)
		self._holds[control.name] = self.feed.sequence
		runtime.clear()

	@staticmethod
	def _coerce (control: patchbay.config.Control, value: UIValue) -> UIValue:

		if isinstance(control, patchbay.config.Checkbox):
			if not isinstance(value, bool):
				raise ValueError(f"{control.name!r} expects a boolean, got {value!r}")
			return value

		if isinstance(control, patchbay.config.Select):
			if value not in control.options:
				raise ValueError(f"{value!r} is not an option of {control.name!r}")
			return value

		if isinstance(value, bool) or not isinstance(value, (int, float)):
			raise ValueError(f"{control.name!r} expects a number, got {value!r}")

		return float(value)

	def _commit (self, runtime: _Runtime, name: str, value: UIValue) -> None:

		"""Make *value* the underlying value of a UI or transport control."""

		control = runtime.config.get(name)

		if control is None:
			return

		if control.category == patchbay.config.UI:
			try:
				runtime.values[name] = self._coerce(control, value)
			except ValueError:
				logger.warning(f"Ignoring snapshot value {value!r} for {name!r}")
				return
			self._holds[name] = self.feed.sequence

		elif control.category == patchbay.config.TRANSPORT and not isinstance(value, (bool, str)):
			runtime.values[name] = float(value)
			self._holds[name] = self.feed.sequence


	# ─── Snapshots ────────────────────────────────────────────────────────────

	def capture (self) -> patchbay.snapshots.Snapshot:

		"""The current resolved value of every UI, transport and animation control."""

		runtime = self._live()
		values: typing.Dict[str, UIValue] = {}

		for control in runtime.config:

			if not control.readable:
				continue

			name = control.name
			self._value(runtime, name)
			base = runtime.base.get(name)

			# Bypassed controls have no base; their underlying value is kept.
			if base is None:
				if name in runtime.values:
					value = runtime.values[name]
					values[name] = value if isinstance(value, (bool, str)) else float(value)
				continue

			if isinstance(control, patchbay.config.Checkbox):
				values[name] = base != 0.0
			elif isinstance(control, patchbay.config.Select):
				values[name] = self._option(control, base)
			else:
				values[name] = base

		return patchbay.snapshots.Snapshot(values)

	def store (self, snapshot_id: str) -> None:

		"""Capture the current state under *snapshot_id*, replacing any previous one."""

		self._snapshots.store(snapshot_id, self.capture())
		logger.info(f"Stored snapshot {snapshot_id}")
		self.events.emit("snapshot_stored", str(snapshot_id))

	def recall (self, snapshot_id: str, duration_beats: typing.Optional[float] = None) -> None:

		"""
		Move to a stored snapshot over *duration_beats* (default
		:attr:`transition_beats`).

		Booleans and strings apply at once; floats interpolate linearly and
		become the controls' own values when the transition completes.
		Animations follow the transition and then resume.  Raises
		:class:`patchbay.errors.SnapshotError` for an unknown id.
		"""

		snapshot = self._snapshots.get(snapshot_id)
		self._begin(snapshot.values, duration_beats)

		logger.info(f"Recalled snapshot {snapshot_id}")
		self.events.emit("snapshot_recalled", str(snapshot_id))

	def delete (self, snapshot_id: str) -> None:

		self._snapshots.delete(snapshot_id)
		self.events.emit("snapshot_deleted", str(snapshot_id))

	def clear (self) -> None:
		self._snapshots.clear()

	def ids (self) -> typing.List[str]:
		return self._snapshots.ids()

	def randomize (self, exclusions: typing.Iterable[str] = (), duration_beats: typing.Optional[float] = None) -> None:

		"""
		Transition every UI control not in *exclusions* to a random value
		drawn from its own range, step or options.
		"""

		excluded = set(exclusions)
		values: typing.Dict[str, UIValue] = {}

		for control in self._live().config.of_category(patchbay.config.UI):

			if control.name in excluded:
				continue

			value = patchbay.snapshots.random_value(control, self._rng)
			if value is not None:
				values[control.name] = value

		self._begin(values, duration_beats)

	def _begin (self, target: typing.Mapping[str, UIValue], duration_beats: typing.Optional[float]) -> None:

		runtime = self._live()
		duration = self.transition_beats if duration_beats is None else duration_beats
		floats: typing.Dict[str, typing.Tuple[float, float]] = {}

		# A superseded transition leaves its controls at their visible value.
		if self._transition is not None:
			for name in self._transition.values:
				self._commit(runtime, name, typing.cast(float, self._transition.value(name, self._beat)))

		for name, value in target.items():

			control = runtime.config.get(name)

			if control is None or not control.readable:
				continue

			if isinstance(value, (bool, str)) or isinstance(control, (patchbay.config.Checkbox, patchbay.config.Select)):
				self._commit(runtime, name, value)
				continue

			if duration <= 0.0:
				self._commit(runtime, name, value)
				continue

			self._value(runtime, name)
			start = runtime.base.get(name, float(value))
			floats[name] = (start, float(value))

		if floats:
			self._transition = patchbay.snapshots.Transition(floats, self._beat, duration)
		else:
			self._transition = None

		runtime.clear()
