"""
Patchbay - a hot-reloadable control and modulation engine for live visuals.

A YAML document declares named controls: sliders, checkboxes and selects
for a control panel, MIDI/OSC/audio inputs, beat-synchronised animations,
signal effects and the routes that chain them.  Once per rendered frame the
hub evaluates whatever the renderer asks for into plain floats, in
dependency order and at most once each.  Edit the document while the
visuals run and the change is applied on the next frame; a broken edit is
reported and the running document keeps going.

What it does:

- **Controls and references.** Any numeric parameter can read another
  control with ``$name``, so a slider can set an animation's speed and an
  LFO can drive an effect's mix.  Cycles are rejected with the full path.
- **Beat-locked animation.** Ramps, triangles, seeded random values,
  slewed random walks, round-robin sequences and breakpoint automation
  with step, ramp, wave and random segments.
- **Effects and routes.** ``mod`` chains a source through constrain,
  hysteresis, map, math, quantizer, ring modulator, saturator, slew
  limiter and wave folder steps.
- **Snapshots.** Store the current state, recall it with a beat-timed
  transition, randomize the control panel, or schedule recalls with a
  ``snapshot_sequence``.
- **Live input.** MIDI CC (optionally 14-bit) through mido and OSC
  through python-osc write to a thread-safe transport feed.

Minimal example:

    ```python
    import patchbay

    hub = patchbay.Hub('''
    speed:
      type: slider
      range: [1, 16]
      default: 4
    wobble:
      type: triangle
      beats: $speed
      range: [0, 10]
    ''')

    hub.tick(1.0)
    hub.get("wobble")  # 5.0
    ```

Package-level exports: ``Hub``, ``TransportFeed``, ``BeatClock``,
``ValidationError``, ``CycleError``, ``SnapshotError``.
"""

import patchbay.errors
import patchbay.hub
import patchbay.timing
import patchbay.transport


Hub = patchbay.hub.Hub
TransportFeed = patchbay.transport.TransportFeed
BeatClock = patchbay.timing.BeatClock
PatchbayError = patchbay.errors.PatchbayError
ValidationError = patchbay.errors.ValidationError
CycleError = patchbay.errors.CycleError
SnapshotError = patchbay.errors.SnapshotError
