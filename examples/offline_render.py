import logging
import pathlib

import patchbay
import patchbay.timing

logging.basicConfig(level=logging.INFO)

DOCUMENT = pathlib.Path(__file__).with_name("controls.yaml")
BARS = 8
FPS = 30

hub = patchbay.Hub(DOCUMENT.read_text(), transition_beats=2.0)
clock = patchbay.timing.FrameClock(bpm=124, fps=FPS)

# The document's snapshot_sequence alternates between these two every 16 beats.
hub.store("intro")

hub.set("size", 0.9)
hub.set("palette", "cool")
hub.set("show_grid", False)
hub.store("drop")

hub.events.on("snapshot_recalled", lambda snapshot_id: logging.info(f"Recalled {snapshot_id}"))

for _ in range(int(clock.beats_to_frames(BARS * 4))):

	beat = clock.advance()
	hub.tick(beat)

	# What a renderer would bind as uniforms for this frame.
	uniforms = hub.var_values()
	radius = hub.get("size")
	density = hub.get("grid_density") if hub.get_bool("show_grid") else 0.0

	if clock.frame % FPS == 0:
		logging.info(f"beat {beat:6.2f}  radius {radius:.3f}  grid {density:4.1f}  palette {hub.get_string('palette')}  {uniforms}")
