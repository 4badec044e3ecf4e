import asyncio
import logging
import os
import typing

import yaml

import patchbay.hub
import patchbay.midi_input
import patchbay.osc
import patchbay.timing
import patchbay.watcher


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


DEFAULTS: typing.Dict[str, typing.Any] = {
	"document": "controls.yaml",
	"bpm": 120.0,
	"fps": 60.0,
	"transition_beats": 4.0,
	"osc": {"receive_port": 9000},
	"midi": {"input_device": None, "hrcc": False},
}


def load_config (config_path: str = "config.yaml") -> typing.Dict[str, typing.Any]:

	"""
	Load runtime settings from a YAML file, falling back to defaults for
	anything missing.
	"""

	settings = {key: (dict(value) if isinstance(value, dict) else value) for key, value in DEFAULTS.items()}

	if not os.path.exists(config_path):
		logger.warning(f"Config file {config_path} not found. Using defaults.")
		return settings

	with open(config_path, "r") as f:
		loaded = yaml.safe_load(f) or {}

	for key, value in loaded.items():
		if isinstance(value, dict) and isinstance(settings.get(key), dict):
			settings[key].update(value)
		else:
			settings[key] = value

	return settings


async def run (settings: typing.Dict[str, typing.Any]) -> None:

	"""
	Run a hub against a document file with MIDI and OSC input and a frame
	loop that logs the ``var`` values once per beat.
	"""

	hub = patchbay.hub.Hub(transition_beats=float(settings["transition_beats"]))

	watcher = patchbay.watcher.FileWatcher(hub, settings["document"])
	watcher.check()
	watcher.start()

	midi = patchbay.midi_input.MidiInput(hub, settings["midi"]["input_device"], bool(settings["midi"]["hrcc"]))
	if settings["midi"]["input_device"] is not None:
		midi.start()

	osc = patchbay.osc.OscInput(hub, receive_port=int(settings["osc"]["receive_port"]))
	await osc.start()

	clock = patchbay.timing.BeatClock(float(settings["bpm"]))
	frame_time = 1.0 / float(settings["fps"])
	last_whole_beat = -1

	try:
		while True:
			beat = clock.beats()
			hub.tick(beat)

			if int(beat) != last_whole_beat:
				last_whole_beat = int(beat)
				logger.info(f"beat {last_whole_beat}: {hub.var_values()}")

			await asyncio.sleep(frame_time)

	finally:
		await osc.stop()
		watcher.stop()
		midi.stop()


def main () -> None:

	"""
	Main entry point for the patchbay application.
	"""

	logger.info("Patchbay starting...")

	try:
		asyncio.run(run(load_config()))
	except KeyboardInterrupt:
		logger.info("Stopping")


if __name__ == "__main__":
	main()
