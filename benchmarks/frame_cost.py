"""Per-frame evaluation cost benchmark.

Loads a control document, runs the hub for a number of frames and reads
every readable control each frame, as a renderer binding all of its
uniforms would.  Reports the time per frame.

Usage:
    python benchmarks/frame_cost.py [--document PATH] [--frames N] [--fps FPS]

Options:
    --document PATH     Control document (default: examples/controls.yaml)
    --frames N          Number of frames to run (default: 6000)
    --fps FPS           Frame rate used to derive beats (default: 60)
"""

import argparse
import logging
import statistics
import time

# Suppress hub logging during benchmark; we want clean output.
logging.basicConfig(level=logging.ERROR)

import patchbay.hub
import patchbay.timing


def _run_benchmark (document: str, frames: int, fps: float) -> list[float]:

	"""Run *frames* frames and return the duration of each (seconds)."""

	hub = patchbay.hub.Hub(document)
	clock = patchbay.timing.FrameClock(bpm=120, fps=fps)
	names = [control.name for control in hub.config if control.readable]
	durations: list[float] = []

	for _ in range(frames):

		start = time.perf_counter()

		hub.tick(clock.advance())
		for name in names:
			hub.get(name)

		durations.append(time.perf_counter() - start)

	return durations


def main () -> None:

	parser = argparse.ArgumentParser(description="Measure hub evaluation time per frame")
	parser.add_argument("--document", default="examples/controls.yaml")
	parser.add_argument("--frames", type=int, default=6000)
	parser.add_argument("--fps", type=float, default=60.0)
	args = parser.parse_args()

	with open(args.document, "r", encoding="utf-8") as f:
		document = f.read()

	durations = _run_benchmark(document, args.frames, args.fps)
	micros = sorted(d * 1_000_000 for d in durations)

	budget = 1_000_000 / args.fps

	print(f"Frames:   {len(micros)}")
	print(f"Mean:     {statistics.mean(micros):8.1f} us")
	print(f"Median:   {statistics.median(micros):8.1f} us")
	print(f"p99:      {micros[int(len(micros) * 0.99) - 1]:8.1f} us")
	print(f"Max:      {micros[-1]:8.1f} us")
	print(f"Budget:   {budget:8.1f} us per frame at {args.fps:g} fps")


if __name__ == "__main__":
	main()
