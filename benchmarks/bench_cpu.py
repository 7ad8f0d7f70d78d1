"""Benchmark: one bounded run per entity per frame."""

import time

import numpy as np

from bfswarm.tape import random_tape
from bfswarm.vm import ByteCodeVM


def run_benchmark(entities=200, frames=32, max_steps=100):
    """Runs the benchmark and prints the elapsed time."""
    rng = np.random.default_rng(0)
    tapes = [random_tape(rng) for _ in range(entities)]
    vms = [ByteCodeVM() for _ in range(entities)]
    t0 = time.perf_counter()
    ops = 0
    for _ in range(frames):
        for vm, tape in zip(vms, tapes):
            vm.reset()
            vm.load(tape)
            ops += vm.run(max_steps)
    elapsed = time.perf_counter() - t0
    print(f"Elapsed: {elapsed:.4f}s  ({ops} ops, {ops / elapsed:.0f} ops/s)")


if __name__ == "__main__":
    run_benchmark()
