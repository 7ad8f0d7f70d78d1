"""Tapes as genomes: generation, mutation and replication."""

import numpy as np

from .vm import ProgramLike, as_program

OPCODES = b"><+-.,[]"
MAX_TAPE_LENGTH = 64
MIN_TAPE_LENGTH = 8

_OPCODE_ARRAY = np.frombuffer(OPCODES, dtype=np.uint8)
_IS_OPCODE = np.zeros(256, dtype=bool)
_IS_OPCODE[_OPCODE_ARRAY] = True


def _as_array(tape: ProgramLike) -> np.ndarray:
    return np.frombuffer(as_program(tape), dtype=np.uint8)


def complexity(tape: ProgramLike) -> int:
    """Number of opcode bytes in the tape."""
    return int(_IS_OPCODE[_as_array(tape)].sum())


def valid_code(tape: ProgramLike) -> bytes:
    """The tape with every filler byte removed."""
    arr = _as_array(tape)
    return arr[_IS_OPCODE[arr]].tobytes()


def random_opcodes(rng: np.random.Generator, n: int) -> bytes:
    return rng.choice(_OPCODE_ARRAY, size=n).astype(np.uint8).tobytes()


def random_tape(rng: np.random.Generator, length: int = MAX_TAPE_LENGTH, op_ratio: float = 0.25) -> bytes:
    """
    Build a tape mixing opcodes and arbitrary filler.

    Each position is an opcode with probability ``op_ratio``, otherwise a
    uniformly random byte (which may itself happen to be an opcode).
    """
    filler = rng.integers(0, 256, size=length, dtype=np.uint8)
    ops = rng.choice(_OPCODE_ARRAY, size=length).astype(np.uint8)
    use_op = rng.random(length) < op_ratio
    return np.where(use_op, ops, filler).astype(np.uint8).tobytes()


def random_food_tape(rng: np.random.Generator) -> bytes:
    """A short run of 2-5 opcodes padded with filler to the minimum length."""
    head = random_opcodes(rng, int(rng.integers(2, 6)))
    pad = max(MIN_TAPE_LENGTH - len(head), 0)
    return head + rng.integers(0, 256, size=pad, dtype=np.uint8).tobytes()


def mutate_tape(tape: ProgramLike, rng: np.random.Generator) -> bytes:
    """
    Apply a single point mutation.

    60% of the time a random position becomes a random opcode; otherwise a
    random byte is nudged by -5..5 (mod 256).
    """
    arr = _as_array(tape).copy()
    if arr.size == 0:
        return b""
    pos = int(rng.integers(arr.size))
    if rng.random() < 0.6:
        arr[pos] = rng.choice(_OPCODE_ARRAY)
    else:
        arr[pos] = (int(arr[pos]) + int(rng.integers(-5, 6))) & 0xFF
    return arr.tobytes()


def replicate_tape(tape: ProgramLike, rng: np.random.Generator, p_copy: float = 0.95) -> bytes:
    """
    Copy a tape the way an organism copies itself.

    Opcodes are copied exactly. Filler bytes are copied with probability
    ``p_copy`` and jittered by -2..2 otherwise. The result is padded with
    random opcodes to ``MIN_TAPE_LENGTH`` and cut to ``MAX_TAPE_LENGTH``.
    """
    arr = _as_array(tape).copy().astype(np.int16)
    filler = ~_IS_OPCODE[arr]
    jitter = rng.integers(-2, 3, size=arr.size)
    drift = filler & (rng.random(arr.size) >= p_copy)
    arr[drift] = (arr[drift] + jitter[drift]) & 0xFF
    child = arr.astype(np.uint8).tobytes()
    if len(child) < MIN_TAPE_LENGTH:
        child += random_opcodes(rng, MIN_TAPE_LENGTH - len(child))
    return child[:MAX_TAPE_LENGTH]
