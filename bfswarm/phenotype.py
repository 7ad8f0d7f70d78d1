"""From an executed tape to behaviour: execution snapshots, genotype and behaviour traits."""

from __future__ import annotations

import collections
import dataclasses
import math

from . import tape as _tape
from .vm import ByteCodeVM, ProgramLike

PATTERN_SIZE = 8


def remap(value: float, lo: float, hi: float, out_lo: float, out_hi: float) -> float:
    """Linearly map ``value`` from [lo, hi] onto [out_lo, out_hi] (unclamped)."""
    if hi == lo:
        return out_lo
    return out_lo + (value - lo) * (out_hi - out_lo) / (hi - lo)


def clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


@dataclasses.dataclass(frozen=True)
class ExecutionResult:
    """What a caller reads back after one bounded run."""

    operations: int
    memory_sum: int
    memory_pattern: tuple[int, ...]
    output: tuple[int, ...]

    @classmethod
    def empty(cls, pattern_size: int = PATTERN_SIZE) -> "ExecutionResult":
        return cls(0, 0, (0,) * pattern_size, ())

    @classmethod
    def from_vm(cls, vm: ByteCodeVM, operations: int, pattern_size: int = PATTERN_SIZE) -> "ExecutionResult":
        return cls(
            operations=operations,
            memory_sum=vm.memory_sum(),
            memory_pattern=vm.memory_pattern(pattern_size),
            output=tuple(vm.output),
        )


def execute(vm: ByteCodeVM, tape: ProgramLike, max_steps: int, pattern_size: int = PATTERN_SIZE) -> ExecutionResult:
    """Clean run of ``tape`` on ``vm``: reset, load, run, snapshot."""
    vm.reset()
    vm.load(tape)
    operations = vm.run(max_steps)
    return ExecutionResult.from_vm(vm, operations, pattern_size)


@dataclasses.dataclass
class Behavior:
    preferred_direction: float = 0.0
    activity_level: float = 0.1
    social_tendency: float = 0.0
    orbital_tendency: float = 0.0
    wander_tendency: float = 0.0
    aggressiveness: float = 0.0
    speed_preference: float = 0.3
    output_influence: float = 0.0


def derive_behavior(result: ExecutionResult) -> Behavior:
    """
    Map an execution result onto behaviour traits.

    Memory cells 0-1 give the heading, 2-5 the movement style; the operation
    count sets the activity level and the memory sum the social tendency.
    """
    p = list(result.memory_pattern) + [0] * max(PATTERN_SIZE - len(result.memory_pattern), 0)
    behavior = Behavior()
    dir_x = remap(p[0] % 256, 0, 255, -1, 1)
    dir_y = remap(p[1] % 256, 0, 255, -1, 1)
    behavior.preferred_direction = math.atan2(dir_y, dir_x)
    behavior.activity_level = remap(clamp(result.operations, 0, 100), 0, 100, 0.1, 1.0)
    behavior.social_tendency = remap(result.memory_sum % 1000, 0, 1000, 0, 1)
    behavior.orbital_tendency = remap(p[2] % 256, 0, 255, 0, 1)
    behavior.wander_tendency = remap(p[3] % 256, 0, 255, 0, 1)
    behavior.aggressiveness = remap(p[4] % 256, 0, 255, 0, 1)
    behavior.speed_preference = remap(p[5] % 256, 0, 255, 0.3, 1.5)
    if result.output:
        behavior.output_influence = remap(sum(result.output) % 256, 0, 255, -0.2, 0.2)
    return behavior


# --- genotype ----------------------------------------------------------

@dataclasses.dataclass(frozen=True)
class Genotype:
    movement_pattern: float = 0.5
    operation_pattern: float = 0.5
    loop_pattern: float = 0.0
    io_pattern: float = 0.5
    structure_pattern: float = 0.5
    rhythm_pattern: float = 0.5
    complexity_pattern: float = 0.0
    signature: float = 0.0


# tapes without a single opcode have no I/O bias at all
INERT_GENOTYPE = Genotype(io_pattern=0.0)


def _structure_pattern(code: str) -> float:
    score = 0.0
    opens, closes = code.count("["), code.count("]")
    if opens > 0 and opens == closes:
        score += 0.3
    # trigrams that occur again later in the code
    repeats = sum(1 for i in range(len(code) - 2) if code.find(code[i:i + 3], i + 1) != -1)
    score += min(repeats / len(code), 0.7)
    return clamp(score, 0, 1)


def _rhythm_pattern(code: str) -> float:
    if len(code) < 3:
        return 0.5
    grams: collections.Counter[str] = collections.Counter()
    for n in (2, 3):
        grams.update(code[i:i + n] for i in range(len(code) - n + 1))
    repeated = sum(c for c in grams.values() if c > 1)
    return clamp(remap(repeated, 0, len(code), 0, 1), 0, 1)


def code_signature(code: str) -> float:
    """Stable 0..1 fingerprint from a 32-bit string hash."""
    h = 0
    for ch in code:
        h = (((h << 5) - h) + ord(ch)) & 0xFFFFFFFF
    if h >= 1 << 31:
        h -= 1 << 32
    return (abs(h) % 10000) / 10000


def analyze_genotype(tape: ProgramLike) -> Genotype:
    """Summarise the opcode mix of a tape as a handful of 0..1 patterns."""
    code = _tape.valid_code(tape).decode("ascii")
    if not code:
        return INERT_GENOTYPE
    total = len(code)
    counts = collections.Counter(code)
    io = counts["."] + counts[","]
    return Genotype(
        movement_pattern=remap(counts[">"] - counts["<"], -total, total, 0, 1),
        operation_pattern=remap(counts["+"] - counts["-"], -total, total, 0, 1),
        loop_pattern=remap(counts["["] + counts["]"], 0, total, 0, 1),
        io_pattern=remap(counts["."] - counts[","], -io, io, 0, 1) if io else 0.5,
        structure_pattern=_structure_pattern(code),
        rhythm_pattern=_rhythm_pattern(code),
        complexity_pattern=remap(total, 0, 100, 0, 1),
        signature=code_signature(code),
    )
