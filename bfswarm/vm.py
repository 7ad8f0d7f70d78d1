"""Byte-code VM – a bounded Brainfuck-style interpreter over a circular tape."""

from __future__ import annotations

import collections
import enum
import logging
import typing as _t

import numpy as np

log = logging.getLogger(__name__)

MEMORY_SIZE = 30000
DEFAULT_MAX_STEPS = 1000

ProgramLike = _t.Union[bytes, bytearray, str, _t.Iterable[int]]


class Opcode(enum.IntEnum):
    """The eight recognised instruction bytes."""

    RIGHT = ord(">")
    LEFT = ord("<")
    INC = ord("+")
    DEC = ord("-")
    OUT = ord(".")
    IN = ord(",")
    OPEN = ord("[")
    CLOSE = ord("]")


class VMState(enum.Enum):
    IDLE = "idle"
    LOADED = "loaded"
    RUNNING = "running"
    HALTED = "halted"


def as_program(program: ProgramLike) -> bytes:
    """Coerce a tape into immutable bytes."""
    if isinstance(program, bytes):
        return program
    if isinstance(program, bytearray):
        return bytes(program)
    if isinstance(program, str):
        try:
            return program.encode("latin-1")
        except UnicodeEncodeError as exc:
            raise ValueError(f"program characters must be in range 0-255: {exc}") from None
    if isinstance(program, int):
        raise TypeError("program must be a byte sequence, not int")
    if isinstance(program, np.ndarray):
        arr = np.asarray(program).ravel()
        if arr.size and not np.issubdtype(arr.dtype, np.integer):
            raise TypeError(f"program array must hold integers, not {arr.dtype}")
        if arr.size and (arr.min() < 0 or arr.max() > 255):
            raise ValueError("program bytes must be in range 0-255")
        return arr.astype(np.uint8).tobytes()
    try:
        # list() first so buffer objects are read by value, not by raw memory
        return bytes(list(program))
    except TypeError:
        raise TypeError(f"unsupported program type: {type(program).__name__}") from None


def build_bracket_pairs(program: bytes) -> dict[int, int]:
    """
    Pair up brackets in a single left-to-right scan.

    The table maps every ``[`` to its ``]`` and back. A ``]`` with no open
    ``[`` stops the scan, so anything after it stays unpaired.
    """
    pairs: dict[int, int] = {}
    stack: list[int] = []
    for i, byte in enumerate(program):
        if byte == Opcode.OPEN:
            stack.append(i)
        elif byte == Opcode.CLOSE:
            if not stack:
                log.debug("stray ']' at %d, bracket scan stopped", i)
                return pairs
            start = stack.pop()
            pairs[start] = i
            pairs[i] = start
    return pairs


class ByteCodeVM:
    """
    A resettable interpreter owning its own memory tape.

    Typical use is ``reset()`` -> ``load(tape)`` -> ``run(max_steps)``, after
    which the caller reads the returned operation count, ``memory`` and
    ``output``. No state is shared between instances.
    """

    def __init__(self, memory_size: int = MEMORY_SIZE):
        if memory_size <= 0:
            raise ValueError("memory_size must be positive")
        self.memory = np.zeros(memory_size, np.uint8)
        self.data_pointer = 0
        self.code_pointer = 0
        self.operation_count = 0
        self.output: list[int] = []
        self.input: collections.deque[int] = collections.deque()
        self.program = b""
        self.bracket_pairs: dict[int, int] = {}
        self.state = VMState.IDLE

    # --- lifecycle -----------------------------------------------------
    def reset(self):
        """Zero memory, pointers and counters. Program and input are kept."""
        self.memory.fill(0)
        self.data_pointer = 0
        self.code_pointer = 0
        self.operation_count = 0
        self.output = []
        self.state = VMState.IDLE

    def load(self, program: ProgramLike):
        """Install a program and rebuild its bracket table."""
        self.program = as_program(program)
        self.bracket_pairs = build_bracket_pairs(self.program)
        self.state = VMState.LOADED

    def feed(self, values: ProgramLike):
        """Queue bytes for the input instruction."""
        self.input.extend(as_program(values))

    @property
    def halted(self) -> bool:
        return self.code_pointer >= len(self.program)

    # --- execution -----------------------------------------------------
    def step(self) -> bool:
        """Execute one instruction. Returns False if already past the end."""
        program = self.program
        if self.code_pointer >= len(program):
            self.state = VMState.HALTED
            return False
        command = program[self.code_pointer]
        self.operation_count += 1
        self.state = VMState.RUNNING
        mem = self.memory
        dp = self.data_pointer

        if command == Opcode.RIGHT:
            self.data_pointer = (dp + 1) % len(mem)
        elif command == Opcode.LEFT:
            self.data_pointer = (dp - 1 + len(mem)) % len(mem)
        elif command == Opcode.INC:
            mem[dp] = (int(mem[dp]) + 1) & 0xFF
        elif command == Opcode.DEC:
            mem[dp] = (int(mem[dp]) - 1) & 0xFF
        elif command == Opcode.OUT:
            self.output.append(int(mem[dp]))
        elif command == Opcode.IN:
            if self.input:
                mem[dp] = self.input.popleft()
        elif command == Opcode.OPEN:
            if mem[dp] == 0:
                self.code_pointer = self.bracket_pairs.get(self.code_pointer, len(program))
        elif command == Opcode.CLOSE:
            if mem[dp] != 0:
                # unpaired ']' restarts rather than halting
                self.code_pointer = self.bracket_pairs.get(self.code_pointer, 0)

        self.code_pointer += 1
        if self.code_pointer >= len(program):
            self.state = VMState.HALTED
        return True

    def run(self, max_steps: int = DEFAULT_MAX_STEPS) -> int:
        """
        Execute at most ``max_steps`` instructions.

        Only the operation counter is cleared; memory and pointers carry over
        from whatever ran before. Returns the number of instructions executed.
        """
        self.operation_count = 0
        steps = 0
        limit = max_steps * 10
        while self.code_pointer < len(self.program) and steps < max_steps:
            self.step()
            steps += 1
            if self.operation_count > limit:
                log.warning(
                    "operation count %d exceeded %d after %d steps",
                    self.operation_count, limit, steps,
                )
                break
        self.state = VMState.HALTED
        return self.operation_count

    # --- snapshots -----------------------------------------------------
    def memory_pattern(self, size: int = 8) -> tuple[int, ...]:
        """First ``size`` memory cells as plain ints."""
        return tuple(int(v) for v in self.memory[:size])

    def memory_sum(self) -> int:
        return int(self.memory.sum(dtype=np.uint64))
