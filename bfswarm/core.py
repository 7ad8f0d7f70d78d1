"""Swarm of tape-driven entities, each owning its own VM."""

from __future__ import annotations

import logging

import numpy as np

from . import config
from . import tape as _tape
from .phenotype import Behavior, ExecutionResult, Genotype, PATTERN_SIZE, analyze_genotype, derive_behavior, execute
from .vm import ByteCodeVM, ProgramLike, as_program

log = logging.getLogger(__name__)

KINDS = ("organism", "food")
GENOTYPE_EVERY = 30
_DEFAULTS = {
    "organism": {"run_every": 5, "max_steps": 100},
    "food": {"run_every": 10, "max_steps": 50},
}


class Entity:
    """
    An organism or food pellet driven by its tape.

    The VM is only re-run every ``run_every``th update; in between, the last
    result is reused.
    """

    def __init__(self, tape: ProgramLike, kind: str = "organism", run_every: int | None = None, max_steps: int | None = None):
        if kind not in KINDS:
            raise ValueError(f"unknown entity kind {kind!r}")
        self.kind = kind
        self._run_every = run_every
        self._max_steps = max_steps
        self.apply_config(config.load_config())

        self.vm = ByteCodeVM()
        self.execution_counter = 0
        self.last_result = ExecutionResult.empty(self.pattern_size)
        self.behavior = Behavior()
        self.genotype: Genotype | None = None
        self.tape = tape

    def apply_config(self, cfg: dict):
        """Take throttle and budget from ``cfg`` unless given explicitly."""
        kind_cfg = cfg.get(self.kind, {})
        defaults = _DEFAULTS[self.kind]
        run_every = self._run_every if self._run_every is not None else kind_cfg.get("run_every", defaults["run_every"])
        self.run_every = max(1, run_every)
        self.max_steps = self._max_steps if self._max_steps is not None else kind_cfg.get("max_steps", defaults["max_steps"])
        self.pattern_size = cfg.get("vm", {}).get("pattern_size", PATTERN_SIZE)

    @property
    def tape(self) -> bytes:
        return self._tape

    @tape.setter
    def tape(self, value: ProgramLike):
        self._tape = as_program(value)
        self.complexity = _tape.complexity(self._tape)
        self.code_changed = True
        if self.kind == "organism":
            self.genotype = analyze_genotype(self._tape)

    def execute(self) -> ExecutionResult:
        """Run the tape now, regardless of the throttle."""
        self.last_result = execute(self.vm, self._tape, self.max_steps, self.pattern_size)
        self.code_changed = False
        if self.kind == "organism":
            self.behavior = derive_behavior(self.last_result)
            if self.execution_counter % GENOTYPE_EVERY == 0:
                self.genotype = analyze_genotype(self._tape)
        return self.last_result

    def update(self) -> bool:
        """Advance one tick. Returns True if the tape was executed this tick."""
        self.execution_counter += 1
        if self.execution_counter % self.run_every:
            return False
        self.execute()
        return True

    def __repr__(self):
        return f"Entity({self.kind}, complexity={self.complexity}, ops={self.last_result.operations})"


class Swarm:
    """
    A population of organisms and food, ticked together.

    Only the tape side of the world lives here: execution, mutation and
    summary statistics. Spatial and ecological rules are left to callers.
    """

    def __init__(self, organisms: int | None = None, food: int | None = None, mutation_rate: float | None = None, seed: int | None = None):
        cfg = config.load_config()
        swarm_cfg = cfg.get("swarm", {})
        org_cfg = cfg.get("organism", {})

        self.rng = np.random.default_rng(seed)
        n_org = organisms if organisms is not None else swarm_cfg.get("organisms", 16)
        n_food = food if food is not None else swarm_cfg.get("food", 8)
        self._mutation_rate = mutation_rate
        self.mutation_rate = mutation_rate if mutation_rate is not None else swarm_cfg.get("mutation_rate", 0.01)
        op_ratio = org_cfg.get("op_ratio", 0.03125)

        self.tick = 0
        self.organisms = [
            Entity(_tape.random_tape(self.rng, op_ratio=op_ratio), "organism")
            for _ in range(n_org)
        ]
        self.food = [Entity(_tape.random_food_tape(self.rng), "food") for _ in range(n_food)]
        log.debug("swarm seeded with %d organisms, %d food", n_org, n_food)

    @property
    def entities(self) -> list[Entity]:
        return self.organisms + self.food

    # --- external API ---------------------------------------------------
    def step(self):
        """Advance every entity by one tick, then mutate organism tapes."""
        self.tick += 1
        cfg = config.load_config()
        if self._mutation_rate is None:
            self.mutation_rate = cfg.get("swarm", {}).get("mutation_rate", 0.01)
        for ent in self.entities:
            ent.apply_config(cfg)
            ent.update()
        if self.mutation_rate <= 0 or not self.organisms:
            return
        hits = self.rng.random(len(self.organisms)) < self.mutation_rate
        for org, hit in zip(self.organisms, hits):
            if hit:
                org.tape = _tape.mutate_tape(org.tape, self.rng)

    def replicate(self, parent: Entity) -> Entity:
        """Add an organism whose tape is a noisy copy of ``parent``'s."""
        child = Entity(_tape.replicate_tape(parent.tape, self.rng), "organism")
        self.organisms.append(child)
        return child

    def stats(self) -> dict:
        orgs = self.organisms
        return {
            "tick": self.tick,
            "organisms": len(orgs),
            "food": len(self.food),
            "mean_operations": float(np.mean([o.last_result.operations for o in orgs])) if orgs else 0.0,
            "mean_complexity": float(np.mean([o.complexity for o in orgs])) if orgs else 0.0,
            "output_bytes": sum(len(e.last_result.output) for e in self.entities),
        }

    # iterable convenience
    def __iter__(self):
        return self

    def __next__(self):
        self.step()
        return self.stats()


# shorthand
def step(swarm: "Swarm"):
    """Functional-style step function."""
    swarm.step()
