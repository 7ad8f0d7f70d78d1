"""CLI façade: run a single tape, or tick a whole swarm."""

import argparse
import logging
import pathlib

from . import config
from .core import Swarm
from .phenotype import execute
from .vm import ByteCodeVM


def _cmd_run(args) -> int:
    if args.file:
        try:
            program = pathlib.Path(args.program).read_bytes()
        except OSError as exc:
            print(f"ERROR: cannot read program file: {exc}")
            return 1
    else:
        program = args.program

    vm = ByteCodeVM()
    try:
        # execute() resets first; the input queue survives the reset
        vm.feed(args.input)
        result = execute(vm, program, args.steps, args.pattern)
    except ValueError as exc:
        print(f"ERROR: {exc}")
        return 1

    print(f"operations={result.operations}")
    print(f"memory_sum={result.memory_sum}")
    print(f"memory_pattern={list(result.memory_pattern)}")
    print(f"output={list(result.output)}")
    return 0


def _cmd_swarm(args) -> int:
    swarm = Swarm(organisms=args.organisms, food=args.food, seed=args.seed)
    for t in range(1, args.ticks + 1):
        stats = next(swarm)
        # rudimentary text output every 100 ticks
        if t % 100 == 0:
            print(
                f"t={t}  ops={stats['mean_operations']:.1f}  "
                f"complexity={stats['mean_complexity']:.2f}  out={stats['output_bytes']}"
            )

        # early stop when no organism carries any opcode
        if swarm.organisms and all(o.complexity == 0 for o in swarm.organisms):
            print(f"All organism tapes inert at t={t}")
            break
    return 0


def main(argv=None) -> int:
    """
    CLI façade wrapping the VM and the swarm.
    """
    vm_cfg = config.load_config().get("vm", {})
    p = argparse.ArgumentParser(prog="bfswarm")
    p.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="command", required=True)

    r = sub.add_parser("run", help="execute one program and print its outputs")
    r.add_argument("program", help="program text, or a path with --file")
    r.add_argument("--file", action="store_true", help="treat PROGRAM as a file path")
    r.add_argument("--steps", type=int, default=vm_cfg.get("max_steps", 1000))
    r.add_argument("--input", default="", help="bytes queued for ','")
    r.add_argument("--pattern", type=int, default=vm_cfg.get("pattern_size", 8))
    r.set_defaults(func=_cmd_run)

    s = sub.add_parser("swarm", help="tick a swarm and print stats")
    s.add_argument("--ticks", type=int, default=512)
    s.add_argument("--organisms", type=int, default=None)
    s.add_argument("--food", type=int, default=None)
    s.add_argument("--seed", type=int, default=None)
    s.set_defaults(func=_cmd_swarm)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
