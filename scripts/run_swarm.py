#!/usr/bin/env python3
import argparse
from bfswarm.core import Swarm

def main():
    parser = argparse.ArgumentParser(description="Tick a bfswarm population and dump its tapes.")
    parser.add_argument('--ticks', type=int, default=200, help='Number of ticks to run.')
    parser.add_argument('--organisms', type=int, default=8, help='Number of organisms.')
    parser.add_argument('--seed', type=int, default=None, help='Random seed.')
    args = parser.parse_args()

    print("Initializing swarm...")
    swarm = Swarm(organisms=args.organisms, seed=args.seed)
    for _ in range(args.ticks):
        swarm.step()

    for i, org in enumerate(swarm.organisms):
        r = org.last_result
        print(f"#{i:02d} complexity={org.complexity:2d} ops={r.operations:3d} "
              f"pattern={list(r.memory_pattern)} tape={org.tape.hex()}")
    print(swarm.stats())

if __name__ == '__main__':
    main()
