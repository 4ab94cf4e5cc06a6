import argparse
import logging
import random

from cube import Cube
from heuristic_oracle import ORACLE_KINDS
from solver_config import SolverConfig
from solver_worker import ErrorMessage, SolveRequest, SolverWorker


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Solve a scrambled cube with a learned heuristic search.")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--scramble", type=int, default=8, help="number of random twists to scramble with")
    source.add_argument("--twists", type=str, help="explicit scramble, e.g. \"R U R' U'\"")
    parser.add_argument("--seed", type=int, help="random seed for the scramble")
    parser.add_argument("--oracle", choices=ORACLE_KINDS, help="heuristic oracle to use")
    parser.add_argument("--model", dest="model_path", help="state_dict file for network oracles")
    parser.add_argument("--device", help="torch device, e.g. cpu or cuda")
    parser.add_argument("--batch-size", type=int)
    parser.add_argument("--expansion-limit", type=int)
    parser.add_argument("--path-weight", type=float)
    parser.add_argument("--time-limit", type=float, help="seconds before the search is cancelled")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = SolverConfig().with_overrides(
        oracle_kind=args.oracle,
        model_path=args.model_path,
        device=args.device,
        batch_size=args.batch_size,
        expansion_limit=args.expansion_limit,
        path_weight=args.path_weight,
    )

    # Step 1: Scramble
    if args.twists:
        scramble = args.twists.split()
        try:
            cube = Cube().apply_twists(scramble)
        except ValueError as e:
            print(f"Invalid scramble: {e}")
            return 2
    else:
        cube, scramble = Cube().shuffle(steps=args.scramble, rng=random.Random(args.seed))
    print(f"Scramble: {' '.join(scramble)}")
    print(f"Solving cube:\n{cube}")

    # Step 2: Search on the worker thread
    best = [None]

    def on_progress(estimate):
        if best[0] is None or estimate < best[0]:
            best[0] = estimate
            print(f"Closest estimate so far: {estimate:.2f}")

    worker = SolverWorker(config=config)
    reply = worker.solve(SolveRequest(tuple(int(c) for c in cube.to_array())), args.time_limit, on_progress)

    # Step 3: Report
    if isinstance(reply, ErrorMessage):
        print(f"Solver error ({reply.kind}): {reply.message}")
        return 2
    if not reply.found:
        print(f"No solution found ({reply.reason}).")
        return 1
    if not reply.path:
        print("Already solved.")
        return 0
    if not cube.apply_twists(reply.path).is_solved():
        print(f"Returned path does not solve the cube: {' '.join(reply.path)}")
        return 2
    print(f"Solution found in {len(reply.path)} moves: {' '.join(reply.path)}")
    print(f"Stats: {reply.stats}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
