import argparse
import logging
import random

import numpy as np

from cube import Cube
from heuristic_oracle import ORACLE_KINDS, load_oracle
from learned_search import LearnedSearch
from solver_config import BATCH_SIZE, EXPANSION_LIMIT


def generate_benchmark_tasks(n=20, depth=6, seed=0):
    """Scrambles of `depth` twists that are not already solved."""
    rng = random.Random(seed)
    tasks = []
    while len(tasks) < n:
        cube, _ = Cube().shuffle(steps=depth, rng=rng)
        if not cube.is_solved():
            tasks.append(cube)
    return tasks


def evaluate_search(tasks, searcher, depth):
    """Solve rate and cost of `searcher` on `tasks`; suboptimality is measured against the scramble depth."""
    results = {
        'solved': 0,
        'avg_length': 0.0,
        'suboptimality': 0.0,
        'avg_nodes': 0.0,
        'avg_oracle_calls': 0.0,
        'avg_time': 0.0,
    }
    lengths, nodes, calls, times = [], [], [], []
    for task in tasks:
        result = searcher.search(task)
        times.append(result.elapsed_s)
        if result.found:
            lengths.append(len(result.path))
            nodes.append(result.nodes_expanded)
            calls.append(result.oracle_calls)
    results['solved'] = len(lengths) / len(tasks) * 100
    if lengths:
        results['avg_length'] = float(np.mean(lengths))
        results['suboptimality'] = (results['avg_length'] / depth - 1) * 100
        results['avg_nodes'] = float(np.mean(nodes))
        results['avg_oracle_calls'] = float(np.mean(calls))
    results['avg_time'] = float(np.mean(times))
    return results


def run_benchmark(oracle, n=20, depth=6, path_weights=(0.0, 0.3, 1.0), seed=0):
    tasks = generate_benchmark_tasks(n, depth, seed)
    table = {}
    print(f"\nBenchmark: {n} cubes scrambled with {depth} twists")
    print("λ      Solved  Length  Subopt  Nodes     Calls   Time")
    print("--------------------------------------------------------")
    for weight in path_weights:
        searcher = LearnedSearch(oracle, BATCH_SIZE, EXPANSION_LIMIT, weight)
        results = evaluate_search(tasks, searcher, depth)
        table[weight] = results
        print(f"{weight:<6} {results['solved']:5.1f}%  {results['avg_length']:6.2f}  "
              f"{results['suboptimality']:5.1f}%  {results['avg_nodes']:8.1f}  "
              f"{results['avg_oracle_calls']:6.1f}  {results['avg_time']:.2f}s")
    return table


def main(argv=None):
    parser = argparse.ArgumentParser(description="Measure search quality across path weights.")
    parser.add_argument("--oracle", choices=ORACLE_KINDS, default="mismatch")
    parser.add_argument("--model", dest="model_path")
    parser.add_argument("-n", type=int, default=20)
    parser.add_argument("--depth", type=int, default=6)
    parser.add_argument("--weights", type=float, nargs="+", default=[0.0, 0.3, 1.0])
    parser.add_argument("--seed", type=int, default=0)
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.WARNING)

    with load_oracle(args.oracle, args.model_path) as oracle:
        run_benchmark(oracle, args.n, args.depth, tuple(args.weights), args.seed)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
