# learned_search.py
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Tuple

import numpy as np

from heap_queue import HeapQueue
from heuristic_oracle import OracleError
from solver_config import BATCH_SIZE, EXPANSION_LIMIT, PATH_WEIGHT

logger = logging.getLogger(__name__)


class MalformedStateError(ValueError):
    """The start state cannot be goal-tested or fingerprinted."""


@dataclass(frozen=True)
class SearchNode:
    path_cost: int
    heuristic_estimate: float
    state: Any
    path: Tuple = ()

    def __post_init__(self):
        if len(self.path) != self.path_cost:
            raise ValueError(f"path has {len(self.path)} moves but path_cost is {self.path_cost}")


@dataclass
class _SearchStats:
    rounds: int = 0
    nodes_expanded: int = 0
    nodes_generated: int = 0
    duplicates_skipped: int = 0
    stale_skipped: int = 0
    oracle_calls: int = 0
    visited_states: int = 0


@dataclass(frozen=True)
class SearchResult:
    path: Tuple
    found: bool
    reason: str
    rounds: int = 0
    nodes_expanded: int = 0
    nodes_generated: int = 0
    duplicates_skipped: int = 0
    stale_skipped: int = 0
    oracle_calls: int = 0
    visited_states: int = 0
    elapsed_s: float = 0.0


class VisitedLedger:
    """Shortest path cost at which each state fingerprint has been reached."""

    def __init__(self):
        self._costs = {}

    def record_if_shorter(self, key, path_cost):
        """Record `path_cost` for `key` unless it was already reached as cheaply; return whether it was recorded."""
        best = self._costs.get(key)
        if best is not None and best <= path_cost:
            return False
        self._costs[key] = path_cost
        return True

    def get(self, key):
        return self._costs.get(key)

    def __contains__(self, key):
        return key in self._costs

    def __len__(self):
        return len(self._costs)


class LearnedSearch:
    """Weighted best-first search with one batched oracle call per round.

    Each round pops up to `expansion_limit` frontier nodes, expands every
    legal move, drops successors already reached by an equal or shorter
    path, and scores the rest in one oracle call. Successors are queued
    with priority `path_weight * path_length + estimate`.
    """

    def __init__(self, oracle, batch_size=BATCH_SIZE, expansion_limit=EXPANSION_LIMIT, path_weight=PATH_WEIGHT):
        self.oracle = oracle
        self.batch_size = batch_size
        self.expansion_limit = expansion_limit
        self.path_weight = path_weight

    @classmethod
    def from_config(cls, oracle, config):
        return cls(oracle, config.batch_size, config.expansion_limit, config.path_weight)

    def evaluate(self, states):
        batch = np.stack([state.to_one_hot() for state in states]).astype(np.float32)
        try:
            estimates = self.oracle(batch, self.batch_size)
        except OracleError:
            raise
        except (RuntimeError, ValueError) as e:
            raise OracleError(f"Heuristic oracle failed on a batch of {len(states)}: {e}") from e
        estimates = np.asarray(estimates, dtype=np.float64).reshape(-1)
        if estimates.shape[0] != len(states):
            raise OracleError(f"Oracle returned {estimates.shape[0]} estimates for {len(states)} states")
        if not np.all(np.isfinite(estimates)):
            raise OracleError("Oracle returned non-finite estimates")
        return estimates

    def _successors(self, queue, visited, stats):
        for _ in range(min(self.expansion_limit, len(queue))):
            node = queue.heappop()
            if node is None:
                continue
            # A shorter path to this state was recorded after the node was queued.
            if visited.get(node.state.to_hashable()) < node.path_cost:
                stats.stale_skipped += 1
                continue
            stats.nodes_expanded += 1
            for move in node.state.get_legal_moves():
                next_state = node.state.move(move)
                next_path = node.path + (move,)
                stats.nodes_generated += 1
                if not visited.record_if_shorter(next_state.to_hashable(), len(next_path)):
                    stats.duplicates_skipped += 1
                    continue
                yield node, next_state, next_path

    def search(self, start, on_progress=None, should_stop=None):
        """Search for a move sequence from `start` to a solved state.

        `on_progress(estimate)` receives the non-zero heuristic estimate of
        each expanded node as its successors are kept. `should_stop()` is
        polled at the top of every round.
        """
        started = time.perf_counter()
        stats = _SearchStats()

        def finish(path, found, reason, visited=None):
            stats.visited_states = len(visited) if visited is not None else 1
            result = SearchResult(
                path=tuple(path), found=found, reason=reason,
                elapsed_s=time.perf_counter() - started, **asdict(stats)
            )
            logger.info(
                "Search %s: %d moves, %d rounds, %d expanded, %d oracle calls in %.3fs",
                reason, len(result.path), result.rounds, result.nodes_expanded,
                result.oracle_calls, result.elapsed_s
            )
            return result

        try:
            start_key = start.to_hashable()
            solved = start.is_solved()
        except (ValueError, TypeError, IndexError, AttributeError) as e:
            raise MalformedStateError(f"Cannot process start state: {e}") from e
        if solved:
            return finish((), True, "already_solved")

        queue = HeapQueue()
        queue.heappush(0, SearchNode(0, 0.0, start, ()))
        visited = VisitedLedger()
        visited.record_if_shorter(start_key, 0)

        while len(queue) > 0:
            if should_stop is not None and should_stop():
                return finish((), False, "cancelled", visited)
            stats.rounds += 1

            next_states = []
            next_paths = []
            for parent, next_state, next_path in self._successors(queue, visited, stats):
                if on_progress is not None and parent.heuristic_estimate > 0:
                    on_progress(parent.heuristic_estimate)
                if next_state.is_solved():
                    return finish(next_path, True, "solved", visited)
                next_states.append(next_state)
                next_paths.append(next_path)

            if not next_states:
                continue
            estimates = self.evaluate(next_states)
            stats.oracle_calls += 1
            for state, path, estimate in zip(next_states, next_paths, estimates):
                node = SearchNode(len(path), float(estimate), state, path)
                queue.heappush(self.path_weight * len(path) + float(estimate), node)
            logger.debug(
                "Round %d: scored %d states, frontier %d, visited %d",
                stats.rounds, len(next_states), len(queue), len(visited)
            )

        return finish((), False, "exhausted", visited)
