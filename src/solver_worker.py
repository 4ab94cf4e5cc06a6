"""Run a cube search off the caller's thread and report back through messages.

A worker takes one SolveRequest and answers with zero or more
ProgressMessage values followed by exactly one terminal message, either
SolvedMessage or ErrorMessage. Progress is best-effort and is dropped once
`progress_queue_size` replies are waiting unread. The terminal message
bypasses that bound, so a caller may join the worker before draining its
replies.
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from queue import Empty, Queue
from typing import Any, Callable, Dict, Optional, Tuple

from cube import Cube
from heuristic_oracle import OracleError, OracleUnavailableError, load_oracle
from learned_search import LearnedSearch, MalformedStateError
from solver_config import SolverConfig

logger = logging.getLogger(__name__)

ORACLE_UNAVAILABLE = "oracle_unavailable"
MALFORMED_INPUT = "malformed_input"
ORACLE_ERROR = "oracle_error"
INTERNAL_ERROR = "internal_error"


@dataclass(frozen=True)
class SolveRequest:
    stickers: Tuple[int, ...]


@dataclass(frozen=True)
class ProgressMessage:
    progress: float


@dataclass(frozen=True)
class SolvedMessage:
    path: Tuple[str, ...]
    found: bool
    reason: str
    stats: Dict[str, Any] = field(default_factory=dict)
    solved: bool = True


@dataclass(frozen=True)
class ErrorMessage:
    kind: str
    message: str


def is_terminal(message):
    return isinstance(message, (SolvedMessage, ErrorMessage))


def default_oracle_factory(config):
    def factory():
        return load_oracle(config.oracle_kind, config.model_path, config.device, config.alpha)
    return factory


def run_solve(request, oracle_factory, config, post, should_stop=None):
    """Solve one request synchronously, handing every response to `post`."""
    try:
        start = Cube(request.stickers)
    except (ValueError, TypeError) as e:
        post(ErrorMessage(MALFORMED_INPUT, str(e)))
        return

    if start.is_solved():
        logger.info("Already solved.")
        post(SolvedMessage(path=(), found=True, reason="already_solved"))
        return

    try:
        oracle = oracle_factory()
    except OracleUnavailableError as e:
        logger.error("Heuristic oracle unavailable: %s", e)
        post(ErrorMessage(ORACLE_UNAVAILABLE, str(e)))
        return

    with oracle:
        searcher = LearnedSearch.from_config(oracle, config)
        try:
            result = searcher.search(
                start,
                on_progress=lambda estimate: post(ProgressMessage(estimate)),
                should_stop=should_stop,
            )
        except MalformedStateError as e:
            post(ErrorMessage(MALFORMED_INPUT, str(e)))
            return
        except OracleError as e:
            logger.error("Search aborted: %s", e)
            post(ErrorMessage(ORACLE_ERROR, str(e)))
            return

    if not result.found:
        logger.info("Could not find any answer, giving up (%s).", result.reason)
    stats = {
        "rounds": result.rounds,
        "nodes_expanded": result.nodes_expanded,
        "nodes_generated": result.nodes_generated,
        "oracle_calls": result.oracle_calls,
        "visited_states": result.visited_states,
        "elapsed_s": result.elapsed_s,
    }
    post(SolvedMessage(path=result.path, found=result.found, reason=result.reason, stats=stats))


class SolverWorker:
    """Runs one search on a background thread; read its replies from `responses` or `messages()`."""

    def __init__(self, oracle_factory: Optional[Callable[[], Any]] = None, config: Optional[SolverConfig] = None):
        self.config = (config or SolverConfig()).validate()
        self.oracle_factory = oracle_factory or default_oracle_factory(self.config)
        self.responses: "Queue[Any]" = Queue()
        self.dropped_progress = 0
        self._cancel = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self, request):
        if self._thread is not None:
            raise RuntimeError("A SolverWorker handles a single request")
        self._thread = threading.Thread(target=self._run, args=(request,), name="cube-solver-worker", daemon=True)
        self._thread.start()
        return self

    def cancel(self):
        """Ask the search to stop at the top of its next round."""
        self._cancel.set()

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)

    def _post(self, message):
        if isinstance(message, ProgressMessage):
            if self.responses.qsize() >= self.config.progress_queue_size:
                self.dropped_progress += 1
            else:
                self.responses.put_nowait(message)
            return
        self.responses.put(message)

    def _run(self, request):
        try:
            run_solve(request, self.oracle_factory, self.config, self._post, should_stop=self._cancel.is_set)
        except Exception as e:
            logger.exception("Solver worker crashed")
            self._post(ErrorMessage(INTERNAL_ERROR, f"{type(e).__name__}: {e}"))

    def messages(self, timeout=None):
        """Yield responses in order, ending with the terminal one."""
        while True:
            message = self.responses.get(timeout=timeout)
            yield message
            if is_terminal(message):
                return

    def solve(self, request, time_limit=None, on_progress=None):
        """Start the search and block until its terminal message.

        After `time_limit` seconds the search is cancelled; it then stops at
        the top of its current round and reports reason "cancelled".
        """
        self.start(request)
        deadline = None if time_limit is None else time.monotonic() + time_limit
        while True:
            timeout = None
            if deadline is not None and not self._cancel.is_set():
                timeout = max(0.0, deadline - time.monotonic())
            try:
                message = self.responses.get(timeout=timeout)
            except Empty:
                logger.info("Time limit of %.1fs reached, cancelling search", time_limit)
                self.cancel()
                continue
            if is_terminal(message):
                self.join()
                return message
            if on_progress is not None:
                on_progress(message.progress)
