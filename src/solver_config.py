from dataclasses import dataclass, replace
from typing import Optional

BATCH_SIZE = 100
EXPANSION_LIMIT = 150
PATH_WEIGHT = 0.3
PROGRESS_QUEUE_SIZE = 1024
DEVICE = "cpu"
ORACLE_KIND = "mismatch"


@dataclass(frozen=True)
class SolverConfig:
    """Tunables for one solve.

    batch_size is passed to the oracle as its internal batching hint,
    expansion_limit bounds how many frontier nodes one round pops, and
    path_weight scales path length against the estimated remaining cost.
    """
    batch_size: int = BATCH_SIZE
    expansion_limit: int = EXPANSION_LIMIT
    path_weight: float = PATH_WEIGHT
    progress_queue_size: int = PROGRESS_QUEUE_SIZE
    device: str = DEVICE
    oracle_kind: str = ORACLE_KIND
    model_path: Optional[str] = None
    alpha: float = 0.5

    def validate(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.expansion_limit < 1:
            raise ValueError(f"expansion_limit must be positive, got {self.expansion_limit}")
        if self.path_weight < 0:
            raise ValueError(f"path_weight must be non-negative, got {self.path_weight}")
        if self.progress_queue_size < 1:
            raise ValueError(f"progress_queue_size must be positive, got {self.progress_queue_size}")
        return self

    def with_overrides(self, **overrides):
        """Copy with every override that is not None applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None}).validate()
