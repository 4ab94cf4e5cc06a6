import logging
import pickle
from pathlib import Path

import numpy as np
import torch
from scipy.stats import norm

from cube import CENTER, COLOR_COUNT, STICKER_COUNT, STICKERS_PER_FACE
from model import MODEL_KINDS, load_state_dict_model

logger = logging.getLogger(__name__)

ORACLE_KINDS = ('mismatch',) + tuple(MODEL_KINDS)


class OracleUnavailableError(RuntimeError):
    """The heuristic oracle could not be built or its weights could not be loaded."""


class OracleError(RuntimeError):
    """The heuristic oracle failed or returned unusable estimates."""


class HeuristicOracle:
    """Batch cost-to-goal estimator.

    Called with a float32 array of encoded states, shape [N, D], and a batch
    size hint; returns N non-negative estimates in input order. Resources are
    released by close(), which only acts on its first call.
    """

    def __init__(self):
        self.closed = False

    def __call__(self, batch, batch_size=None):
        if self.closed:
            raise OracleError("Oracle used after close()")
        batch = np.asarray(batch, dtype=np.float32)
        if batch.ndim != 2:
            raise OracleError(f"Expected a 2-D batch of encoded states, got shape {batch.shape}")
        if len(batch) == 0:
            return np.zeros(0, dtype=np.float64)
        batch_size = max(1, int(batch_size or len(batch)))
        estimates = np.asarray(self.predict(batch, batch_size), dtype=np.float64).reshape(-1)
        return np.maximum(estimates, 0.0)  # Ensure heuristic is non-negative

    def predict(self, batch, batch_size):
        raise NotImplementedError

    def release(self):
        pass

    def close(self):
        if self.closed:
            return
        self.closed = True
        self.release()
        logger.debug("Released %s", type(self).__name__)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class StickerMismatchOracle(HeuristicOracle):
    """Counts stickers that differ from their face centre; needs no weights."""

    def __init__(self, scale=12.0):
        super().__init__()
        self.scale = scale

    def predict(self, batch, batch_size):
        n = len(batch)
        colors = batch.reshape(n, STICKER_COUNT, COLOR_COUNT).argmax(axis=2)
        faces = colors.reshape(n, COLOR_COUNT, STICKERS_PER_FACE)
        misplaced = (faces != faces[:, :, CENTER:CENTER + 1]).sum(axis=(1, 2))
        return misplaced / self.scale


class NetworkOracle(HeuristicOracle):
    def __init__(self, model, device=None):
        super().__init__()
        self.model = model
        self.device = device or torch.device('cpu')
        self.model.eval()

    def _chunks(self, batch, batch_size):
        x = torch.from_numpy(batch)
        for start in range(0, len(x), batch_size):
            yield x[start:start + batch_size].to(self.device)

    def predict(self, batch, batch_size):
        outputs = []
        with torch.no_grad():
            for chunk in self._chunks(batch, batch_size):
                outputs.append(self.model(chunk).view(-1).cpu())
        return torch.cat(outputs).numpy()

    def release(self):
        self.model = None
        if self.device.type == 'cuda':
            torch.cuda.empty_cache()


class UncertaintyOracle(NetworkOracle):
    """Likely-admissible estimate: the alpha-quantile of the predicted cost.

    h = mean + z_alpha * (sigma_a + sigma_e), with sigma_a and sigma_e the
    aleatoric and epistemic spread from Monte Carlo dropout.
    """

    def __init__(self, model, device=None, alpha=0.5, n_samples=20):
        super().__init__(model, device)
        if not 0.0 < alpha < 1.0:
            raise ValueError(f"alpha must lie in (0, 1), got {alpha}")
        self.alpha = alpha
        self.n_samples = n_samples
        self.z_score = float(norm.ppf(alpha))

    def predict(self, batch, batch_size):
        outputs = []
        for chunk in self._chunks(batch, batch_size):
            mean, sigma_a, sigma_e = self.model.predict_with_uncertainty(chunk, n_samples=self.n_samples)
            outputs.append((mean + self.z_score * (sigma_a + sigma_e)).cpu())
        return torch.cat(outputs).numpy()


def load_oracle(kind='mismatch', model_path=None, device=None, alpha=0.5):
    """Build the oracle named by `kind`, loading weights from `model_path` when it needs them."""
    if kind == 'mismatch':
        return StickerMismatchOracle()
    if kind not in MODEL_KINDS:
        raise OracleUnavailableError(f"Unknown oracle kind {kind!r}; expected one of {ORACLE_KINDS}")
    if model_path is None:
        raise OracleUnavailableError(f"Oracle {kind!r} needs a model file")
    path = Path(model_path)
    if not path.is_file():
        raise OracleUnavailableError(f"Model file not found: {path}")

    device = torch.device(device or 'cpu')
    try:
        model = load_state_dict_model(kind, path, device)
    except (OSError, EOFError, RuntimeError, ValueError, pickle.UnpicklingError) as e:
        raise OracleUnavailableError(f"Could not load {kind!r} model from {path}: {e}") from e
    logger.info("Loaded %s model from %s on %s", kind, path, device)

    if kind == 'uncertainty':
        return UncertaintyOracle(model, device, alpha=alpha)
    return NetworkOracle(model, device)
