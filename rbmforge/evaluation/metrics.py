"""
RBMForge Training Metrics
==========================
Quantities used to follow an RBM training run.

1. RECONSTRUCTION ERROR
   Mean squared difference between each example and its one-step
   reconstruction p(v | p(h | v)), averaged over units and examples.
   It is not the quantity CD minimizes, but it falls steadily while
   training goes well and is cheap to compute:

       error = mean_n mean_j (v[n][j] - v_recon[n][j])^2

2. TIMING
   Wall-clock time for a block (per epoch in the trainer).

3. MEMORY TRACKING
   Timing plus the peak Python-level allocations over a block, via
   tracemalloc (whole runs in scripts/train.py).

Usage:
    >>> error = reconstruction_error(model, data)
    >>> with Timer("epoch") as t:
    ...     trainer.train(data, n_epochs=1)
"""

from __future__ import annotations

import logging
import time
import tracemalloc

import torch

from rbmforge.model.rbm import RestrictedBoltzmannMachine

logger = logging.getLogger(__name__)


@torch.no_grad()
def reconstruction_error(
    model: RestrictedBoltzmannMachine,
    data: torch.Tensor,
) -> float:
    """
    Mean squared one-step reconstruction error of model on data.

    Parameters
    ----------
    model : RestrictedBoltzmannMachine
        The RBM to evaluate.
    data : torch.Tensor
        (n_examples x n_inputs) visible vectors.

    Returns
    -------
    float
        The error, or nan if data holds no examples.
    """
    if data.shape[0] == 0:
        logger.warning("No examples given. Returning nan reconstruction error.")
        return float("nan")

    recon = model.reconstruct(data)
    return torch.mean((data - recon) ** 2).item()


class Timer:
    """
    Wall-clock time of a block, in .elapsed seconds.

    The trainer wraps each epoch in one; the duration goes into the epoch
    log line, and is logged on its own at DEBUG.
    """

    def __init__(self, label: str = "operation"):
        self.label = label
        self.elapsed: float = 0.0
        self._started_at: float = 0.0

    def __enter__(self):
        self._started_at = time.perf_counter()
        return self

    def __exit__(self, *exc_info):
        self.elapsed = time.perf_counter() - self._started_at
        logger.debug(f"[{self.label}] {self.elapsed:.3f}s")


class MemoryTracker(Timer):
    """
    A Timer that also records the peak Python heap over its block.

    tracemalloc only sees allocations made through Python's allocator, so
    torch tensor storage is not counted. The numbers are a lower bound on
    what a training run costs.

    Usage:
        >>> with MemoryTracker("Training") as tracker:
        ...     trainer.train(data, n_epochs=5)
        >>> tracker.peak_mb, tracker.elapsed
    """

    def __init__(self, label: str = "operation"):
        super().__init__(label)
        self.peak_mb: float = 0.0
        self.current_mb: float = 0.0

    def __enter__(self):
        tracemalloc.start()
        return super().__enter__()

    def __exit__(self, *exc_info):
        current, peak = tracemalloc.get_traced_memory()
        tracemalloc.stop()
        super().__exit__(*exc_info)

        self.current_mb = current / 2**20
        self.peak_mb = peak / 2**20
        logger.info(
            f"[{self.label}] peak heap {self.peak_mb:.1f}MB, "
            f"{self.current_mb:.1f}MB still held, {self.elapsed:.2f}s"
        )

    def __repr__(self) -> str:
        return (
            f"MemoryTracker({self.label}: peak={self.peak_mb:.1f}MB, "
            f"elapsed={self.elapsed:.2f}s)"
        )
