"""
RBMForge Parallel Minibatch Dispatcher
=======================================
Splits one minibatch across worker threads, runs the batch-member
processor on every example, and reduces the per-worker gradients into one
DeltaAccumulator.

Phases of one minibatch:

    ┌─ read-only phase (parallel) ─────────────────────────────┐
    │  worker 0: slice [0, n)        → accumulator 0           │
    │  worker 1: slice [n, 2n)       → accumulator 1           │
    │  ...                                                      │
    │  worker T-1: slice [(T-1)n, B) → accumulator T-1         │
    └───────────────────────────────────────────────────────────┘
                    barrier: all workers joined
    ┌─ reduction (calling thread) ─────────────────────────────┐
    │  accumulator 0 += accumulator 1 += ... += accumulator T-1│
    └───────────────────────────────────────────────────────────┘

Workers only read the model and write their own accumulator, so no locks
are needed. The model is written afterwards by the integrator, on the
calling thread. A fresh thread pool is created for every minibatch and
shut down before this module returns, so no worker outlives its minibatch.

The reduction always runs in worker-index order, which fixes the floating
point summation order for a given thread count.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import NamedTuple

import torch

from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.model.sampling import BernoulliSampler
from rbmforge.training.batch_member import process_example
from rbmforge.training.delta import DeltaAccumulator, InputBiasPolicy

logger = logging.getLogger(__name__)


class BatchSlice(NamedTuple):
    """A contiguous run of examples within a minibatch."""

    start: int
    length: int

    @property
    def stop(self) -> int:
        return self.start + self.length


def partition_minibatch(batch_size: int, n_threads: int) -> list[BatchSlice]:
    """
    Split batch_size examples into n_threads contiguous slices.

    Every thread but the last gets batch_size // n_threads examples; the
    last takes whatever is left. The slices cover the minibatch exactly
    once, in order. n_threads <= 0 means sequential: a single slice.

    Raises
    ------
    ValueError
        If batch_size is not positive, or if n_threads > batch_size (some
        threads would get an empty slice).
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    if n_threads <= 0:
        return [BatchSlice(0, batch_size)]
    if n_threads > batch_size:
        raise ValueError(
            f"n_threads ({n_threads}) must not exceed batch_size "
            f"({batch_size}); some threads would get no examples."
        )

    n_per_thread = batch_size // n_threads
    slices = [
        BatchSlice(i * n_per_thread, n_per_thread)
        for i in range(n_threads - 1)
    ]
    last_start = n_per_thread * (n_threads - 1)
    slices.append(BatchSlice(last_start, batch_size - last_start))
    return slices


def input_bias_policy_for(
    model: RestrictedBoltzmannMachine,
    worker_index: int,
) -> InputBiasPolicy:
    """Only worker 0 carries the input-bias update, and only if enabled."""
    if worker_index == 0 and model.update_input_bias:
        return InputBiasPolicy.CONTRIBUTES
    return InputBiasPolicy.SKIPS


def run_worker(
    model: RestrictedBoltzmannMachine,
    minibatch: torch.Tensor,
    batch_slice: BatchSlice,
    accumulator: DeltaAccumulator,
    sampler: BernoulliSampler,
) -> DeltaAccumulator:
    """Process every example of batch_slice into accumulator."""
    for example in minibatch[batch_slice.start:batch_slice.stop]:
        process_example(model, example, accumulator, sampler)
    return accumulator


def reduce_accumulators(accumulators: list[DeltaAccumulator]) -> DeltaAccumulator:
    """Merge accumulators into the first one, in list order."""
    if not accumulators:
        raise ValueError("No accumulators to reduce")
    reduced = accumulators[0]
    for accumulator in accumulators[1:]:
        reduced.merge(accumulator)
    return reduced


def accumulate_minibatch(
    model: RestrictedBoltzmannMachine,
    minibatch: torch.Tensor,
    n_threads: int,
    sampler: BernoulliSampler,
    minibatch_index: int = 0,
) -> DeltaAccumulator:
    """
    Compute the summed CD gradient of one minibatch.

    Parameters
    ----------
    model : RestrictedBoltzmannMachine
        The RBM. Read, never written.
    minibatch : torch.Tensor
        (batch_size x n_inputs) examples.
    n_threads : int
        Worker threads. <= 0 runs on the calling thread.
    sampler : BernoulliSampler
        Root sampler; worker w of this minibatch draws from
        sampler.fork(minibatch_index, w).
    minibatch_index : int
        Position of this minibatch in the run, used to key the samplers.

    Returns
    -------
    DeltaAccumulator
        The reduced accumulator. The caller applies it and it is then
        consumed.

    Raises
    ------
    ValueError
        If the minibatch does not hold exactly model.batch_size examples,
        or the thread count would produce empty slices.
    Exception
        Whatever a worker raised. All workers finish before it propagates.
    """
    if minibatch.dim() != 2 or minibatch.shape != (model.batch_size, model.n_inputs):
        raise ValueError(
            f"Minibatch must have shape ({model.batch_size}, {model.n_inputs}), "
            f"got {tuple(minibatch.shape)}"
        )

    slices = partition_minibatch(model.batch_size, n_threads)

    if n_threads <= 0:
        accumulator = DeltaAccumulator.for_model(
            model, input_bias_policy_for(model, 0)
        )
        return run_worker(
            model, minibatch, slices[0], accumulator,
            sampler.fork(minibatch_index, 0),
        )

    with ThreadPoolExecutor(
        max_workers=n_threads, thread_name_prefix="rbm-worker"
    ) as executor:
        futures = [
            executor.submit(
                run_worker,
                model,
                minibatch,
                batch_slice,
                DeltaAccumulator.for_model(model, input_bias_policy_for(model, index)),
                sampler.fork(minibatch_index, index),
            )
            for index, batch_slice in enumerate(slices)
        ]
    # Leaving the executor joins every worker

    for index, future in enumerate(futures):
        error = future.exception()
        if error is not None:
            logger.error(
                f"Worker {index} failed on minibatch {minibatch_index}: {error!r}"
            )
            raise error

    return reduce_accumulators([future.result() for future in futures])
