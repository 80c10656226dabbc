"""
RBMForge Trainer
=================
The epoch driver: loops over epochs, cuts the training examples into
minibatches, and for each minibatch runs

    1. the momentum lookahead step (momentum mode only),
    2. the parallel minibatch dispatcher (sampling + gradient reduction),
    3. the integrator (the single write to the model).

What This Handles:
    - Up-front validation of hyperparameters, data shape and thread count,
      so a bad run fails before any minibatch work
    - Minibatch iteration; examples past the last full minibatch of an
      epoch are ignored
    - Reproducible sampling: every (minibatch, worker) pair has its own
      random stream derived from one seed
    - Logging of progress and per-epoch reconstruction error
    - Timing

Usage:
    >>> model = RestrictedBoltzmannMachine.from_config(config)
    >>> trainer = RBMTrainer(model, config.training)
    >>> results = trainer.train(data, n_epochs=10, n_threads=4)
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import torch
from tqdm import tqdm

from rbmforge.config import TrainingConfig
from rbmforge.evaluation.metrics import Timer, reconstruction_error
from rbmforge.model.rbm import DTYPE, RestrictedBoltzmannMachine
from rbmforge.model.sampling import BernoulliSampler
from rbmforge.training.dispatcher import accumulate_minibatch, partition_minibatch
from rbmforge.training.integrator import initial_momentum_step, integrate_minibatch

logger = logging.getLogger(__name__)


def check_training_data(data, n_inputs: int) -> torch.Tensor:
    """
    Validate a training matrix and return it as a float64 tensor.

    Parameters
    ----------
    data : array-like
        (n_examples x n_inputs) training examples, one per row.
    n_inputs : int
        Number of visible units of the model being trained.

    Raises
    ------
    ValueError
        If data is not 2-D with n_inputs columns, or holds non-finite
        values.
    """
    data = torch.as_tensor(data, dtype=DTYPE)
    if data.dim() != 2 or data.shape[1] != n_inputs:
        raise ValueError(
            f"Training data must have shape (n_examples, {n_inputs}), "
            f"got {tuple(data.shape)}"
        )
    if not torch.isfinite(data).all():
        raise ValueError("Training data contains NaN or infinite values")
    return data


class RBMTrainer:
    """
    Contrastive divergence training loop for a RestrictedBoltzmannMachine.

    The model's own hyperparameters (learning_rate, batch_size, cd_n,
    use_momentum, momentum_decay, update_input_bias) drive the algorithm;
    config only controls seeding and monitoring.

    Parameters
    ----------
    model : RestrictedBoltzmannMachine
        The RBM to train, updated in place.
    config : TrainingConfig or None
        Seed, logging and monitoring settings. Defaults if None.
    sampler : BernoulliSampler or None
        Root random source. Built from config.seed if None.
    name : str
        Human-readable name for this training run (for logging).
    """

    def __init__(
        self,
        model: RestrictedBoltzmannMachine,
        config: Optional[TrainingConfig] = None,
        sampler: Optional[BernoulliSampler] = None,
        name: str = "rbm",
    ):
        self.model = model
        self.config = config or TrainingConfig()
        self.sampler = sampler or BernoulliSampler(seed=self.config.seed)
        self.name = name

        self.global_step = 0
        self.examples_processed = 0

        logger.info(
            f"Trainer '{name}' initialized: {model.n_inputs} visible x "
            f"{model.n_outputs} hidden, {model.n_params:,} parameters"
        )

    def train(self, data, n_epochs: int, n_threads: int = 0) -> dict:
        """
        Train the model for n_epochs passes over data.

        Parameters
        ----------
        data : array-like
            (n_examples x n_inputs) training examples. Never modified.
        n_epochs : int
            Number of epochs.
        n_threads : int
            Worker threads per minibatch; <= 0 runs sequentially.

        Returns
        -------
        dict
            - epochs: epochs completed
            - minibatches_per_epoch: full minibatches in each epoch
            - examples_ignored_per_epoch: trailing examples never used
            - total_minibatches: minibatches run by this call
            - examples_processed: examples that contributed a gradient
            - reconstruction_errors: per-epoch error (if monitored)
            - total_time_seconds: wall-clock time

        Raises
        ------
        ValueError
            If the hyperparameters, data or thread count are invalid.
            Raised before any minibatch runs.
        """
        self.model.validate_hyperparameters()
        data = check_training_data(data, self.model.n_inputs)
        if n_epochs < 0:
            raise ValueError(f"n_epochs must be >= 0, got {n_epochs}")
        partition_minibatch(self.model.batch_size, n_threads)

        batch_size = self.model.batch_size
        n_examples = data.shape[0]
        n_minibatches = n_examples // batch_size
        n_ignored = n_examples - n_minibatches * batch_size

        mode = f"{n_threads} threads" if n_threads > 0 else "sequential"
        logger.info(
            f"[{self.name}] Starting training: {n_epochs} epochs, "
            f"{n_minibatches} minibatches/epoch of {batch_size}, "
            f"CD-{self.model.cd_n}, {mode}"
        )
        if n_ignored:
            logger.info(
                f"[{self.name}] {n_ignored} trailing example(s) do not fill a "
                f"minibatch and are ignored every epoch"
            )
        if n_minibatches == 0:
            logger.warning(
                f"[{self.name}] Fewer examples ({n_examples}) than batch_size "
                f"({batch_size}); nothing will be trained"
            )

        results = {
            "epochs": 0,
            "minibatches_per_epoch": n_minibatches,
            "examples_ignored_per_epoch": n_ignored,
            "total_minibatches": 0,
            "examples_processed": 0,
            "reconstruction_errors": [],
            "total_time_seconds": 0.0,
        }

        start_time = time.time()
        start_step = self.global_step
        start_examples = self.examples_processed

        for epoch in tqdm(range(n_epochs), desc=f"[{self.name}] epochs",
                          disable=not self.config.use_tqdm):
            with Timer(f"{self.name} epoch {epoch + 1}") as timer:
                self._train_epoch(data, n_minibatches, n_threads)
            results["epochs"] += 1

            message = (
                f"[{self.name}] Epoch {epoch + 1}/{n_epochs}, "
                f"{n_minibatches} minibatches in {timer.elapsed:.2f}s"
            )
            if self.config.monitor_reconstruction:
                error = reconstruction_error(self.model, data)
                results["reconstruction_errors"].append(error)
                message += f", recon_error={error:.6f}"
            logger.info(message)

        results["total_minibatches"] = self.global_step - start_step
        results["examples_processed"] = self.examples_processed - start_examples
        results["total_time_seconds"] = time.time() - start_time

        logger.info(
            f"[{self.name}] Training complete in "
            f"{results['total_time_seconds']:.1f}s, "
            f"{results['total_minibatches']} minibatches, "
            f"{results['examples_processed']:,} examples"
        )
        return results

    def _train_epoch(
        self,
        data: torch.Tensor,
        n_minibatches: int,
        n_threads: int,
    ) -> None:
        """One pass over the full minibatches of data, from the start."""
        batch_size = self.model.batch_size
        for j in range(n_minibatches):
            minibatch = data[j * batch_size:(j + 1) * batch_size]
            self.train_minibatch(minibatch, n_threads)

    def train_minibatch(self, minibatch: torch.Tensor, n_threads: int = 0) -> None:
        """
        Run one minibatch: lookahead, parallel accumulation, update.

        Parameters
        ----------
        minibatch : torch.Tensor
            (batch_size x n_inputs) examples.
        n_threads : int
            Worker threads; <= 0 runs sequentially.

        Raises
        ------
        Exception
            Whatever a worker raised. The model is left as it was before
            the call: a momentum lookahead already taken is rolled back.
        """
        saved_state = None
        if self.model.use_momentum:
            saved_state = (
                self.model.io_weights.clone(),
                self.model.momentum.clone(),
            )
            initial_momentum_step(self.model)

        try:
            accumulator = accumulate_minibatch(
                self.model,
                minibatch,
                n_threads,
                self.sampler,
                minibatch_index=self.global_step,
            )
        except Exception:
            if saved_state is not None:
                self.model.io_weights.copy_(saved_state[0])
                self.model.momentum.copy_(saved_state[1])
                logger.warning(
                    f"[{self.name}] Minibatch {self.global_step} failed; "
                    f"momentum lookahead rolled back"
                )
            raise
        n_examples = accumulator.n_examples
        integrate_minibatch(self.model, accumulator)

        self.global_step += 1
        self.examples_processed += n_examples

        if (
            self.config.log_every > 0
            and self.global_step % self.config.log_every == 0
        ):
            logger.info(
                f"[{self.name}] step={self.global_step}, "
                f"examples={self.examples_processed:,}, "
                f"|W|={self.model.io_weights.norm().item():.4f}"
            )
