"""
RBMForge Host Binding
======================
Converts plain host-side values (numpy arrays, nested lists, dicts of
hyperparameters) to and from the native RBM and training tensors, and
exposes the one-call training entry point.

Training matrix layouts accepted by train():

    2-D, n_inputs columns      one example per row
    2-D, examples_as_columns   one example per column (column-major hosts)
    1-D, or a 1 x N / N x 1    read as a flat, example-after-example buffer
    matrix                     whose size must be a multiple of n_inputs

Any other shape is rejected.

Usage:
    >>> params = {"io_weights": [[0.1, 0.2]], "batch_size": 1, "cd_n": 1}
    >>> model = model_from_dict(params)
    >>> model = train(model, np.array([[1.0, 0.0]]), n_epochs=1, n_threads=0)
    >>> model_to_dict(model)["io_weights"]
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
import torch

from rbmforge.config import TrainingConfig
from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.model.sampling import BernoulliSampler
from rbmforge.training.trainer import RBMTrainer

logger = logging.getLogger(__name__)

HYPERPARAMETER_KEYS = (
    "learning_rate",
    "batch_size",
    "cd_n",
    "use_momentum",
    "momentum_decay",
    "update_input_bias",
)
ARRAY_KEYS = ("io_weights", "bias_inputs", "bias_outputs", "momentum")


def model_from_dict(params: dict) -> RestrictedBoltzmannMachine:
    """
    Build an RBM from a dict of arrays and hyperparameters.

    Parameters
    ----------
    params : dict
        Must hold "io_weights" (n_outputs x n_inputs). May hold
        "bias_inputs", "bias_outputs", "momentum" and any of
        HYPERPARAMETER_KEYS. Other keys are rejected.

    Raises
    ------
    ValueError
        On a missing io_weights, unknown keys or mismatched shapes.
    """
    if "io_weights" not in params:
        raise ValueError("params must contain 'io_weights'")
    unknown = set(params) - set(HYPERPARAMETER_KEYS) - set(ARRAY_KEYS)
    if unknown:
        raise ValueError(f"Unknown model parameters: {sorted(unknown)}")

    hyperparameters = {
        key: params[key] for key in HYPERPARAMETER_KEYS if key in params
    }
    return RestrictedBoltzmannMachine.from_arrays(
        io_weights=params["io_weights"],
        bias_inputs=params.get("bias_inputs"),
        bias_outputs=params.get("bias_outputs"),
        momentum=params.get("momentum"),
        **hyperparameters,
    )


def model_to_dict(model: RestrictedBoltzmannMachine) -> dict:
    """Copy the model's arrays (as numpy) and hyperparameters into a dict."""
    params = {
        key: getattr(model, key).detach().cpu().numpy().copy()
        for key in ARRAY_KEYS
    }
    params.update(model.hyperparameters)
    return params


def training_matrix_to_examples(
    training_matrix,
    n_inputs: int,
    examples_as_columns: bool = False,
) -> torch.Tensor:
    """
    Reshape a host training matrix into (n_examples x n_inputs).

    Raises
    ------
    ValueError
        If the number of values is not a multiple of n_inputs, a
        column-major matrix does not have n_inputs rows, or a matrix has
        neither n_inputs columns nor a vector shape.
    """
    values = np.asarray(training_matrix, dtype=np.float64)

    if examples_as_columns:
        if values.ndim != 2 or values.shape[0] != n_inputs:
            raise ValueError(
                f"With examples_as_columns, the training matrix must have "
                f"{n_inputs} rows, got shape {values.shape}"
            )
        return torch.from_numpy(np.ascontiguousarray(values.T))

    if values.ndim == 2 and values.shape[1] == n_inputs:
        return torch.from_numpy(np.ascontiguousarray(values))

    # Only vectors are read flat; a full matrix in another layout is ambiguous
    if values.ndim > 2 or (values.ndim == 2 and min(values.shape) > 1):
        raise ValueError(
            f"Training matrix of shape {values.shape} does not have "
            f"{n_inputs} columns; pass examples_as_columns=True for one "
            f"example per column, or a flat buffer"
        )

    if values.size % n_inputs != 0:
        raise ValueError(
            f"Training matrix holds {values.size} values, which is not a "
            f"multiple of n_inputs ({n_inputs})"
        )
    return torch.from_numpy(values.reshape(-1, n_inputs).copy())


def train(
    model: RestrictedBoltzmannMachine,
    training_matrix,
    n_epochs: int,
    n_threads: int = 0,
    examples_as_columns: bool = False,
    config: Optional[TrainingConfig] = None,
    sampler: Optional[BernoulliSampler] = None,
) -> RestrictedBoltzmannMachine:
    """
    Train model on a host training matrix and return the same model.

    Parameters
    ----------
    model : RestrictedBoltzmannMachine
        Mutated in place.
    training_matrix : array-like
        Training examples in one of the layouts in the module docstring.
    n_epochs : int
        Passes over the examples.
    n_threads : int
        Worker threads per minibatch; <= 0 runs sequentially.
    examples_as_columns : bool
        Read a 2-D matrix one example per column.
    config : TrainingConfig, optional
        Seed and monitoring settings for the trainer.
    sampler : BernoulliSampler, optional
        Root random source.

    Raises
    ------
    ValueError
        If the matrix shape or any hyperparameter is invalid; nothing is
        trained in that case.
    """
    examples = training_matrix_to_examples(
        training_matrix, model.n_inputs, examples_as_columns
    )
    logger.debug(f"Training matrix converted to {tuple(examples.shape)} examples")

    if config is None:
        config = TrainingConfig(log_every=0, monitor_reconstruction=False)
    trainer = RBMTrainer(model, config=config, sampler=sampler, name="binding")
    trainer.train(examples, n_epochs=n_epochs, n_threads=n_threads)
    return model
