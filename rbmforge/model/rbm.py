"""
RBMForge Restricted Boltzmann Machine
======================================
A binary RBM: one layer of visible (input) units, one layer of hidden
(output) units, every visible unit connected to every hidden unit and no
connections within a layer.

State:
    io_weights    (n_outputs x n_inputs)  connection weights
    bias_inputs   (n_inputs,)             visible-unit biases
    bias_outputs  (n_outputs,)            hidden-unit biases
    momentum      (n_outputs x n_inputs)  velocity for the Nesterov update

All state is float64 and registered as module buffers: the RBM is trained
with contrastive divergence, not autograd, so nothing here is an
nn.Parameter. The training hyperparameters travel with the model because
the training engine reads them from it.

Clamping:
    clamp_input   p(h = 1 | v) = sigmoid(io_weights @ v + bias_outputs)
    clamp_output  p(v = 1 | h) = sigmoid(io_weights.T @ h + bias_inputs)

Usage:
    >>> rbm = RestrictedBoltzmannMachine(n_inputs=6, n_outputs=3)
    >>> v = torch.tensor([1., 0., 1., 0., 1., 0.], dtype=torch.float64)
    >>> rbm.clamp_input(v).shape
    torch.Size([3])
"""

from __future__ import annotations

import logging

import torch
import torch.nn as nn

from rbmforge.config import RBMForgeConfig

logger = logging.getLogger(__name__)

DTYPE = torch.float64


class RestrictedBoltzmannMachine(nn.Module):
    """
    Binary Restricted Boltzmann Machine trained with CD-k.

    Parameters
    ----------
    n_inputs : int
        Number of visible units.
    n_outputs : int
        Number of hidden units.
    learning_rate : float
        Step size applied to the mean minibatch gradient.
    batch_size : int
        Examples per weight update.
    cd_n : int
        Gibbs sampling steps per example.
    use_momentum : bool
        Use the two-phase Nesterov momentum update for the weights.
    momentum_decay : float
        Momentum decay in [0, 1).
    update_input_bias : bool
        Whether training ever changes bias_inputs.
    weight_init_std : float
        Standard deviation of the initial weights.
    seed : int
        Seed for the initial weights.
    """

    def __init__(
        self,
        n_inputs: int,
        n_outputs: int,
        learning_rate: float = 0.1,
        batch_size: int = 10,
        cd_n: int = 1,
        use_momentum: bool = False,
        momentum_decay: float = 0.9,
        update_input_bias: bool = True,
        weight_init_std: float = 0.01,
        seed: int = 42,
    ):
        super().__init__()

        if n_inputs <= 0:
            raise ValueError(f"n_inputs must be positive, got {n_inputs}")
        if n_outputs <= 0:
            raise ValueError(f"n_outputs must be positive, got {n_outputs}")

        self.n_inputs = n_inputs
        self.n_outputs = n_outputs

        self.learning_rate = learning_rate
        self.batch_size = batch_size
        self.cd_n = cd_n
        self.use_momentum = use_momentum
        self.momentum_decay = momentum_decay
        self.update_input_bias = update_input_bias

        generator = torch.Generator()
        generator.manual_seed(seed)
        weights = torch.randn(
            n_outputs, n_inputs, generator=generator, dtype=DTYPE
        ) * weight_init_std

        self.register_buffer("io_weights", weights)
        self.register_buffer("bias_inputs", torch.zeros(n_inputs, dtype=DTYPE))
        self.register_buffer("bias_outputs", torch.zeros(n_outputs, dtype=DTYPE))
        self.register_buffer("momentum", torch.zeros(n_outputs, n_inputs, dtype=DTYPE))

        logger.debug(
            f"RBM created: {n_inputs} visible x {n_outputs} hidden, "
            f"CD-{cd_n}, batch_size={batch_size}"
        )

    @classmethod
    def from_config(cls, config: RBMForgeConfig) -> RestrictedBoltzmannMachine:
        """Build a freshly initialized RBM from a master configuration."""
        return cls(
            n_inputs=config.model.n_inputs,
            n_outputs=config.model.n_outputs,
            learning_rate=config.training.learning_rate,
            batch_size=config.training.batch_size,
            cd_n=config.training.cd_n,
            use_momentum=config.training.use_momentum,
            momentum_decay=config.training.momentum_decay,
            update_input_bias=config.training.update_input_bias,
            weight_init_std=config.model.weight_init_std,
            seed=config.model.seed,
        )

    @classmethod
    def from_arrays(
        cls,
        io_weights,
        bias_inputs=None,
        bias_outputs=None,
        momentum=None,
        **hyperparameters,
    ) -> RestrictedBoltzmannMachine:
        """
        Build an RBM around explicit weight and bias values.

        Parameters
        ----------
        io_weights : array-like
            (n_outputs x n_inputs) connection weights.
        bias_inputs, bias_outputs : array-like, optional
            Bias vectors. Zero if omitted.
        momentum : array-like, optional
            Initial momentum. Zero if omitted.
        **hyperparameters
            Any of the training hyperparameters accepted by __init__.

        Raises
        ------
        ValueError
            If any array does not match the weight matrix's shape.
        """
        weights = torch.as_tensor(io_weights, dtype=DTYPE)
        if weights.dim() != 2:
            raise ValueError(
                f"io_weights must be 2-D (n_outputs x n_inputs), "
                f"got shape {tuple(weights.shape)}"
            )
        n_outputs, n_inputs = weights.shape

        model = cls(n_inputs, n_outputs, weight_init_std=0.0, **hyperparameters)
        model.io_weights.copy_(weights)
        if bias_inputs is not None:
            model.bias_inputs.copy_(
                _checked(bias_inputs, (n_inputs,), "bias_inputs")
            )
        if bias_outputs is not None:
            model.bias_outputs.copy_(
                _checked(bias_outputs, (n_outputs,), "bias_outputs")
            )
        if momentum is not None:
            model.momentum.copy_(
                _checked(momentum, (n_outputs, n_inputs), "momentum")
            )
        return model

    # ─── Gibbs sampling ──────────────────────────────────────────────

    def clamp_input(self, visible: torch.Tensor) -> torch.Tensor:
        """
        Hidden activation probabilities given visible states.

        Accepts a single example (n_inputs,) or a batch (n, n_inputs).
        """
        return torch.sigmoid(visible @ self.io_weights.T + self.bias_outputs)

    def clamp_output(self, hidden: torch.Tensor) -> torch.Tensor:
        """Visible activation probabilities given hidden states."""
        return torch.sigmoid(hidden @ self.io_weights + self.bias_inputs)

    def reconstruct(self, visible: torch.Tensor) -> torch.Tensor:
        """One up-down pass: visible -> hidden probabilities -> visible."""
        return self.clamp_output(self.clamp_input(visible))

    # ─── Hyperparameters ─────────────────────────────────────────────

    @property
    def hyperparameters(self) -> dict:
        """The training hyperparameters as a plain dictionary."""
        return {
            "learning_rate": self.learning_rate,
            "batch_size": self.batch_size,
            "cd_n": self.cd_n,
            "use_momentum": self.use_momentum,
            "momentum_decay": self.momentum_decay,
            "update_input_bias": self.update_input_bias,
        }

    def validate_hyperparameters(self) -> None:
        """
        Check the training hyperparameters before a run starts.

        Raises
        ------
        ValueError
            If any hyperparameter is out of range.
        """
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.cd_n < 1:
            raise ValueError(f"cd_n must be >= 1, got {self.cd_n}")
        if self.use_momentum and not 0.0 <= self.momentum_decay < 1.0:
            raise ValueError(
                f"momentum_decay must be in [0, 1), got {self.momentum_decay}"
            )

    def reset_momentum(self) -> None:
        """Zero the momentum matrix."""
        self.momentum.zero_()

    @property
    def n_params(self) -> int:
        """Number of trainable values (weights plus both bias vectors)."""
        return self.n_inputs * self.n_outputs + self.n_inputs + self.n_outputs

    def extra_repr(self) -> str:
        return (
            f"n_inputs={self.n_inputs}, n_outputs={self.n_outputs}, "
            f"cd_n={self.cd_n}, batch_size={self.batch_size}, "
            f"use_momentum={self.use_momentum}"
        )


def _checked(values, shape: tuple, name: str) -> torch.Tensor:
    tensor = torch.as_tensor(values, dtype=DTYPE)
    if tuple(tensor.shape) != shape:
        raise ValueError(
            f"{name} must have shape {shape}, got {tuple(tensor.shape)}"
        )
    return tensor
