"""
RBMForge Momentum/Weight Integrator
====================================
Applies a reduced DeltaAccumulator to the model. This is the only code that
writes io_weights, the bias vectors, or momentum, and it runs on the
training thread once per minibatch, after every worker has finished.

Plain update (use_momentum=False):
    io_weights   += step * delta_w
    bias_outputs += step * delta_output_bias
    bias_inputs  += step * delta_input_bias      (if the accumulator contributes)

Nesterov momentum (use_momentum=True), after Sutskever's thesis
(2013, pp. 75, eqs. 7.10-7.11):
    before sampling:   momentum   = decay * momentum
                       io_weights += momentum
    after reduction:   io_weights += step * delta_w
                       momentum   += step * delta_w
    biases are updated as in the plain case; they carry no momentum.

step is learning_rate / batch_size: the gradient is the mean over the
minibatch. GRADIENT_REDUCTION names that choice.
"""

from __future__ import annotations

import logging

from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.training.delta import DeltaAccumulator

logger = logging.getLogger(__name__)

# "mean": step = learning_rate / batch_size. "sum": step = learning_rate.
GRADIENT_REDUCTION = "mean"


def gradient_step_size(
    learning_rate: float,
    batch_size: int,
    reduction: str = GRADIENT_REDUCTION,
) -> float:
    """
    Scale applied to the summed minibatch gradient.

    Raises
    ------
    ValueError
        If reduction is not "mean" or "sum".
    """
    if reduction == "mean":
        return learning_rate / batch_size
    if reduction == "sum":
        return learning_rate
    raise ValueError(
        f"Unknown gradient reduction: '{reduction}'. Choose from: mean, sum"
    )


def initial_momentum_step(model: RestrictedBoltzmannMachine) -> None:
    """Decay the momentum and take the lookahead step along it."""
    model.momentum.mul_(model.momentum_decay)
    model.io_weights.add_(model.momentum)


def _apply_biases(
    model: RestrictedBoltzmannMachine,
    accumulator: DeltaAccumulator,
    step: float,
) -> None:
    model.bias_outputs.add_(accumulator.delta_output_bias, alpha=step)
    if accumulator.contributes_input_bias:
        model.bias_inputs.add_(accumulator.delta_input_bias, alpha=step)


def apply_delta(
    model: RestrictedBoltzmannMachine,
    accumulator: DeltaAccumulator,
) -> None:
    """Plain gradient step on the weights and biases."""
    step = gradient_step_size(accumulator.learning_rate, accumulator.batch_size)
    model.io_weights.add_(accumulator.delta_w, alpha=step)
    _apply_biases(model, accumulator, step)


def apply_momentum_correction(
    model: RestrictedBoltzmannMachine,
    accumulator: DeltaAccumulator,
) -> None:
    """Second half of the Nesterov step: move weights and momentum by the gradient."""
    step = gradient_step_size(accumulator.learning_rate, accumulator.batch_size)
    weight_step = accumulator.delta_w * step
    model.io_weights.add_(weight_step)
    model.momentum.add_(weight_step)
    _apply_biases(model, accumulator, step)


def integrate_minibatch(
    model: RestrictedBoltzmannMachine,
    accumulator: DeltaAccumulator,
) -> None:
    """
    Apply accumulator to model with the model's update rule, then retire it.

    The lookahead half of the momentum update (initial_momentum_step) must
    already have been taken before the minibatch was sampled.

    Raises
    ------
    ValueError
        If the accumulator's shape does not match the model.
    RuntimeError
        If the accumulator was already consumed.
    """
    if accumulator.consumed:
        raise RuntimeError(
            "DeltaAccumulator was already consumed (merged or applied)"
        )
    if accumulator.shape != tuple(model.io_weights.shape):
        raise ValueError(
            f"Accumulator shape {accumulator.shape} does not match "
            f"io_weights shape {tuple(model.io_weights.shape)}"
        )

    if model.use_momentum:
        apply_momentum_correction(model, accumulator)
    else:
        apply_delta(model, accumulator)
    accumulator.mark_consumed()
