"""
RBMForge Delta Accumulator
===========================
The gradient buffer one training worker fills while it processes its share
of a minibatch.

Lifecycle:
    1. Created zeroed at the start of a minibatch, one per worker.
    2. Accumulated in place, one example at a time, by its worker only.
    3. Consumed exactly once: either merged into another accumulator after
       all workers have finished, or applied to the model by the integrator.

Input biases:
    Every example contributes to the input-bias gradient, but the gradient
    must reach the model once per minibatch no matter how many workers split
    it. Each accumulator therefore carries an InputBiasPolicy decided when it
    is created. Only the first worker's accumulator is created with
    CONTRIBUTES; merging keeps CONTRIBUTES if either side has it, so the
    reduced accumulator applies the summed input-bias gradient exactly once.
"""

from __future__ import annotations

import enum
import logging

import torch

from rbmforge.model.rbm import DTYPE, RestrictedBoltzmannMachine

logger = logging.getLogger(__name__)


class InputBiasPolicy(enum.Enum):
    """Whether an accumulator's input-bias gradient is applied to the model."""

    CONTRIBUTES = "contributes"
    SKIPS = "skips"


class DeltaAccumulator:
    """
    Per-worker sums of the CD gradient over a slice of a minibatch.

    Parameters
    ----------
    n_inputs : int
        Number of visible units.
    n_outputs : int
        Number of hidden units.
    learning_rate : float
        Learning rate captured when the accumulator is created.
    batch_size : int
        Batch size captured when the accumulator is created.
    input_bias_policy : InputBiasPolicy
        Whether this accumulator's input-bias gradient reaches the model.
    """

    def __init__(
        self,
        n_inputs: int,
        n_outputs: int,
        learning_rate: float,
        batch_size: int,
        input_bias_policy: InputBiasPolicy = InputBiasPolicy.CONTRIBUTES,
    ):
        self.delta_w = torch.zeros(n_outputs, n_inputs, dtype=DTYPE)
        self.delta_input_bias = torch.zeros(n_inputs, dtype=DTYPE)
        self.delta_output_bias = torch.zeros(n_outputs, dtype=DTYPE)
        self.learning_rate = learning_rate
        self.batch_size = batch_size
        self.input_bias_policy = input_bias_policy
        self.n_examples = 0
        self._consumed = False

    @classmethod
    def for_model(
        cls,
        model: RestrictedBoltzmannMachine,
        input_bias_policy: InputBiasPolicy = InputBiasPolicy.CONTRIBUTES,
    ) -> DeltaAccumulator:
        """Create a zeroed accumulator shaped and parameterized like model."""
        return cls(
            n_inputs=model.n_inputs,
            n_outputs=model.n_outputs,
            learning_rate=model.learning_rate,
            batch_size=model.batch_size,
            input_bias_policy=input_bias_policy,
        )

    @property
    def contributes_input_bias(self) -> bool:
        return self.input_bias_policy is InputBiasPolicy.CONTRIBUTES

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def shape(self) -> tuple[int, int]:
        """(n_outputs, n_inputs) of the weight gradient."""
        return tuple(self.delta_w.shape)

    def add_example(
        self,
        delta_w: torch.Tensor,
        delta_input_bias: torch.Tensor,
        delta_output_bias: torch.Tensor,
    ) -> None:
        """Fold one example's gradient contribution into the running sums."""
        self._check_live()
        self.delta_w.add_(delta_w)
        self.delta_input_bias.add_(delta_input_bias)
        self.delta_output_bias.add_(delta_output_bias)
        self.n_examples += 1

    def merge(self, other: DeltaAccumulator) -> DeltaAccumulator:
        """
        Add other's sums into this accumulator and retire other.

        Returns
        -------
        DeltaAccumulator
            self, for chaining.

        Raises
        ------
        ValueError
            If the two accumulators have different shapes.
        RuntimeError
            If either accumulator was already consumed.
        """
        if other is self:
            raise ValueError("Cannot merge an accumulator into itself")
        self._check_live()
        other._check_live()
        if other.shape != self.shape:
            raise ValueError(
                f"Cannot merge accumulators of shape {other.shape} "
                f"into shape {self.shape}"
            )

        self.delta_w.add_(other.delta_w)
        self.delta_input_bias.add_(other.delta_input_bias)
        self.delta_output_bias.add_(other.delta_output_bias)
        self.n_examples += other.n_examples
        if other.contributes_input_bias:
            self.input_bias_policy = InputBiasPolicy.CONTRIBUTES

        other.mark_consumed()
        return self

    def mark_consumed(self) -> None:
        """Retire this accumulator; it refuses any further use."""
        self._check_live()
        self._consumed = True
        # Drop the buffers so a retired accumulator holds no memory
        self.delta_w = None
        self.delta_input_bias = None
        self.delta_output_bias = None

    def _check_live(self) -> None:
        if self._consumed:
            raise RuntimeError(
                "DeltaAccumulator was already consumed (merged or applied)"
            )

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else f"shape={self.shape}"
        return (
            f"DeltaAccumulator({state}, n_examples={self.n_examples}, "
            f"input_bias={self.input_bias_policy.value})"
        )
