"""
rbmforge.training: Contrastive Divergence Training Engine
==========================================================
One minibatch flows through the engine like this:

    RBMTrainer (epoch driver)
      → initial_momentum_step        lookahead, momentum mode only
      → accumulate_minibatch         T workers, one DeltaAccumulator each
          → process_example          CD-k for one example
      → reduce_accumulators          merged in worker order
      → integrate_minibatch          the single write to the model

Components:
    - delta.py         DeltaAccumulator and InputBiasPolicy
    - batch_member.py  CD-k Gibbs sampling and gradient for one example
    - dispatcher.py    minibatch partitioning, worker threads, reduction
    - integrator.py    plain and Nesterov-momentum weight updates
    - trainer.py       RBMTrainer: epochs, minibatches, logging
"""

from rbmforge.training.delta import DeltaAccumulator, InputBiasPolicy
from rbmforge.training.batch_member import gibbs_reconstruction, process_example
from rbmforge.training.dispatcher import (
    BatchSlice,
    accumulate_minibatch,
    partition_minibatch,
    reduce_accumulators,
)
from rbmforge.training.integrator import (
    GRADIENT_REDUCTION,
    apply_delta,
    apply_momentum_correction,
    gradient_step_size,
    initial_momentum_step,
    integrate_minibatch,
)
from rbmforge.training.trainer import RBMTrainer, check_training_data
