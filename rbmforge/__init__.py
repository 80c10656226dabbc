"""
RBMForge
========
Thread-parallel contrastive divergence (CD-k) training for binary
Restricted Boltzmann Machines on the CPU.

This package provides:
    1. A float64 RBM with sigmoid clamp functions and its hyperparameters
    2. Per-example CD-k Gibbs sampling and gradient accumulation
    3. A minibatch dispatcher that splits each minibatch across worker
       threads and reduces their gradients in a fixed order
    4. Plain and Nesterov-momentum weight updates
    5. An epoch driver, a YAML configuration system and a host binding

Quick Start:
    >>> from rbmforge.config import RBMForgeConfig
    >>> from rbmforge.model import RestrictedBoltzmannMachine
    >>> from rbmforge.training import RBMTrainer
    >>> config = RBMForgeConfig.for_smoke_test()
    >>> model = RestrictedBoltzmannMachine.from_config(config)
    >>> RBMTrainer(model, config.training).train(data, n_epochs=2, n_threads=2)

Subpackages:
    - rbmforge.model       RBM state, clamp functions, Bernoulli sampler
    - rbmforge.training    Accumulators, dispatcher, integrator, trainer
    - rbmforge.evaluation  Reconstruction error, memory and timing
    - rbmforge.data        Training matrix loading, bars-and-stripes data
    - rbmforge.binding     Host conversions and the train() entry point
"""

__version__ = "0.1.0"
