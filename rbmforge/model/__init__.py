"""
rbmforge.model: The Restricted Boltzmann Machine
==================================================
Components:
    - rbm.py       RestrictedBoltzmannMachine: weights, biases, momentum,
                     hyperparameters and the sigmoid clamp functions
    - sampling.py  BernoulliSampler: seeded binary state draws, forked
                     per training worker
"""

from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.model.sampling import BernoulliSampler
