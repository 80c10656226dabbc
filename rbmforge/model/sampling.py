"""
RBMForge Bernoulli Sampler
===========================
Draws binary unit states from activation probabilities.

Contrastive divergence samples the data-side hidden state stochastically:
a hidden unit with probability p of being on is set to 1 with probability
p and to 0 otherwise. Each training worker gets its own random stream so
that workers never share a generator, and every stream is derived from
(seed, minibatch index, worker index) so a run is reproducible no matter
how the threads are scheduled.

Usage:
    >>> sampler = BernoulliSampler(seed=1234)
    >>> worker = sampler.fork(0, 1)        # minibatch 0, worker 1
    >>> states = worker.sample_state(torch.tensor([0.2, 0.9]))
"""

from __future__ import annotations

import numpy as np
import torch


class BernoulliSampler:
    """
    Seeded source of Bernoulli draws.

    Parameters
    ----------
    seed : int
        Non-negative root seed. Forks derive their seeds from it, and the
        sampler itself draws from a generator seeded with it.

    Raises
    ------
    ValueError
        If seed is negative.
    """

    def __init__(self, seed: int = 1234):
        # SeedSequence only takes non-negative entropy
        if seed < 0:
            raise ValueError(f"seed must be >= 0, got {seed}")
        self.seed = seed
        self._generator = torch.Generator()
        self._generator.manual_seed(seed)

    def sample_state(self, probabilities: torch.Tensor) -> torch.Tensor:
        """
        Draw one binary state per unit.

        Parameters
        ----------
        probabilities : torch.Tensor
            Activation probabilities in [0, 1].

        Returns
        -------
        torch.Tensor
            Tensor of 0.0 / 1.0 values with the same shape and dtype.
        """
        return torch.bernoulli(probabilities, generator=self._generator)

    def fork(self, *key: int) -> BernoulliSampler:
        """
        Create an independent sampler for the given key.

        The child seed depends only on the root seed and the key, never on
        how many draws the parent has made.
        """
        sequence = np.random.SeedSequence([self.seed, *key])
        # torch seeds must fit in a signed 64-bit integer
        child_seed = int(sequence.generate_state(1, dtype=np.uint64)[0]) >> 1
        return BernoulliSampler(seed=child_seed)

    def __repr__(self) -> str:
        return f"BernoulliSampler(seed={self.seed})"
