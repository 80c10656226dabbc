"""
RBMForge Batch-Member Processor
================================
Runs contrastive divergence for a single training example and folds the
result into a DeltaAccumulator.

For example v and k = model.cd_n:

    h0       = p(h | v)                      "data" hidden probabilities
    h        = h0
    repeat k times:
        v_recon = p(v | h)
        h       = p(h | v_recon)             "recon" state after k steps

    delta_w[i][j]        += sample(h0[i]) * v[j] - h[i] * v_recon[j]
    delta_output_bias[i] += h0[i] - h[i]
    delta_input_bias[j]  += v[j] - v_recon[j]

The data-side hidden term is a Bernoulli draw with probability h0[i]; the
reconstruction-side terms are the real-valued probabilities. The asymmetry
follows Hinton's practical guide to training RBMs (Aug. 2010) and is kept
as is.

The model is only read here. Several workers call process_example on the
same model concurrently, each with its own accumulator and sampler.
"""

from __future__ import annotations

import torch

from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.model.sampling import BernoulliSampler
from rbmforge.training.delta import DeltaAccumulator


def gibbs_reconstruction(
    model: RestrictedBoltzmannMachine,
    example: torch.Tensor,
) -> tuple[torch.Tensor, torch.Tensor, torch.Tensor]:
    """
    Run cd_n steps of alternating Gibbs sampling starting from example.

    Returns
    -------
    tuple
        (h0, v_recon, h_recon): the data hidden probabilities and the
        final visible and hidden reconstructions.
    """
    init_output_recon = model.clamp_input(example)
    output_recon = init_output_recon
    input_recon = None
    for _ in range(model.cd_n):
        input_recon = model.clamp_output(output_recon)
        output_recon = model.clamp_input(input_recon)
    return init_output_recon, input_recon, output_recon


def process_example(
    model: RestrictedBoltzmannMachine,
    example: torch.Tensor,
    accumulator: DeltaAccumulator,
    sampler: BernoulliSampler,
) -> None:
    """
    Add one example's CD-k gradient to accumulator.

    Parameters
    ----------
    model : RestrictedBoltzmannMachine
        The RBM, read-only.
    example : torch.Tensor
        Visible vector of length model.n_inputs.
    accumulator : DeltaAccumulator
        Owned by the calling worker.
    sampler : BernoulliSampler
        Owned by the calling worker.
    """
    h0, v_recon, h_recon = gibbs_reconstruction(model, example)

    # <v h>_data - <v h>_recon
    delta_w = torch.outer(sampler.sample_state(h0), example)
    delta_w.sub_(torch.outer(h_recon, v_recon))

    accumulator.add_example(
        delta_w=delta_w,
        delta_input_bias=example - v_recon,
        delta_output_bias=h0 - h_recon,
    )
