#!/usr/bin/env python3
"""
RBMForge Training Script
=========================
Trains an RBM with contrastive divergence on a training matrix and logs
a summary of the run.

Usage:
    python scripts/train.py --config configs/default.yaml --data data/train.npy
    python scripts/train.py --smoke-test
"""

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from rbmforge.config import RBMForgeConfig
from rbmforge.data.datasets import bars_and_stripes, load_training_matrix
from rbmforge.evaluation.metrics import MemoryTracker
from rbmforge.model.rbm import RestrictedBoltzmannMachine
from rbmforge.training.trainer import RBMTrainer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(
        description="RBMForge Training",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Train on a .npy matrix, one example per row:
    python scripts/train.py --config configs/default.yaml --data data/train.npy

    # Quick smoke test on 4x4 bars and stripes:
    python scripts/train.py --smoke-test

    # Override the thread count:
    python scripts/train.py --config configs/default.yaml --data data/train.csv --threads 4
        """,
    )
    parser.add_argument(
        "--config", type=str, default="configs/default.yaml",
    )
    parser.add_argument(
        "--smoke-test", action="store_true",
        help="Use the smoke-test config and synthetic bars-and-stripes data",
    )
    parser.add_argument(
        "--data", type=str, default=None,
        help="Training matrix (.npy or .csv), one example per row",
    )
    parser.add_argument(
        "--epochs", type=int, default=None,
        help="Override training.n_epochs",
    )
    parser.add_argument(
        "--threads", type=int, default=None,
        help="Override training.n_threads (0 = sequential)",
    )
    args = parser.parse_args()

    # Load config
    if args.smoke_test:
        config = RBMForgeConfig.for_smoke_test()
        config.validate()
    else:
        config = RBMForgeConfig.from_yaml(args.config)

    if args.epochs is not None:
        config.training.n_epochs = args.epochs
    if args.threads is not None:
        config.training.n_threads = args.threads
    config.training.validate()
    logger.info(f"\n{config}")

    # Load data
    if args.data is not None:
        data = load_training_matrix(args.data)
    elif args.smoke_test:
        side = int(round(config.model.n_inputs ** 0.5))
        data = bars_and_stripes(size=side, shuffle_seed=config.training.seed)
        logger.info(f"Generated {data.shape[0]} bars-and-stripes patterns")
    else:
        parser.error("--data is required unless --smoke-test is given")

    # Train
    model = RestrictedBoltzmannMachine.from_config(config)
    trainer = RBMTrainer(model, config.training, name="train")

    with MemoryTracker("Training") as tracker:
        results = trainer.train(
            data,
            n_epochs=config.training.n_epochs,
            n_threads=config.training.n_threads,
        )

    # Summary
    logger.info("=" * 60)
    logger.info("Training summary")
    logger.info("=" * 60)
    logger.info(f"Epochs:              {results['epochs']}")
    logger.info(f"Minibatches:         {results['total_minibatches']}")
    logger.info(f"Examples processed:  {results['examples_processed']:,}")
    logger.info(f"Ignored per epoch:   {results['examples_ignored_per_epoch']}")
    if results["reconstruction_errors"]:
        logger.info(
            f"Recon error:         {results['reconstruction_errors'][0]:.6f} "
            f"-> {results['reconstruction_errors'][-1]:.6f}"
        )
    logger.info(f"Time:                {results['total_time_seconds']:.2f}s")
    logger.info(f"Peak memory:         {tracker.peak_mb:.1f}MB")


if __name__ == "__main__":
    main()
