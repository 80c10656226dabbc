"""
RBMForge Configuration System
==============================
Centralized configuration for the RBM model and its contrastive divergence
training run, using Python dataclasses. Every hyperparameter lives here.

Usage:
    # Load from YAML file:
    >>> config = RBMForgeConfig.from_yaml("configs/default.yaml")

    # Create programmatically:
    >>> config = RBMForgeConfig(
    ...     model=ModelConfig(n_inputs=784, n_outputs=256),
    ...     training=TrainingConfig(learning_rate=0.1, cd_n=1),
    ... )

    # Save to YAML:
    >>> config.to_yaml("configs/my_experiment.yaml")

    # Access nested values:
    >>> config.model.n_outputs       # 256
    >>> config.training.batch_size   # 10
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, asdict
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)


# =============================================================================
# Model Configuration
# =============================================================================

@dataclass
class ModelConfig:
    """
    Shape and initialization of the Restricted Boltzmann Machine.

    Parameters
    ----------
    n_inputs : int
        Number of visible (input) units. Every training example must be a
        vector of exactly this length.

    n_outputs : int
        Number of hidden (output) units.

    weight_init_std : float
        Standard deviation of the zero-mean normal distribution the
        connection weights are drawn from. Small values (around 0.01) keep
        the hidden units away from saturation early in training.

    seed : int
        Seed for the weight initialization.
    """
    n_inputs: int = 784
    n_outputs: int = 256
    weight_init_std: float = 0.01
    seed: int = 42

    def validate(self) -> None:
        """
        Check that all model parameters are valid.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        if self.n_inputs < 1:
            raise ValueError(f"n_inputs must be >= 1, got {self.n_inputs}")
        if self.n_outputs < 1:
            raise ValueError(f"n_outputs must be >= 1, got {self.n_outputs}")
        if self.weight_init_std < 0:
            raise ValueError(
                f"weight_init_std must be >= 0, got {self.weight_init_std}"
            )
        if self.seed < 0:
            raise ValueError(f"seed must be >= 0, got {self.seed}")

    @property
    def n_weights(self) -> int:
        """Number of connection weights (n_outputs x n_inputs)."""
        return self.n_inputs * self.n_outputs


# =============================================================================
# Training Configuration
# =============================================================================

@dataclass
class TrainingConfig:
    """
    Hyperparameters for contrastive divergence training.

    Parameters
    ----------
    learning_rate : float
        Step size applied to the mean gradient of each minibatch.

    batch_size : int
        Number of training examples that contribute to one weight update.
        Examples past the last full minibatch of an epoch are ignored.

    cd_n : int
        Number of Gibbs sampling steps per example (the k in CD-k).

    use_momentum : bool
        Whether to use the two-phase Nesterov momentum update for the
        connection weights. Biases never carry momentum.

    momentum_decay : float
        Momentum decay factor in [0, 1). Ignored if use_momentum is False.

    update_input_bias : bool
        Whether training updates the visible-unit biases at all.

    n_epochs : int
        Number of passes over the training examples.

    n_threads : int
        Number of worker threads per minibatch. 0 or a negative value runs
        each minibatch sequentially on the calling thread.

    seed : int
        Seed for the Bernoulli sampler used during training.

    log_every : int
        Log progress every N minibatches. 0 disables per-minibatch logs.

    monitor_reconstruction : bool
        Compute the mean squared reconstruction error over the training
        examples at the end of every epoch.

    use_tqdm : bool
        Show a progress bar over epochs.
    """
    learning_rate: float = 0.1
    batch_size: int = 10
    cd_n: int = 1
    use_momentum: bool = False
    momentum_decay: float = 0.9
    update_input_bias: bool = True
    n_epochs: int = 10
    n_threads: int = 0
    seed: int = 1234
    log_every: int = 100
    monitor_reconstruction: bool = True
    use_tqdm: bool = False

    def validate(self) -> None:
        """Validate training parameters."""
        if self.learning_rate <= 0:
            raise ValueError(
                f"learning_rate must be positive, got {self.learning_rate}"
            )
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.cd_n < 1:
            raise ValueError(f"cd_n must be >= 1, got {self.cd_n}")
        if self.use_momentum and not 0.0 <= self.momentum_decay < 1.0:
            raise ValueError(
                f"momentum_decay must be in [0, 1), got {self.momentum_decay}"
            )
        if self.n_epochs < 0:
            raise ValueError(f"n_epochs must be >= 0, got {self.n_epochs}")
        if self.n_threads > self.batch_size:
            raise ValueError(
                f"n_threads ({self.n_threads}) must not exceed batch_size "
                f"({self.batch_size}); some threads would get no examples."
            )
        if self.log_every < 0:
            raise ValueError(f"log_every must be >= 0, got {self.log_every}")
        if self.seed < 0:
            raise ValueError(f"seed must be >= 0, got {self.seed}")


# =============================================================================
# Master Configuration
# =============================================================================

@dataclass
class RBMForgeConfig:
    """
    Master configuration combining the model and training sections.

    Usage:
        >>> config = RBMForgeConfig.from_yaml("configs/default.yaml")
        >>> config = RBMForgeConfig()
        >>> config.validate()
        >>> config.to_yaml("configs/my_experiment.yaml")
    """
    model: ModelConfig = field(default_factory=ModelConfig)
    training: TrainingConfig = field(default_factory=TrainingConfig)

    def validate(self) -> None:
        """
        Validate all sub-configurations.

        Raises
        ------
        ValueError
            If any parameter is invalid.
        """
        self.model.validate()
        self.training.validate()

        logger.info(
            f"Config validated: {self.model.n_inputs}x{self.model.n_outputs} "
            f"RBM ({self.model.n_weights:,} weights), "
            f"CD-{self.training.cd_n}, batch_size={self.training.batch_size}, "
            f"threads={self.training.n_threads}"
        )

    @classmethod
    def from_yaml(cls, path: str | Path) -> RBMForgeConfig:
        """
        Load configuration from a YAML file.

        Parameters
        ----------
        path : str or Path
            Path to the YAML configuration file.

        Returns
        -------
        RBMForgeConfig
            Loaded and validated configuration.

        Raises
        ------
        FileNotFoundError
            If the YAML file does not exist.
        yaml.YAMLError
            If the YAML file is malformed.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(
                f"Config file not found: {path}. "
                f"Create one from configs/default.yaml as a template."
            )

        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)

        if raw is None:
            raise ValueError(f"Config file is empty: {path}")

        config = cls(
            model=ModelConfig(**raw.get("model", {})),
            training=TrainingConfig(**raw.get("training", {})),
        )

        config.validate()
        return config

    def to_yaml(self, path: str | Path) -> None:
        """
        Save configuration to a YAML file, creating parent directories.

        Parameters
        ----------
        path : str or Path
            Output YAML file path.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            yaml.dump(
                asdict(self),
                f,
                default_flow_style=False,
                sort_keys=False,
            )

        logger.info(f"Config saved to {path}")

    def to_dict(self) -> dict:
        """Convert to nested dictionary."""
        return asdict(self)

    @classmethod
    def for_smoke_test(cls) -> RBMForgeConfig:
        """
        Create a minimal configuration for quick smoke testing.

        A 16-pixel bars-and-stripes sized model that trains in seconds.
        """
        return cls(
            model=ModelConfig(
                n_inputs=16,
                n_outputs=8,
                weight_init_std=0.01,
                seed=42,
            ),
            training=TrainingConfig(
                learning_rate=0.1,
                batch_size=4,
                cd_n=1,
                use_momentum=True,
                momentum_decay=0.5,
                update_input_bias=True,
                n_epochs=2,
                n_threads=2,
                seed=1234,
                log_every=0,
                monitor_reconstruction=True,
                use_tqdm=False,
            ),
        )

    def __repr__(self) -> str:
        """Pretty-print the configuration."""
        momentum = (
            f"momentum={self.training.momentum_decay}"
            if self.training.use_momentum else "no momentum"
        )
        lines = [
            "RBMForgeConfig(",
            f"  Model:    {self.model.n_inputs} visible x "
            f"{self.model.n_outputs} hidden "
            f"(init std={self.model.weight_init_std})",
            f"  Training: lr={self.training.learning_rate}, "
            f"batch_size={self.training.batch_size}, "
            f"CD-{self.training.cd_n}, {momentum}, "
            f"epochs={self.training.n_epochs}",
            f"  Threads:  {self.training.n_threads}",
            ")",
        ]
        return "\n".join(lines)
