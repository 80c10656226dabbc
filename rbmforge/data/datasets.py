"""
RBMForge Training Data
=======================
Loading training matrices from disk and generating a small synthetic set.

Formats:
    .npy   numpy array, loaded with np.load
    .csv   comma-separated values, one example per line, no header

Synthetic data:
    Bars and stripes (MacKay, 2003): on a size x size grid, either every
    pixel of a set of rows is on (stripes) or every pixel of a set of
    columns is on (bars). There are 2 ** (size + 1) - 2 distinct patterns
    once the all-off and all-on images are counted once each. A 4x4 grid
    gives 30 patterns of 16 pixels, small enough to learn in seconds.

Usage:
    >>> data = load_training_matrix("data/train.npy")
    >>> data = bars_and_stripes(size=4)
    >>> data.shape
    (30, 16)
"""

from __future__ import annotations

import itertools
import logging
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)


def load_training_matrix(path: str | Path) -> np.ndarray:
    """
    Load a training matrix from a .npy or .csv file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    ValueError
        If the extension is not supported.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Training data not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".npy":
        data = np.load(path)
    elif suffix == ".csv":
        data = np.loadtxt(path, delimiter=",", ndmin=2)
    else:
        raise ValueError(
            f"Unsupported training data format: '{suffix}'. "
            f"Choose from: .npy, .csv"
        )

    data = np.asarray(data, dtype=np.float64)
    logger.info(f"Loaded training matrix {data.shape} from {path}")
    return data


def bars_and_stripes(size: int = 4, shuffle_seed: int | None = None) -> np.ndarray:
    """
    All distinct bars-and-stripes patterns on a size x size grid.

    Parameters
    ----------
    size : int
        Grid side length.
    shuffle_seed : int or None
        If given, shuffle the rows with this seed.

    Returns
    -------
    np.ndarray
        (2 ** (size + 1) - 2, size * size) matrix of 0.0 / 1.0.
    """
    if size < 1:
        raise ValueError(f"size must be >= 1, got {size}")

    patterns = []
    seen = set()
    for mask in itertools.product((0.0, 1.0), repeat=size):
        row_pattern = np.repeat(np.array(mask)[:, None], size, axis=1)
        for grid in (row_pattern, row_pattern.T):
            key = grid.tobytes()
            if key not in seen:
                seen.add(key)
                patterns.append(grid.reshape(-1))

    data = np.stack(patterns)
    if shuffle_seed is not None:
        np.random.default_rng(shuffle_seed).shuffle(data)
    return data
