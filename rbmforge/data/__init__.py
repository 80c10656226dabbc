"""
rbmforge.data: Training Data
=============================
Components:
    - datasets.py  .npy / .csv loading and bars-and-stripes synthetic data
"""

from rbmforge.data.datasets import bars_and_stripes, load_training_matrix
