"""
RBMForge Setup Script
======================
Installs RBMForge as a local editable package so that all internal
imports (e.g. `from rbmforge.training.trainer import RBMTrainer`) work
from any script or notebook.

Usage:
    cd /path/to/rbmforge
    pip install -e .
    pip install -e ".[dev]"     # with the test suite's requirements
"""

from setuptools import setup, find_packages

setup(
    name="rbmforge",
    version="0.1.0",
    description=(
        "RBMForge: Thread-Parallel Contrastive Divergence Training of "
        "Restricted Boltzmann Machines"
    ),
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(include=["rbmforge", "rbmforge.*"]),
    python_requires=">=3.10",
    install_requires=[
        "torch>=2.1.0",
        "numpy>=1.24.0",
        "tqdm>=4.65.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": ["pytest>=7.0"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
)
