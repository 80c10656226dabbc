"""
rbmforge.evaluation: Training Metrics
=======================================
Components:
    - metrics.py  reconstruction error, memory profiling, timing
"""

from rbmforge.evaluation.metrics import MemoryTracker, Timer, reconstruction_error
