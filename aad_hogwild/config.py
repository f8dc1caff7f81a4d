"""
Configuration for the differentiation core and its drivers.

Numeric defaults and the small dataclasses used by the gradient checker
and the Hogwild thread pool live here, so that tests and callers tune
behaviour in one place instead of threading keyword arguments through.
"""

import os
from dataclasses import dataclass
from typing import Optional

import numpy as np

# Element type of every dense value, gradient and parameter store.
DTYPE = np.float64

# Element type of index lists fed to IndexInput leaves.
INDEX_DTYPE = np.intp


@dataclass
class GradCheckConfig:
    """Configuration for finite-difference gradient checks."""
    # Perturbation: each element is bumped by +/- delta / 2
    delta: float = 1e-4
    # Absolute per-element tolerance between numeric and analytic gradients
    tolerance: float = 0.05

    # Logging
    verbose: bool = False


@dataclass
class HogwildConfig:
    """Configuration for the Hogwild worker pool."""
    n_workers: Optional[int] = None  # None -> one worker per CPU

    # Logging
    verbose: bool = False

    def resolve_workers(self) -> int:
        if self.n_workers is not None:
            if self.n_workers < 1:
                raise ValueError(f"n_workers must be positive, got {self.n_workers}")
            return self.n_workers
        return os.cpu_count() or 1
