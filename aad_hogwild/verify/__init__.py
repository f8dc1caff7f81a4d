# verify/__init__.py

from .finite_difference import finite_difference, assert_close
from .report import check_gradients
from .plots import plot_gradient_check, plot_training_curves

__all__ = [
    "finite_difference", "assert_close",
    "check_gradients",
    "plot_gradient_check", "plot_training_curves",
]
