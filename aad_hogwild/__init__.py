"""
aad_hogwild: reverse-mode automatic differentiation with lock-free shared
parameters for asynchronous (Hogwild) parallel training.
"""

import logging

from .aad import (
    Variable,
    input_var,
    index_input,
    parameter,
    shared_parameter,
    ExclusiveParameter,
    HogwildParameter,
    get_graph_stats,
    print_graph_summary,
)
from .config import DTYPE, GradCheckConfig, HogwildConfig

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "Variable",
    "input_var",
    "index_input",
    "parameter",
    "shared_parameter",
    "ExclusiveParameter",
    "HogwildParameter",
    "get_graph_stats",
    "print_graph_summary",
    "DTYPE",
    "GradCheckConfig",
    "HogwildConfig",
]
