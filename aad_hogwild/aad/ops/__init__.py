# aad/ops/__init__.py

from . import arithmetic
from . import transcendental
from . import reduction
from . import structural
from . import matrix

# Convenience re-exports so users can do: from aad_hogwild.aad.ops import dot, softmax, ...
from .arithmetic import add, sub, mul, div, neg
from .transcendental import square, exp, ln, tanh, sigmoid, relu
from .reduction import scalar_sum, softmax, log_softmax
from .structural import transpose, stack, slice_rows_cols, index
from .matrix import dot, vector_dot

__all__ = [
    "add", "sub", "mul", "div", "neg",
    "square", "exp", "ln", "tanh", "sigmoid", "relu",
    "scalar_sum", "softmax", "log_softmax",
    "transpose", "stack", "slice_rows_cols", "index",
    "dot", "vector_dot",
]
