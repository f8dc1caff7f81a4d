# aad/ops/reduction.py
"""
Reductions over a dense operand: scalar sum, and row-wise softmax /
log-softmax.

Both softmax variants differentiate through the explicit per-row
Jacobian, so backward is quadratic in the number of columns.
"""

import numpy as np
from scipy.special import logsumexp

from ..core.node import UnaryNode
from ..core.var import Variable


class SumNode(UnaryNode):
    """Sum of all elements, as a (1, 1) value."""

    op_tag = "sum"

    def _allocate(self, operand_value):
        return np.empty((1, 1), dtype=operand_value.dtype)

    def _evaluate(self, operand_value, out):
        out[0, 0] = operand_value.sum()

    def _differentiate(self, operand_value, gradient, out):
        out.fill(gradient[0, 0])


def _softmax_rows(x: np.ndarray, out: np.ndarray) -> None:
    # Max-shift each row before exponentiating
    np.subtract(x, x.max(axis=1, keepdims=True), out=out)
    np.exp(out, out=out)
    out /= out.sum(axis=1, keepdims=True)


class SoftmaxNode(UnaryNode):
    """
    Row-wise softmax.

    Backward builds J = diag(s) - s s^T for each row s and right-multiplies
    the upstream row by it.
    """

    op_tag = "softmax"

    def __init__(self, operand):
        super().__init__(operand)
        width = self._value.shape[1]
        self._jacobian = np.zeros((width, width), dtype=self._value.dtype)

    def _evaluate(self, operand_value, out):
        _softmax_rows(operand_value, out)

    def _differentiate(self, operand_value, gradient, out):
        jacobian = self._jacobian
        for row, s in enumerate(self._value):
            # off-diagonal: -s_i * s_j ; diagonal: s_i * (1 - s_i)
            np.outer(s, s, out=jacobian)
            np.negative(jacobian, out=jacobian)
            jacobian[np.diag_indices_from(jacobian)] += s
            np.dot(gradient[row], jacobian, out=out[row])


class LogSoftmaxNode(UnaryNode):
    """
    Row-wise log-softmax, `x - logsumexp(x)` per row.

    Backward builds J[i][j] = delta_ij - softmax_j for each row.
    """

    op_tag = "log_softmax"

    def __init__(self, operand):
        super().__init__(operand)
        width = self._value.shape[1]
        self._softmax = np.exp(self._value)
        self._jacobian = np.zeros((width, width), dtype=self._value.dtype)
        self._identity = np.eye(width, dtype=self._value.dtype)

    def _evaluate(self, operand_value, out):
        np.subtract(operand_value, logsumexp(operand_value, axis=1, keepdims=True), out=out)

    def _recompute(self):
        super()._recompute()
        np.exp(self._value, out=self._softmax)

    def _differentiate(self, operand_value, gradient, out):
        jacobian = self._jacobian
        for row, s in enumerate(self._softmax):
            np.subtract(self._identity, s[np.newaxis, :], out=jacobian)
            np.dot(gradient[row], jacobian, out=out[row])


def scalar_sum(x: Variable) -> Variable:
    return Variable.from_operands(SumNode(x.node), x)


def softmax(x: Variable) -> Variable:
    return Variable.from_operands(SoftmaxNode(x.node), x)


def log_softmax(x: Variable) -> Variable:
    return Variable.from_operands(LogSoftmaxNode(x.node), x)
