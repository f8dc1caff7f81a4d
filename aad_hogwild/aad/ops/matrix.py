# aad/ops/matrix.py
import numpy as np

from ..core.node import BinaryNode
from ..core.var import Variable


class DotNode(BinaryNode):
    """Matrix product `lhs @ rhs` of an (m, k) and a (k, n) operand."""

    op_tag = "dot"

    def _validate(self, lhs_shape, rhs_shape):
        if lhs_shape[1] != rhs_shape[0]:
            raise ValueError(f"Cannot multiply {lhs_shape} by {rhs_shape}: inner dimensions differ")

    def _allocate(self, lhs_value, rhs_value):
        return np.empty((lhs_value.shape[0], rhs_value.shape[1]), dtype=lhs_value.dtype)

    def _evaluate(self, lhs_value, rhs_value, out):
        np.matmul(lhs_value, rhs_value, out=out)

    def _differentiate(self, lhs_value, rhs_value, gradient, lhs_out, rhs_out):
        if lhs_out is not None:
            np.matmul(gradient, rhs_value.T, out=lhs_out)
        if rhs_out is not None:
            np.matmul(lhs_value.T, gradient, out=rhs_out)


class VectorDotNode(BinaryNode):
    """Row-wise dot product of two equally shaped operands, one column out."""

    op_tag = "vector_dot"

    def _allocate(self, lhs_value, rhs_value):
        return np.empty((lhs_value.shape[0], 1), dtype=lhs_value.dtype)

    def _evaluate(self, lhs_value, rhs_value, out):
        np.einsum("ij,ij->i", lhs_value, rhs_value, out=out[:, 0])

    def _differentiate(self, lhs_value, rhs_value, gradient, lhs_out, rhs_out):
        # gradient is (rows, 1) and broadcasts across each row
        if lhs_out is not None:
            np.multiply(rhs_value, gradient, out=lhs_out)
        if rhs_out is not None:
            np.multiply(lhs_value, gradient, out=rhs_out)


def _check_variable(y, what):
    if not isinstance(y, Variable):
        raise TypeError(f"{what} needs two Variables, got {type(y)}")


def dot(x: Variable, y: Variable) -> Variable:
    _check_variable(y, "dot")
    return Variable.from_operands(DotNode(x.node, y.node), x, y)


def vector_dot(x: Variable, y: Variable) -> Variable:
    _check_variable(y, "vector_dot")
    return Variable.from_operands(VectorDotNode(x.node, y.node), x, y)
