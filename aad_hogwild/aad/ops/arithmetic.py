# aad/ops/arithmetic.py
import numbers

import numpy as np

from ..core.node import BinaryNode, UnaryNode
from ..core.leaves import InputNode
from ..core.var import Variable


class AddNode(BinaryNode):
    op_tag = "add"

    def _evaluate(self, lhs_value, rhs_value, out):
        np.add(lhs_value, rhs_value, out=out)

    def _push(self, gradient):
        # d(a+b)/da = d(a+b)/db = 1: both sides receive the upstream gradient as is
        if not self._needs_gradient:
            return ()
        return ((self.lhs, gradient), (self.rhs, gradient))


class SubNode(BinaryNode):
    op_tag = "sub"

    def _evaluate(self, lhs_value, rhs_value, out):
        np.subtract(lhs_value, rhs_value, out=out)

    def _push(self, gradient):
        if not self._needs_gradient:
            return ()
        pushes = [(self.lhs, gradient)]
        if self.rhs.needs_gradient():
            np.negative(gradient, out=self._rhs_gradient)
            pushes.append((self.rhs, self._rhs_gradient))
        return pushes


class MulNode(BinaryNode):
    op_tag = "mul"

    def _evaluate(self, lhs_value, rhs_value, out):
        np.multiply(lhs_value, rhs_value, out=out)

    def _differentiate(self, lhs_value, rhs_value, gradient, lhs_out, rhs_out):
        if lhs_out is not None:
            np.multiply(rhs_value, gradient, out=lhs_out)
        if rhs_out is not None:
            np.multiply(lhs_value, gradient, out=rhs_out)


class DivNode(BinaryNode):
    op_tag = "div"

    def _evaluate(self, lhs_value, rhs_value, out):
        np.divide(lhs_value, rhs_value, out=out)

    def _differentiate(self, lhs_value, rhs_value, gradient, lhs_out, rhs_out):
        # d(a/b)/da = 1/b ; d(a/b)/db = -a/b^2
        if lhs_out is not None:
            np.divide(gradient, rhs_value, out=lhs_out)
        if rhs_out is not None:
            np.divide(lhs_value, np.square(rhs_value), out=rhs_out)
            np.negative(rhs_out, out=rhs_out)
            rhs_out *= gradient


class NegNode(UnaryNode):
    op_tag = "neg"

    def _evaluate(self, operand_value, out):
        np.negative(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        np.negative(gradient, out=out)


def _constant_like(scalar, other: Variable) -> Variable:
    """
    Promote a scalar to a constant Input leaf shaped like `other`'s current
    value. The shape is frozen here; it does not follow `other` afterwards.
    """
    return Variable(InputNode(other.value * 0.0 + scalar))


def _binary(x, y, node_cls):
    """
    Build `node_cls(x, y)`, promoting a bare scalar on either side to a
    constant of the other side's shape.
    """
    x_is_var = isinstance(x, Variable)
    y_is_var = isinstance(y, Variable)

    if x_is_var and not y_is_var:
        if not isinstance(y, numbers.Real):
            raise TypeError(f"Unsupported constant operand of type {type(y)}")
        y = _constant_like(y, x)
    elif y_is_var and not x_is_var:
        if not isinstance(x, numbers.Real):
            raise TypeError(f"Unsupported constant operand of type {type(x)}")
        x = _constant_like(x, y)
    elif not (x_is_var and y_is_var):
        raise TypeError(f"At least one operand must be a Variable, got {type(x)} and {type(y)}")

    return Variable.from_operands(node_cls(x.node, y.node), x, y)


def add(x, y): return _binary(x, y, AddNode)
def sub(x, y): return _binary(x, y, SubNode)
def mul(x, y): return _binary(x, y, MulNode)
def div(x, y): return _binary(x, y, DivNode)


def neg(x: Variable) -> Variable:
    return Variable.from_operands(NegNode(x.node), x)
