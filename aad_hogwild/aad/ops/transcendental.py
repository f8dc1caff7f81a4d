# aad/ops/transcendental.py
import numpy as np
from scipy.special import expit

from ..core.node import UnaryNode
from ..core.var import Variable


class SquareNode(UnaryNode):
    op_tag = "square"

    def _evaluate(self, operand_value, out):
        np.square(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        np.multiply(operand_value, 2.0, out=out)
        out *= gradient


class ExpNode(UnaryNode):
    op_tag = "exp"

    def _evaluate(self, operand_value, out):
        np.exp(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        # d exp(x) = exp(x): reuse the cached value
        np.multiply(self._value, gradient, out=out)


class LogNode(UnaryNode):
    op_tag = "ln"

    def _evaluate(self, operand_value, out):
        np.log(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        np.divide(gradient, operand_value, out=out)


class TanhNode(UnaryNode):
    op_tag = "tanh"

    def _evaluate(self, operand_value, out):
        np.tanh(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        # 1 - tanh^2
        np.square(self._value, out=out)
        np.subtract(1.0, out, out=out)
        out *= gradient


class SigmoidNode(UnaryNode):
    op_tag = "sigmoid"

    def _evaluate(self, operand_value, out):
        expit(operand_value, out=out)

    def _differentiate(self, operand_value, gradient, out):
        # upstream * s * (1 - s)
        s = self._value
        np.subtract(1.0, s, out=out)
        out *= s
        out *= gradient


class ReluNode(UnaryNode):
    op_tag = "relu"

    def _evaluate(self, operand_value, out):
        np.maximum(operand_value, 0.0, out=out)

    def _differentiate(self, operand_value, gradient, out):
        np.multiply(gradient, operand_value > 0.0, out=out)


def _unary(x: Variable, node_cls) -> Variable:
    return Variable.from_operands(node_cls(x.node), x)


def square(x): return _unary(x, SquareNode)
def exp(x): return _unary(x, ExpNode)
def ln(x): return _unary(x, LogNode)
def tanh(x): return _unary(x, TanhNode)
def sigmoid(x): return _unary(x, SigmoidNode)
def relu(x): return _unary(x, ReluNode)
