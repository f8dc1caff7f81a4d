# aad/core/var.py
from __future__ import annotations

import heapq
import itertools
from typing import Iterable, List, Tuple

import numpy as np

from .leaves import IndexInputNode, InputNode
from .node import Node
from .parameter import ExclusiveParameter, HogwildParameter, ParameterNode


def merge_parameters(xs: Iterable[ParameterNode], ys: Iterable[ParameterNode]) -> Tuple[ParameterNode, ...]:
    """
    Union of two parameter lists, each sorted by node identity.

    The result is sorted the same way and holds every node once, however
    many times it appears in the inputs.
    """
    merged = heapq.merge(xs, ys, key=id)
    return tuple(next(group) for _, group in itertools.groupby(merged, key=id))


class Variable:
    """
    Handle onto one node of the computation graph.

    Several handles may refer to the same node; building an operator from a
    handle never copies the node, so a value used twice is one shared node
    with two consumers.

    Attributes
    ----------
    node : Node
        The node this handle refers to.
    _parameters : tuple of ParameterNode
        Every Parameter leaf reachable from `node`, deduplicated and sorted
        by `id()`.
    _seed : np.ndarray or None
        Buffer holding the backward seed, kept between calls.
    """

    __array_priority__ = 1000  # numpy defers to our reflected operators

    def __init__(self, node: Node, parameters: Iterable[ParameterNode] = ()):
        if not isinstance(node, Node):
            raise TypeError(f"Variable needs a graph node, got {type(node)}")
        self.node = node
        self._parameters = tuple(parameters)
        self._seed = None

    @classmethod
    def from_operands(cls, node: Node, *operands: "Variable") -> "Variable":
        """Wrap an operator node, collecting the parameters of its operands."""
        parameters: Tuple[ParameterNode, ...] = ()
        for operand in operands:
            parameters = merge_parameters(parameters, operand._parameters)
        return cls(node, parameters)

    def __repr__(self):
        return (f"Variable({self.node.op_tag}, shape={self.shape}, "
                f"parameters={len(self._parameters)})")

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------
    @property
    def value(self) -> np.ndarray:
        """Read-only view of the node's value, recomputed first if cleared."""
        if self.node.is_stale:
            self.node.forward()
        return self.node.value()

    @property
    def shape(self) -> Tuple[int, int]:
        return self.node.shape

    def forward(self) -> None:
        self.node.forward()

    def backward(self, weight: float = 1.0) -> None:
        """
        Seed the output with `weight` everywhere and push gradients down to
        every reachable Parameter, where they add to what is already there.
        """
        if self.node.is_stale:
            self.node.forward()
        if not self.node.needs_gradient():
            return

        value = self.node.value()
        if self._seed is None or self._seed.shape != value.shape:
            self._seed = np.full_like(value, weight)
        else:
            self._seed.fill(weight)

        self.node.backward(self._seed)

    def clear(self) -> None:
        self.node.clear()

    def clip(self, lower: float, upper: float) -> None:
        """
        Clamp the node's current value to [lower, upper] in place, e.g. to
        bound a loss before `backward`. The next `forward` recomputes it.
        """
        self.node.clip(lower, upper)

    def zero_gradient(self) -> None:
        for parameter in self._parameters:
            parameter.zero_gradient()

    def parameters(self) -> List["Variable"]:
        return [Variable(node, (node,)) for node in self._parameters]

    def gradient(self) -> np.ndarray:
        """Dense gradient of a Parameter handle, sparse rows included."""
        if not isinstance(self.node, ParameterNode):
            raise TypeError(f"Only parameters carry gradients, not {self.node.op_tag} nodes")
        return self.node.materialized_gradient()

    def set_value(self, value) -> None:
        if not isinstance(self.node, (InputNode, IndexInputNode, ParameterNode)):
            raise TypeError(f"Cannot assign a value to a {self.node.op_tag} node")
        self.node.set_value(value)

    def clone(self) -> "Variable":
        return Variable(self.node, self._parameters)

    __copy__ = clone

    # ------------------------------------------------------------------
    # Operator overloading
    # ------------------------------------------------------------------
    def __add__(self, other):
        from ..ops.arithmetic import add
        return add(self, other)

    def __radd__(self, other):
        from ..ops.arithmetic import add
        return add(other, self)

    def __sub__(self, other):
        from ..ops.arithmetic import sub
        return sub(self, other)

    def __rsub__(self, other):
        from ..ops.arithmetic import sub
        return sub(other, self)

    def __mul__(self, other):
        from ..ops.arithmetic import mul
        return mul(self, other)

    def __rmul__(self, other):
        from ..ops.arithmetic import mul
        return mul(other, self)

    def __truediv__(self, other):
        from ..ops.arithmetic import div
        return div(self, other)

    def __rtruediv__(self, other):
        from ..ops.arithmetic import div
        return div(other, self)

    def __neg__(self):
        from ..ops.arithmetic import neg
        return neg(self)

    def __matmul__(self, other):
        return self.dot(other)

    def dot(self, other):
        from ..ops.matrix import dot
        return dot(self, other)

    def vector_dot(self, other):
        from ..ops.matrix import vector_dot
        return vector_dot(self, other)

    def stack(self, other, axis: int = 0):
        from ..ops.structural import stack
        return stack(self, other, axis)

    def slice(self, rows: slice, cols: slice):
        from ..ops.structural import slice_rows_cols
        return slice_rows_cols(self, rows, cols)

    def __getitem__(self, key):
        if not isinstance(key, tuple):
            key = (key, slice(None))
        if len(key) != 2:
            raise TypeError(f"Variables are 2-D, got a key with {len(key)} parts")
        return self.slice(*key)

    def index(self, indices):
        from ..ops.structural import index
        return index(self, indices)

    def t(self):
        from ..ops.structural import transpose
        return transpose(self)

    def square(self):
        from ..ops.transcendental import square
        return square(self)

    def exp(self):
        from ..ops.transcendental import exp
        return exp(self)

    def ln(self):
        from ..ops.transcendental import ln
        return ln(self)

    def tanh(self):
        from ..ops.transcendental import tanh
        return tanh(self)

    def sigmoid(self):
        from ..ops.transcendental import sigmoid
        return sigmoid(self)

    def relu(self):
        from ..ops.transcendental import relu
        return relu(self)

    def softmax(self):
        from ..ops.reduction import softmax
        return softmax(self)

    def log_softmax(self):
        from ..ops.reduction import log_softmax
        return log_softmax(self)

    def sum(self):
        from ..ops.reduction import scalar_sum
        return scalar_sum(self)


# ----------------------------------------------------------------------
# Leaf constructors
# ----------------------------------------------------------------------
def input_var(value) -> Variable:
    """Dense input leaf; feed new values with `set_value`."""
    return Variable(InputNode(value))


def index_input(indices) -> Variable:
    """Integer index list, consumed by `Variable.index`."""
    return Variable(IndexInputNode(indices))


def parameter(value) -> Variable:
    """Trainable leaf over a private copy of `value`."""
    node = ParameterNode(ExclusiveParameter(value))
    return Variable(node, (node,))


def shared_parameter(store: HogwildParameter) -> Variable:
    """
    Trainable leaf over a store shared with other graphs (and threads).

    Each call creates a new node with its own gradient accumulator; only
    the values are shared.
    """
    if not isinstance(store, HogwildParameter):
        raise TypeError(
            f"shared_parameter needs a HogwildParameter, got {type(store).__name__}; "
            f"use parameter() for a private value"
        )
    node = ParameterNode(store)
    return Variable(node, (node,))
