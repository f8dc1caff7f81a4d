# aad/core/node.py
from abc import ABC, abstractmethod
from typing import Iterable, List, Tuple

import numpy as np

from ...config import DTYPE


def as_matrix(value, dtype=DTYPE) -> np.ndarray:
    """
    Copy `value` into a fresh, C-contiguous 2-D array.

    Scalars become (1, 1) and 1-D sequences become a single row; anything
    with more than two dimensions is rejected.
    """
    if not isinstance(value, (int, float, list, tuple, np.ndarray, np.number)):
        raise TypeError(
            f"Dense values must be numeric (int, float, list, tuple, ndarray), "
            f"but got {type(value)}"
        )
    arr = np.array(value, dtype=dtype, ndmin=2)
    if arr.ndim != 2:
        raise ValueError(f"Dense values must be 2-D, got shape {arr.shape}")
    return np.ascontiguousarray(arr)


def readonly(arr: np.ndarray) -> np.ndarray:
    """Return a view of `arr` that cannot be written through."""
    view = arr.view()
    view.flags.writeable = False
    return view


def topological_order(root: "Node") -> List["Node"]:
    """
    Every node reachable from `root`, each once, operands before consumers.

    Iterative, so graph depth is not bounded by the recursion limit.
    """
    order: List[Node] = []
    seen = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if expanded:
            order.append(node)
            continue
        if id(node) in seen:
            continue
        seen.add(id(node))
        stack.append((node, True))
        for operand in reversed(node.operands()):
            if id(operand) not in seen:
                stack.append((operand, False))
    return order


class Node(ABC):
    """
    One operation or leaf in the computation graph.

    Nodes are built bottom-up and never change topology afterwards. A node
    may be the operand of several downstream nodes (fan-out), so all of its
    mutable state (cached value, gradient scratch buffers) is updated in
    place rather than replaced.

    `forward`, `backward` and `clear` walk the graph with explicit stacks;
    subclasses only implement the per-node steps `_recompute` and `_push`.

    Attributes
    ----------
    op_tag : str
        Name of the variant ("add", "softmax", ...), used by graph utilities.
    _needs_gradient : bool
        Fixed at construction: True for parameters, False for inputs, and
        the OR of the operands' flags for every operator.
    _stale : bool
        Set by `clear()`, reset by `forward()`.
    """

    op_tag = "node"

    def __init__(self, needs_gradient: bool):
        self._needs_gradient = needs_gradient
        self._stale = False

    @abstractmethod
    def _recompute(self) -> None:
        """Recompute the cached value in place from the operands' current values."""

    @abstractmethod
    def _push(self, gradient: np.ndarray) -> Iterable[Tuple["Node", np.ndarray]]:
        """
        Turn `gradient` (d output / d this node) into one gradient per
        operand, returned as (operand, gradient) pairs. Parameter leaves
        accumulate here and return nothing.
        """

    @abstractmethod
    def value(self) -> np.ndarray:
        """Read-only view over the current value."""

    def forward(self) -> None:
        """Recompute every node under this one, operands first."""
        for node in topological_order(self):
            node._recompute()

    def backward(self, gradient: np.ndarray) -> None:
        """
        Push `gradient` down to every reachable Parameter.

        A node reached through several consumers is pushed once per
        consumer; only Parameter leaves accumulate what they receive.
        """
        if not self._needs_gradient:
            return
        stack = [(self, gradient)]
        while stack:
            node, upstream = stack.pop()
            # rhs first on the stack, so lhs subtrees run first
            for operand, operand_gradient in reversed(tuple(node._push(upstream))):
                if operand.needs_gradient():
                    stack.append((operand, operand_gradient))

    def clear(self) -> None:
        """Mark this node and everything below it as needing recomputation."""
        for node in topological_order(self):
            node._stale = True

    def clip(self, lower: float, upper: float) -> None:
        """Clamp the cached value in place until the next forward."""
        np.clip(self._value, lower, upper, out=self._value)

    def needs_gradient(self) -> bool:
        return self._needs_gradient

    def operands(self) -> Tuple["Node", ...]:
        return ()

    @property
    def is_stale(self) -> bool:
        return self._stale

    @property
    def shape(self) -> Tuple[int, ...]:
        return self.value().shape

    def _check_shape(self, actual, expected, what: str) -> None:
        assert actual == expected, (
            f"{type(self).__name__}: {what} changed shape from {expected} to {actual}"
        )

    def __repr__(self):
        return f"{type(self).__name__}(shape={self.shape}, needs_gradient={self._needs_gradient})"


class LeafNode(Node):
    """Node without operands; its value is set from outside the graph."""

    def _recompute(self):
        self._stale = False

    def _push(self, gradient):
        return ()


class UnaryNode(Node):
    """
    Operator with a single dense operand.

    Subclasses implement `_evaluate(operand_value, out)` and
    `_differentiate(operand_value, gradient, out)`; both write into a
    preallocated buffer.
    """

    def __init__(self, operand: Node):
        super().__init__(operand.needs_gradient())
        self.operand = operand
        operand_value = operand.value()
        self._operand_shape = operand_value.shape
        self._value = self._allocate(operand_value)
        self._evaluate(operand_value, self._value)
        self._operand_gradient = np.zeros(self._operand_shape, dtype=self._value.dtype)

    def _allocate(self, operand_value: np.ndarray) -> np.ndarray:
        return np.empty_like(operand_value)

    def _evaluate(self, operand_value: np.ndarray, out: np.ndarray) -> None:
        raise NotImplementedError

    def _differentiate(self, operand_value: np.ndarray, gradient: np.ndarray, out: np.ndarray) -> None:
        raise NotImplementedError

    def operands(self):
        return (self.operand,)

    def _recompute(self):
        operand_value = self.operand.value()
        self._check_shape(operand_value.shape, self._operand_shape, "operand")
        self._evaluate(operand_value, self._value)
        self._stale = False

    def _push(self, gradient):
        if not self._needs_gradient:
            return ()
        self._differentiate(self.operand.value(), gradient, self._operand_gradient)
        return ((self.operand, self._operand_gradient),)

    def value(self):
        return readonly(self._value)


class BinaryNode(Node):
    """
    Operator with two dense operands.

    Subclasses implement `_evaluate(lhs_value, rhs_value, out)` and
    `_differentiate(lhs_value, rhs_value, gradient, lhs_out, rhs_out)`,
    where either output buffer is None when that side needs no gradient.
    """

    def __init__(self, lhs: Node, rhs: Node):
        super().__init__(lhs.needs_gradient() or rhs.needs_gradient())
        self.lhs = lhs
        self.rhs = rhs
        lhs_value, rhs_value = lhs.value(), rhs.value()
        self._validate(lhs_value.shape, rhs_value.shape)
        self._lhs_shape = lhs_value.shape
        self._rhs_shape = rhs_value.shape
        self._value = self._allocate(lhs_value, rhs_value)
        self._evaluate(lhs_value, rhs_value, self._value)
        self._lhs_gradient = np.zeros(self._lhs_shape, dtype=self._value.dtype)
        self._rhs_gradient = np.zeros(self._rhs_shape, dtype=self._value.dtype)

    def _validate(self, lhs_shape, rhs_shape) -> None:
        if lhs_shape != rhs_shape:
            raise ValueError(
                f"{type(self).__name__}: operand shapes differ: {lhs_shape} vs {rhs_shape}"
            )

    def _allocate(self, lhs_value: np.ndarray, rhs_value: np.ndarray) -> np.ndarray:
        return np.empty_like(lhs_value)

    def _evaluate(self, lhs_value, rhs_value, out) -> None:
        raise NotImplementedError

    def _differentiate(self, lhs_value, rhs_value, gradient, lhs_out, rhs_out) -> None:
        raise NotImplementedError

    def operands(self):
        return (self.lhs, self.rhs)

    def _recompute(self):
        lhs_value, rhs_value = self.lhs.value(), self.rhs.value()
        self._check_shape(lhs_value.shape, self._lhs_shape, "LHS operand")
        self._check_shape(rhs_value.shape, self._rhs_shape, "RHS operand")
        self._evaluate(lhs_value, rhs_value, self._value)
        self._stale = False

    def _push(self, gradient):
        if not self._needs_gradient:
            return ()
        lhs_out = self._lhs_gradient if self.lhs.needs_gradient() else None
        rhs_out = self._rhs_gradient if self.rhs.needs_gradient() else None
        self._differentiate(self.lhs.value(), self.rhs.value(), gradient, lhs_out, rhs_out)
        pushes = []
        if lhs_out is not None:
            pushes.append((self.lhs, lhs_out))
        if rhs_out is not None:
            pushes.append((self.rhs, rhs_out))
        return pushes

    def value(self):
        return readonly(self._value)
