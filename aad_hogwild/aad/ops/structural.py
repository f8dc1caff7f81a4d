# aad/ops/structural.py
"""
Nodes that rearrange values without arithmetic: transpose, concatenation,
slicing, and the row gather used for embeddings.
"""

import numpy as np

from ..core.leaves import IndexInputNode
from ..core.node import BinaryNode, Node, UnaryNode, readonly
from ..core.parameter import ParameterNode
from ..core.var import Variable


class TransposeNode(UnaryNode):
    op_tag = "transpose"

    def _allocate(self, operand_value):
        return np.empty(operand_value.shape[::-1], dtype=operand_value.dtype)

    def _evaluate(self, operand_value, out):
        np.copyto(out, operand_value.T)

    def _differentiate(self, operand_value, gradient, out):
        np.copyto(out, gradient.T)


class ConcatenateNode(BinaryNode):
    """
    Stack two operands along `axis`: 0 puts rhs below lhs, 1 puts it to the
    right. The other dimension must agree.
    """

    op_tag = "concatenate"

    def __init__(self, lhs, rhs, axis: int):
        self.axis = axis
        super().__init__(lhs, rhs)

    def _validate(self, lhs_shape, rhs_shape):
        if self.axis not in (0, 1):
            raise ValueError(f"Concatenation axis must be 0 or 1, got {self.axis}")
        other = 1 - self.axis
        if lhs_shape[other] != rhs_shape[other]:
            raise ValueError(
                f"Cannot stack {lhs_shape} and {rhs_shape} along axis {self.axis}"
            )

    def _allocate(self, lhs_value, rhs_value):
        return np.concatenate((lhs_value, rhs_value), axis=self.axis)

    def _evaluate(self, lhs_value, rhs_value, out):
        np.concatenate((lhs_value, rhs_value), axis=self.axis, out=out)

    def _push(self, gradient):
        if not self._needs_gradient:
            return ()
        split = self._lhs_shape[self.axis]
        if self.axis == 0:
            lhs_gradient, rhs_gradient = gradient[:split], gradient[split:]
        else:
            lhs_gradient, rhs_gradient = gradient[:, :split], gradient[:, split:]
        # Views of the upstream buffer; receivers only read them
        return ((self.lhs, lhs_gradient), (self.rhs, rhs_gradient))


class SliceNode(UnaryNode):
    """Rectangular sub-block `operand[rows, cols]`."""

    op_tag = "slice"

    def __init__(self, operand, rows: slice, cols: slice):
        if not isinstance(rows, slice) or not isinstance(cols, slice):
            raise TypeError(
                f"Slices must be built from two slice objects, got {type(rows)} and {type(cols)}"
            )
        self._key = (rows, cols)
        super().__init__(operand)

    def _allocate(self, operand_value):
        return np.empty_like(operand_value[self._key])

    def _evaluate(self, operand_value, out):
        np.copyto(out, operand_value[self._key])

    def _differentiate(self, operand_value, gradient, out):
        out.fill(0.0)
        out[self._key] = gradient


class IndexNode(Node):
    """
    Row gather from a Parameter, `parameter[indices]`.

    Backward hands the index list and the upstream rows straight to the
    parameter's sparse accumulator; no dense gradient of the parameter's
    full shape is ever built on this path. Indices may repeat.
    """

    op_tag = "index"

    def __init__(self, operand: ParameterNode, index: IndexInputNode):
        if not isinstance(operand, ParameterNode):
            raise TypeError(f"Only parameters can be indexed, got {type(operand).__name__}")
        if not isinstance(index, IndexInputNode):
            raise TypeError(f"Indices must come from an index input, got {type(index).__name__}")

        super().__init__(operand.needs_gradient())
        self.operand = operand
        self.index = index
        self._index_value = np.array(index.value(), copy=True)
        self._value = np.take(operand.value(), self._index_value, axis=0)

    def operands(self):
        return (self.operand, self.index)

    def _recompute(self):
        indices = self.index.value()
        self._check_shape(indices.shape, self._index_value.shape, "index list")
        np.copyto(self._index_value, indices)
        np.take(self.operand.value(), self._index_value, axis=0, out=self._value)
        self._stale = False

    def _push(self, gradient):
        # Straight into the sparse accumulator; the parameter is not pushed to
        self.operand.accumulate_sparse(self._index_value, gradient)
        return ()

    def value(self):
        return readonly(self._value)


def transpose(x: Variable) -> Variable:
    return Variable.from_operands(TransposeNode(x.node), x)


def stack(x: Variable, y: Variable, axis: int = 0) -> Variable:
    if not isinstance(y, Variable):
        raise TypeError(f"Can only stack two Variables, got {type(y)}")
    return Variable.from_operands(ConcatenateNode(x.node, y.node, axis), x, y)


def slice_rows_cols(x: Variable, rows: slice, cols: slice) -> Variable:
    return Variable.from_operands(SliceNode(x.node, rows, cols), x)


def index(x: Variable, indices: Variable) -> Variable:
    if not isinstance(indices, Variable):
        raise TypeError(f"Indices must be a Variable, got {type(indices)}")
    return Variable.from_operands(IndexNode(x.node, indices.node), x, indices)
