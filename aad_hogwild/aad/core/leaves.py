# aad/core/leaves.py
import numpy as np

from ...config import INDEX_DTYPE
from .node import LeafNode, as_matrix, readonly


class InputNode(LeafNode):
    """
    Externally fed dense leaf. Its shape is fixed by the first value.
    """

    op_tag = "input"

    def __init__(self, value):
        super().__init__(needs_gradient=False)
        self._value = as_matrix(value)

    def value(self):
        return readonly(self._value)

    def set_value(self, value) -> None:
        """
        Assign a new value of the same shape. A bare scalar only sets the
        (0, 0) element, which is the whole value for (1, 1) inputs.
        """
        if np.ndim(value) == 0:
            self._value[0, 0] = value
            return
        value = np.asarray(value, dtype=self._value.dtype)
        if value.ndim < 2:
            value = value.reshape(1, -1)
        if value.shape != self._value.shape:
            raise ValueError(
                f"Cannot assign value of shape {value.shape} to input of shape {self._value.shape}"
            )
        np.copyto(self._value, value)


class IndexInputNode(LeafNode):
    """
    Externally fed list of row indices, consumed by Index nodes.
    """

    op_tag = "index_input"

    def __init__(self, indices):
        super().__init__(needs_gradient=False)
        self._value = self._as_indices(indices)

    @staticmethod
    def _as_indices(indices) -> np.ndarray:
        arr = np.array(indices, dtype=INDEX_DTYPE, ndmin=1)
        if arr.ndim != 1:
            raise ValueError(f"Index lists must be 1-D, got shape {arr.shape}")
        return arr

    def value(self):
        return readonly(self._value)

    def set_value(self, indices) -> None:
        """Replace the whole index list."""
        self._value = self._as_indices(indices)

    def __repr__(self):
        return f"IndexInputNode({self._value.tolist()})"
