# aad/core/accumulator.py
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


@dataclass
class SparseSlot:
    """
    One sparse contribution: `rows[k]` is the gradient of row `indices[k]`.

    An empty index array marks the slot as free for reuse.
    """
    indices: np.ndarray
    rows: np.ndarray

    @property
    def is_empty(self) -> bool:
        return self.indices.size == 0

    def assign(self, indices: np.ndarray, rows: np.ndarray) -> None:
        self.indices = np.array(indices, copy=True)
        if self.rows.shape == rows.shape:
            np.copyto(self.rows, rows)
        else:
            self.rows = np.array(rows, copy=True)

    def clear(self) -> None:
        self.indices = self.indices[:0]
        self.rows.fill(0.0)


class GradientAccumulator:
    """
    Per-parameter gradient storage with a dense and a sparse regime.

    Dense contributions are summed into one lazily allocated buffer of the
    parameter's shape. Sparse contributions (row gathers, e.g. embeddings)
    are kept as a list of (indices, rows) slots; a zeroed slot is reused
    before a new one is appended, so the list keeps its high-water mark
    across training steps.

    Attributes
    ----------
    shape : tuple
        Shape of the parameter this accumulator belongs to.
    has_dense, has_sparse : bool
        Whether any dense / sparse contribution arrived since the last zero.
    """

    def __init__(self, shape: Tuple[int, int], dtype):
        self.shape = tuple(shape)
        self.dtype = dtype
        self._dense: Optional[np.ndarray] = None
        self._sparse: List[SparseSlot] = []
        self.has_dense = False
        self.has_sparse = False

    def dense_gradient(self) -> np.ndarray:
        if self._dense is None:
            self._dense = np.zeros(self.shape, dtype=self.dtype)
        return self._dense

    def accumulate_dense(self, gradient: np.ndarray) -> None:
        assert gradient.shape == self.shape, (
            f"Dense gradient of shape {gradient.shape} for parameter of shape {self.shape}"
        )
        dense = self.dense_gradient()
        dense += gradient
        self.has_dense = True

    def accumulate_sparse(self, indices: np.ndarray, rows: np.ndarray) -> None:
        self.has_sparse = True

        for slot in self._sparse:
            if slot.is_empty:
                slot.assign(indices, rows)
                return

        self._sparse.append(SparseSlot(np.array(indices, copy=True), np.array(rows, copy=True)))
        logger.debug("Sparse gradient grew to %d slots for shape %s", len(self._sparse), self.shape)

    def zero_gradient(self) -> None:
        """Reset values; buffers and slots are kept for the next step."""
        if self.has_dense:
            self._dense.fill(0.0)

        if self.has_sparse:
            for slot in self._sparse:
                slot.clear()

        self.has_dense = False
        self.has_sparse = False

    def sparse_slots(self) -> Iterator[Tuple[np.ndarray, np.ndarray]]:
        """Yield the (indices, rows) pairs that currently hold data."""
        for slot in self._sparse:
            if not slot.is_empty:
                yield slot.indices, slot.rows

    @property
    def num_slots(self) -> int:
        return len(self._sparse)

    def materialize(self) -> np.ndarray:
        """Full dense gradient with every sparse slot scattered onto its rows."""
        gradient = np.zeros(self.shape, dtype=self.dtype)

        if self.has_dense:
            gradient += self._dense

        if self.has_sparse:
            for indices, rows in self.sparse_slots():
                # add.at so repeated indices inside one slot both count
                np.add.at(gradient, indices, rows)

        return gradient

    def __repr__(self):
        return (f"GradientAccumulator(shape={self.shape}, has_dense={self.has_dense}, "
                f"has_sparse={self.has_sparse}, slots={self.num_slots})")
