# aad/core/parameter.py
from __future__ import annotations

import numpy as np

from .accumulator import GradientAccumulator
from .node import LeafNode, as_matrix, readonly


class ParameterStore:
    """Backing array of a Parameter leaf: a private copy of the initial value."""

    shared = False

    def __init__(self, value):
        self.value = as_matrix(value)

    @property
    def shape(self):
        return self.value.shape

    def __repr__(self):
        return f"{type(self).__name__}(shape={self.shape})"


class ExclusiveParameter(ParameterStore):
    """
    Backing store owned by exactly one ParameterNode.

    This is what `parameter(value)` creates. It is never handed out for
    sharing, so only the owning graph instance reads or writes it.
    """


class HogwildParameter(ParameterStore):
    """
    Backing store shared by several ParameterNodes, normally one per worker
    thread, for asynchronous (Hogwild) parallel training.

    Reads and writes on `value` are NOT synchronized: workers may observe
    partially applied updates from each other. The array's shape and dtype
    never change. Create one per trainable tensor and pass it to
    `shared_parameter` (or `hogwild.replicate`) in every worker.
    """

    shared = True


class ParameterNode(LeafNode):
    """
    Trainable leaf.

    Holds a (possibly shared) backing store and an exclusively owned
    gradient accumulator. Gradients pushed to it are added densely;
    Index nodes above it add sparse row contributions instead.
    """

    op_tag = "parameter"

    def __init__(self, store: ParameterStore):
        if not isinstance(store, ParameterStore):
            raise TypeError(f"Parameters need a ParameterStore, got {type(store).__name__}")
        super().__init__(needs_gradient=True)
        self.store = store
        self.gradient = GradientAccumulator(store.shape, store.value.dtype)

    @property
    def shared(self) -> bool:
        return self.store.shared

    def _push(self, gradient):
        self.gradient.accumulate_dense(gradient)
        return ()

    def accumulate_sparse(self, indices: np.ndarray, rows: np.ndarray) -> None:
        self.gradient.accumulate_sparse(indices, rows)

    def value(self):
        return readonly(self.store.value)

    def clip(self, lower: float, upper: float) -> None:
        np.clip(self.store.value, lower, upper, out=self.store.value)

    def set_value(self, value) -> None:
        """Overwrite the store in place; every handle sharing it sees the write."""
        value = np.asarray(value, dtype=self.store.value.dtype)
        if value.ndim < 2:
            value = value.reshape(1, -1)
        if value.shape != self.store.shape:
            raise ValueError(
                f"Cannot assign value of shape {value.shape} to parameter of shape {self.store.shape}"
            )
        self.store.value[...] = value

    def zero_gradient(self) -> None:
        self.gradient.zero_gradient()

    def materialized_gradient(self) -> np.ndarray:
        return self.gradient.materialize()
