import numpy as np
import pytest

TOLERANCE = 0.05


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def random_matrix(rng):
    """Xavier-normal initialised (rows, cols) matrix."""
    def _random_matrix(rows, cols):
        return rng.normal(0.0, np.sqrt(2.0 / (rows + cols)), size=(rows, cols))
    return _random_matrix


def sgd_step(parameters, learning_rate):
    """Plain SGD over dense and sparse gradients, then zero them."""
    for param in parameters:
        node = param.node
        store = node.store.value
        if node.gradient.has_dense:
            store -= learning_rate * node.gradient.dense_gradient()
        for indices, rows in node.gradient.sparse_slots():
            np.subtract.at(store, indices, learning_rate * rows)
        node.zero_gradient()
