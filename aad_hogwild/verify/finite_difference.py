"""
Finite-difference gradient oracle.

Central differences, bumping one element of a parameter at a time:

    dL/dp_i ~= [L(p_i + delta/2) - L(p_i - delta/2)] / delta

where L is the sum of every element of the output. Used to check the
analytic gradient of every node type.
"""

from typing import Tuple

import numpy as np

from ..aad.core.var import Variable


def _bumped_output_sum(input: Variable, output: Variable, bumped: np.ndarray) -> float:
    output.zero_gradient()
    input.set_value(bumped)
    output.forward()
    output.backward(1.0)
    return float(np.sum(output.value))


def finite_difference(input: Variable, output: Variable, delta: float = 1e-4) -> Tuple[np.ndarray, np.ndarray]:
    """
    Numeric and analytic gradient of sum(output) with respect to `input`.

    Args:
        input: a Parameter handle reachable from `output`
        output: the handle to differentiate
        delta: total width of the central difference

    Returns:
        (central_difference, gradient), both shaped like `input`

    The parameter's value is restored and the gradients of `output` are
    zeroed before returning.
    """
    initial_input = np.array(input.value, copy=True)
    central_difference = np.zeros_like(initial_input)

    for idx in np.ndindex(*initial_input.shape):
        changed_input = initial_input.copy()
        changed_input[idx] += 0.5 * delta
        positive = _bumped_output_sum(input, output, changed_input)

        changed_input = initial_input.copy()
        changed_input[idx] -= 0.5 * delta
        negative = _bumped_output_sum(input, output, changed_input)

        central_difference[idx] = (positive - negative) / delta

    output.zero_gradient()
    input.set_value(initial_input)
    output.forward()
    output.backward(1.0)
    gradient = input.gradient()

    output.zero_gradient()

    return central_difference, gradient


def assert_close(x: np.ndarray, y: np.ndarray, tol: float) -> None:
    """Raise AssertionError unless every element of x is within `tol` of y."""
    x, y = np.asarray(x), np.asarray(y)
    assert x.shape == y.shape and np.allclose(x, y, rtol=0.0, atol=tol), (
        f"{x!r} not within {tol} of {y!r}"
    )
