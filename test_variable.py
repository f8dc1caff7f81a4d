import copy

import numpy as np
import pytest

from aad_hogwild import (
    ExclusiveParameter,
    HogwildParameter,
    Variable,
    index_input,
    input_var,
    parameter,
    shared_parameter,
)
from aad_hogwild.aad.core.parameter import ParameterNode, ParameterStore
from aad_hogwild.aad.core.var import merge_parameters


# ---------------------------------------------------------------------------
# Parameter lists
# ---------------------------------------------------------------------------
def test_parameter_deduplication(random_matrix):
    x = parameter(random_matrix(1, 1))
    y = parameter(random_matrix(1, 1))

    z = x + y
    z = z.clone() + z.clone()

    assert len(z.parameters()) == 2


def test_parameters_sorted_by_identity(random_matrix):
    params = [parameter(random_matrix(2, 2)) for _ in range(5)]
    z = params[3] * params[0] + params[4] - params[1] / (params[2].square() + 1.0)

    nodes = [p.node for p in z.parameters()]
    assert sorted(id(n) for n in nodes) == [id(n) for n in nodes]
    assert {id(n) for n in nodes} == {id(p.node) for p in params}


def test_merge_parameters():
    a, b, c = (parameter(1.0).node for _ in range(3))
    xs = tuple(sorted((a, b), key=id))
    ys = tuple(sorted((b, c), key=id))

    merged = merge_parameters(xs, ys)

    assert len(merged) == 3
    assert [id(n) for n in merged] == sorted(id(n) for n in (a, b, c))
    assert merge_parameters((), ()) == ()


def test_inputs_have_no_parameters():
    x = input_var(np.ones((2, 2)))
    idx = index_input([0])
    assert x.parameters() == []
    assert idx.parameters() == []
    assert len((x.square() + parameter(np.ones((2, 2)))).parameters()) == 1


def test_fan_out_gradient_sums_per_consumer():
    x = parameter(np.full((2, 3), 2.0))
    z = x * x + x

    z.backward(1.0)

    # d(x^2 + x)/dx = 2x + 1
    np.testing.assert_allclose(x.gradient(), np.full((2, 3), 5.0))


def test_needs_gradient_propagation():
    x = input_var(np.ones((2, 2)))
    p = parameter(np.ones((2, 2)))

    assert not x.node.needs_gradient()
    assert p.node.needs_gradient()
    assert not (x * 2.0).node.needs_gradient()
    assert (x * p).node.needs_gradient()


def test_backward_without_parameters_is_noop():
    x = input_var(np.ones((2, 2)))
    y = x.square().sum()

    y.backward(1.0)

    assert y.value[0, 0] == 4.0


# ---------------------------------------------------------------------------
# Values and leaves
# ---------------------------------------------------------------------------
def test_value_is_read_only():
    x = parameter(np.ones((2, 2)))
    y = x * 3.0

    with pytest.raises(ValueError):
        y.value[0, 0] = 1.0
    with pytest.raises(ValueError):
        x.value[0, 0] = 1.0


def test_leaf_shapes_are_two_dimensional():
    assert input_var(3.0).shape == (1, 1)
    assert input_var([1.0, 2.0, 3.0]).shape == (1, 3)
    assert parameter([[1.0], [2.0]]).shape == (2, 1)
    assert index_input(4).value.tolist() == [4]


def test_parameter_copies_initial_value():
    init = np.zeros((2, 2))
    x = parameter(init)
    init[0, 0] = 5.0

    assert x.value[0, 0] == 0.0


def test_input_set_value():
    x = input_var(np.zeros((2, 2)))
    y = x + 1.0

    x.set_value(np.full((2, 2), 3.0))
    y.forward()
    np.testing.assert_array_equal(y.value, np.full((2, 2), 4.0))

    # A bare scalar only writes the (0, 0) element
    x.set_value(7.0)
    y.forward()
    np.testing.assert_array_equal(y.value, [[8.0, 4.0], [4.0, 4.0]])


def test_index_input_set_value_replaces_list():
    idx = index_input([0, 1])
    idx.set_value([3, 2])
    assert idx.value.tolist() == [3, 2]


def test_clone_shares_node():
    x = parameter(np.ones((2, 2)))
    y = x * 2.0
    y_clone = y.clone()
    y_copy = copy.copy(y)

    assert y_clone.node is y.node
    assert y_copy.node is y.node
    assert len(y_clone.parameters()) == 1


def test_reflected_operators():
    x = parameter(np.full((1, 2), 2.0))

    np.testing.assert_allclose((3.0 + x).value, [[5.0, 5.0]])
    np.testing.assert_allclose((3.0 - x).value, [[1.0, 1.0]])
    np.testing.assert_allclose((3.0 * x).value, [[6.0, 6.0]])
    np.testing.assert_allclose((3.0 / x).value, [[1.5, 1.5]])
    np.testing.assert_allclose((x * np.float64(2.0)).value, [[4.0, 4.0]])
    np.testing.assert_allclose((-x).value, [[-2.0, -2.0]])


def test_softmax_rows_normalised():
    x = input_var([[1000.0, 1001.0, 1002.0], [-5.0, 0.0, 5.0]])
    s = x.softmax()

    assert np.all(np.isfinite(s.value))
    np.testing.assert_allclose(s.value.sum(axis=1), [1.0, 1.0])
    np.testing.assert_allclose(np.exp(x.log_softmax().value), s.value)


def test_relu_gradient_masks_negative():
    x = parameter([[-1.0, 2.0, -3.0, 4.0]])
    x.relu().backward(1.0)

    np.testing.assert_array_equal(x.gradient(), [[0.0, 1.0, 0.0, 1.0]])


def test_slice_gradient_is_zero_outside_block():
    x = parameter(np.ones((4, 4)))
    x[1:3, 2:4].backward(1.0)

    expected = np.zeros((4, 4))
    expected[1:3, 2:4] = 1.0
    np.testing.assert_array_equal(x.gradient(), expected)


# ---------------------------------------------------------------------------
# Sparse gradients
# ---------------------------------------------------------------------------
def test_index_same_row_twice():
    x = parameter(np.arange(15.0).reshape(5, 3))
    i0 = index_input([1])
    i1 = index_input([1])

    z = (x.index(i0) + x.index(i1)).sum()
    np.testing.assert_array_equal(z.value, [[2 * (3.0 + 4.0 + 5.0)]])

    z.backward(1.0)

    expected = np.zeros((5, 3))
    expected[1] = 2.0
    np.testing.assert_array_equal(x.gradient(), expected)
    assert x.node.gradient.num_slots == 2
    assert not x.node.gradient.has_dense


def test_index_follows_index_input_changes():
    x = parameter(np.arange(12.0).reshape(4, 3))
    idx = index_input([0])
    row = x.index(idx)

    idx.set_value([2])
    row.forward()
    np.testing.assert_array_equal(row.value, [[6.0, 7.0, 8.0]])

    row.backward(1.0)
    expected = np.zeros((4, 3))
    expected[2] = 1.0
    np.testing.assert_array_equal(x.gradient(), expected)


def test_sparse_slots_reused_across_steps():
    x = parameter(np.ones((10, 2)))
    idx = index_input([0])
    loss = x.index(idx).square().sum()

    for step in range(5):
        idx.set_value([step])
        loss.zero_gradient()
        loss.forward()
        loss.backward(1.0)

        assert x.node.gradient.num_slots == 1
        expected = np.zeros((10, 2))
        expected[step] = 2.0
        np.testing.assert_array_equal(x.gradient(), expected)


def test_dense_and_sparse_gradients_combine():
    x = parameter(np.ones((3, 2)))
    z = x.index(index_input([2])).sum() + x.sum()

    z.backward(1.0)

    np.testing.assert_array_equal(x.gradient(), [[1.0, 1.0], [1.0, 1.0], [2.0, 2.0]])


# ---------------------------------------------------------------------------
# Accumulation lifecycle
# ---------------------------------------------------------------------------
def test_backward_accumulates_until_zeroed():
    x = parameter(np.full((2, 2), 3.0))
    y = x.square()

    y.forward()
    y.backward(1.0)
    y.backward(1.0)
    np.testing.assert_array_equal(x.gradient(), np.full((2, 2), 12.0))

    y.zero_gradient()
    np.testing.assert_array_equal(x.gradient(), np.zeros((2, 2)))
    assert x.node.gradient.dense_gradient().shape == (2, 2)

    y.forward()
    y.backward(0.5)
    np.testing.assert_array_equal(x.gradient(), np.full((2, 2), 3.0))


def test_clear_forces_recomputation():
    x = input_var(2.0)
    y = x.square()
    assert y.value[0, 0] == 4.0

    x.set_value(3.0)
    # Not recomputed until forward or clear
    assert y.value[0, 0] == 4.0

    y.clear()
    assert y.node.is_stale
    assert x.node.is_stale
    assert y.value[0, 0] == 9.0
    assert not y.node.is_stale


def test_backward_after_clear_uses_fresh_values():
    p = parameter(2.0)
    x = input_var(1.0)
    z = p * x

    x.set_value(5.0)
    z.clear()
    z.backward(1.0)

    assert p.gradient()[0, 0] == 5.0
    assert z.value[0, 0] == 10.0


def test_forward_is_idempotent(random_matrix):
    x = parameter(random_matrix(3, 3))
    h = x.tanh()
    z = (h @ h.t()).softmax()
    before = np.array(z.value, copy=True)

    for _ in range(3):
        z.forward()

    np.testing.assert_allclose(z.value, before)


def test_constant_is_frozen_independent_leaf():
    x = input_var(np.ones((2, 2)))
    y = 2.0 - x

    x.set_value(np.full((2, 2), 5.0))
    y.forward()
    np.testing.assert_array_equal(y.value, np.full((2, 2), -3.0))

    # The promoted constant kept the shape x had when y was built
    constant = y.node.lhs
    assert constant.shape == (2, 2)
    assert not constant.needs_gradient()
    with pytest.raises(ValueError):
        x.set_value(np.ones((3, 2)))


# ---------------------------------------------------------------------------
# Shared stores
# ---------------------------------------------------------------------------
def test_shared_store_visible_across_handles():
    store = HogwildParameter(np.zeros((2, 2)))
    a = shared_parameter(store)
    b = shared_parameter(store)

    assert a.node is not b.node
    assert a.node.shared

    a.set_value(np.ones((2, 2)))
    np.testing.assert_array_equal(b.value, np.ones((2, 2)))

    (a * 2.0).backward(1.0)
    np.testing.assert_array_equal(a.gradient(), np.full((2, 2), 2.0))
    np.testing.assert_array_equal(b.gradient(), np.zeros((2, 2)))


def test_default_parameter_is_exclusive():
    x = parameter(np.ones((2, 2)))
    assert isinstance(x.node.store, ExclusiveParameter)
    assert not isinstance(x.node.store, HogwildParameter)
    assert not x.node.shared


def test_store_kinds_are_distinct():
    store = HogwildParameter(np.zeros((2, 2)))
    assert isinstance(store, ParameterStore)
    assert not isinstance(store, ExclusiveParameter)
    assert shared_parameter(store).node.shared

    with pytest.raises(TypeError):
        ParameterNode(np.zeros((2, 2)))


# ---------------------------------------------------------------------------
# Contract breaches
# ---------------------------------------------------------------------------
def test_elementwise_shape_mismatch():
    with pytest.raises(ValueError):
        parameter(np.zeros((2, 3))) + parameter(np.zeros((3, 2)))
    with pytest.raises(ValueError):
        input_var(np.zeros((2, 3))) * input_var(np.zeros((2, 2)))


def test_dot_shape_mismatch():
    with pytest.raises(ValueError):
        parameter(np.zeros((2, 3))).dot(parameter(np.zeros((2, 3))))
    with pytest.raises(ValueError):
        parameter(np.zeros((2, 3))).vector_dot(parameter(np.zeros((2, 2))))


def test_stack_shape_mismatch():
    x = parameter(np.zeros((2, 3)))
    y = parameter(np.zeros((3, 2)))
    with pytest.raises(ValueError):
        x.stack(y, axis=0)
    with pytest.raises(ValueError):
        x.stack(y, axis=1)
    with pytest.raises(ValueError):
        x.stack(x, axis=2)


def test_bad_leaf_values():
    with pytest.raises(ValueError):
        input_var(np.zeros((2, 2, 2)))
    with pytest.raises(TypeError):
        input_var("not a number")
    with pytest.raises(ValueError):
        index_input([[0, 1], [1, 0]])


def test_set_value_shape_mismatch():
    with pytest.raises(ValueError):
        input_var(np.zeros((2, 2))).set_value(np.zeros((2, 3)))
    with pytest.raises(ValueError):
        parameter(np.zeros((2, 2))).set_value(np.zeros((1, 2)))


def test_wrong_handle_kinds():
    x = input_var(np.zeros((3, 2)))
    p = parameter(np.zeros((3, 2)))

    with pytest.raises(TypeError):
        x.index(index_input([0]))
    with pytest.raises(TypeError):
        p.index(input_var([[0.0]]))
    with pytest.raises(TypeError):
        x.gradient()
    with pytest.raises(TypeError):
        (p * 2.0).set_value(np.zeros((3, 2)))
    with pytest.raises(TypeError):
        shared_parameter(ExclusiveParameter(np.zeros((3, 2))))
    with pytest.raises(TypeError):
        p + "one"
    with pytest.raises(TypeError):
        Variable("not a node")
    with pytest.raises(TypeError):
        p[0]


def test_index_out_of_range():
    p = parameter(np.zeros((3, 2)))
    with pytest.raises(IndexError):
        p.index(index_input([5]))


def test_index_list_length_change_is_fatal():
    p = parameter(np.zeros((3, 2)))
    idx = index_input([0])
    row = p.index(idx)

    idx.set_value([0, 1])
    with pytest.raises(AssertionError):
        row.forward()


# ---------------------------------------------------------------------------
# Clipping
# ---------------------------------------------------------------------------
def test_clip_bounds_cached_value_until_forward():
    x = parameter(np.full((1, 2), 3.0))
    loss = x.square().sum()
    assert loss.value[0, 0] == 18.0

    loss.clip(0.0, 10.0)
    assert loss.value[0, 0] == 10.0

    loss.forward()
    assert loss.value[0, 0] == 18.0


def test_clip_parameter_writes_store():
    store = HogwildParameter([[-3.0, 0.5, 4.0]])
    a = shared_parameter(store)
    b = shared_parameter(store)

    a.clip(-1.0, 1.0)

    np.testing.assert_array_equal(b.value, [[-1.0, 0.5, 1.0]])


# ---------------------------------------------------------------------------
# Deep graphs
# ---------------------------------------------------------------------------
def test_deep_chain_forward_backward():
    x = parameter(np.ones((1, 1)))
    z = x
    for _ in range(2500):
        z = z + 1.0

    x.set_value(2.0)
    z.forward()
    assert z.value[0, 0] == 2502.0

    z.backward(1.0)
    assert x.gradient()[0, 0] == 1.0


def test_deep_chain_clear():
    x = input_var(0.5)
    z = x
    for _ in range(2000):
        z = z.tanh()
    before = float(z.value[0, 0])

    x.set_value(0.25)
    z.clear()
    assert x.node.is_stale
    assert z.value[0, 0] < before
    assert not z.node.is_stale


def test_unrolled_rnn(random_matrix):
    w = parameter(0.5 * random_matrix(3, 3))
    x = input_var(random_matrix(1, 3))
    h = input_var(np.zeros((1, 3)))
    for _ in range(400):
        h = (h @ w + x).tanh()
    loss = h.square().sum()

    loss.forward()
    loss.backward(1.0)

    gradient = w.gradient()
    assert gradient.shape == (3, 3)
    assert np.all(np.isfinite(gradient))
