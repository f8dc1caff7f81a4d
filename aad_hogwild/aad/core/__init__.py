# aad/core/__init__.py

"""
Core public API for the differentiation engine.

Exports:
    Variable         : Handle onto a graph node; builds new nodes via operators.
    input_var        : Dense input leaf.
    index_input      : Integer index-list leaf, for row gathers.
    parameter        : Trainable leaf over a private store.
    shared_parameter : Trainable leaf over a HogwildParameter store.
    HogwildParameter : Backing store shared across graphs and threads.
    Node             : Abstract base of every graph node.
"""

from .node import Node
from .parameter import ExclusiveParameter, HogwildParameter, ParameterNode, ParameterStore
from .var import Variable, input_var, index_input, parameter, shared_parameter
from .graph_utils import get_graph_stats, print_graph_summary

__all__ = [
    "Node",
    "ParameterStore", "ExclusiveParameter", "HogwildParameter", "ParameterNode",
    "Variable", "input_var", "index_input", "parameter", "shared_parameter",
    "get_graph_stats", "print_graph_summary",
]
