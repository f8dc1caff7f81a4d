# aad/__init__.py
# Define-by-run reverse-mode differentiation over 2-D arrays

from .core.var import Variable, input_var, index_input, parameter, shared_parameter
from .core.parameter import ExclusiveParameter, HogwildParameter
from .core.graph_utils import get_graph_stats, print_graph_summary

from . import ops

__all__ = [
    # Core
    'Variable',
    'input_var',
    'index_input',
    'parameter',
    'shared_parameter',
    # Stores
    'ExclusiveParameter',
    'HogwildParameter',
    # Introspection
    'get_graph_stats',
    'print_graph_summary',
    'ops',
]
