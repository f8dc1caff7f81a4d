"""
Graph utilities.
Print and analyse the structure of the DAG reachable from a handle.
"""

from collections import Counter
from typing import Dict

import numpy as np

from .node import Node, topological_order
from .parameter import ParameterNode


def _root(variable) -> Node:
    return variable if isinstance(variable, Node) else variable.node


def get_graph_stats(variable) -> Dict:
    """
    Structural statistics of the graph under `variable`.

    Args:
        variable: a Variable handle (or a bare Node)

    Returns:
        dict with node/edge counts, fan-in/fan-out, parameter count and
        a per-op_tag breakdown
    """
    nodes = topological_order(_root(variable))

    # Fan-in: operands per node. Fan-out: consumers per node.
    fan_ins = [len(node.operands()) for node in nodes]
    fan_out_counter: Counter = Counter()
    for node in nodes:
        for operand in node.operands():
            fan_out_counter[id(operand)] += 1
    fan_outs = [fan_out_counter[id(node)] for node in nodes]

    return {
        'nodes': len(nodes),
        'edges': sum(fan_ins),
        'max_fan_in': max(fan_ins),
        'avg_fan_in': float(np.mean(fan_ins)),
        'max_fan_out': max(fan_outs),
        'avg_fan_out': float(np.mean(fan_outs)),
        'parameters': sum(isinstance(node, ParameterNode) for node in nodes),
        'operations': dict(Counter(node.op_tag for node in nodes)),
    }


def print_graph_summary(variable, detailed: bool = False) -> Dict:
    """
    Print `get_graph_stats` for `variable`, optionally followed by one line
    per node (operands first) for graphs of at most 100 nodes.
    """
    stats = get_graph_stats(variable)

    lines = [f"Graph: {stats['nodes']} nodes, {stats['edges']} edges, "
             f"{stats['parameters']} parameters",
             f"  fan-in  max {stats['max_fan_in']}, avg {stats['avg_fan_in']:.2f}",
             f"  fan-out max {stats['max_fan_out']}, avg {stats['avg_fan_out']:.2f}"]
    ops = sorted(stats['operations'].items(), key=lambda item: -item[1])
    lines.append("  ops: " + ", ".join(f"{tag}={count}" for tag, count in ops))

    if detailed and stats['nodes'] <= 100:
        nodes = topological_order(_root(variable))
        position = {id(node): i for i, node in enumerate(nodes)}
        for i, node in enumerate(nodes):
            operand_ids = " ".join(f"#{position[id(op)]}" for op in node.operands())
            lines.append(f"  #{i:<3d} {node.op_tag:<12s} {str(node.shape):<10s} {operand_ids}")

    print("\n".join(lines))
    return stats
