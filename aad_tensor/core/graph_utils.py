"""
Graph utilities: ordering, path counting, statistics and printing for a
computation graph rooted at a Node.
"""

from collections import Counter
from typing import Dict, Iterator, List

import numpy as np

from .node import Node


def iter_nodes(root: Node) -> Iterator[Node]:
    """
    Yield every node reachable from `root` exactly once, depth-first pre-order
    (x before y).
    """
    seen = set()
    stack = [root]
    while stack:
        node = stack.pop()
        if id(node) in seen:
            continue
        seen.add(id(node))
        yield node
        stack.extend(reversed(node.children))


def topological_order(root: Node) -> List[Node]:
    """
    Reachable nodes with every child before all of its parents; `root` is last.

    Iterative post-order DFS, so deep chains do not hit the recursion limit.
    """
    order: List[Node] = []
    done = set()
    stack = [(root, False)]
    while stack:
        node, expanded = stack.pop()
        if id(node) in done:
            continue
        if expanded:
            done.add(id(node))
            order.append(node)
            continue
        stack.append((node, True))
        for child in reversed(node.children):
            if id(child) not in done:
                stack.append((child, False))
    return order


def count_paths(root: Node) -> int:
    """
    Number of distinct root-to-leaf paths, counting parallel edges (x * x has
    two paths to x). This is the number of leaf visits a path-multiplicity
    backward pass makes.
    """
    paths: Dict[int, int] = {}
    for node in topological_order(root):
        if node.is_leaf:
            paths[id(node)] = 1
        else:
            paths[id(node)] = sum(paths[id(c)] for c in node.children)
    return paths[id(root)]


def get_graph_stats(root: Node) -> Dict:
    """
    Collect graph statistics (no printing).

    Returns:
        dict with nodes, leaves, edges, max/avg fan-out, paths, operations
    """
    nodes = topological_order(root)
    n_nodes = len(nodes)
    n_edges = sum(len(node.children) for node in nodes)

    # fan-out: number of parent edges pointing at each node
    fan_outs = Counter()
    for node in nodes:
        for child in node.children:
            fan_outs[id(child)] += 1
    fan_out_values = [fan_outs[id(node)] for node in nodes if node is not root]

    op_counter = Counter(node.op_tag.value for node in nodes)

    return {
        'nodes': n_nodes,
        'leaves': sum(1 for node in nodes if node.is_leaf),
        'edges': n_edges,
        'max_fan_out': max(fan_out_values) if fan_out_values else 0,
        'avg_fan_out': float(np.mean(fan_out_values)) if fan_out_values else 0.0,
        'paths': count_paths(root),
        'operations': dict(op_counter),
    }


def analyze_graph_complexity(root: Node) -> str:
    """
    Text report on graph size and how much work a path-multiplicity traversal
    does compared to a single-visit one.
    """
    stats = get_graph_stats(root)

    report = []
    report.append("Graph Complexity Analysis:")
    report.append(f"  Total nodes: {stats['nodes']:,}")
    report.append(f"  Total edges: {stats['edges']:,}")
    report.append(f"  Root-to-leaf paths: {stats['paths']:,}")
    report.append(f"  Average fan-out: {stats['avg_fan_out']:.2f}")

    # ratio of leaf visits (paths) to distinct nodes
    blowup = stats['paths'] / max(stats['nodes'], 1)
    if blowup <= 1.0:
        level = "Tree-like"
    elif blowup < 10.0:
        level = "Moderate sharing"
    else:
        level = "Heavy sharing (prefer traversal='topological')"
    report.append(f"  Path multiplicity: {blowup:.2f}x ({level})")

    if stats['operations']:
        top_ops = sorted(stats['operations'].items(), key=lambda x: x[1], reverse=True)
        report.append("  Operations:")
        for op, count in top_ops:
            pct = 100.0 * count / stats['nodes']
            report.append(f"    - {op}: {count} ({pct:.1f}%)")

    return "\n".join(report)


def print_graph_summary(root: Node, detailed: bool = False) -> Dict:
    """
    Print graph summary statistics.

    Args:
        root: graph root
        detailed: also list every node (graphs up to 100 nodes)

    Returns:
        the statistics dict from get_graph_stats
    """
    stats = get_graph_stats(root)

    print("\n" + "="*70)
    print("COMPUTATION GRAPH SUMMARY")
    print("="*70)
    print(f"Total nodes:        {stats['nodes']:,}")
    print(f"Leaves:             {stats['leaves']:,}")
    print(f"Total edges:        {stats['edges']:,}")
    print(f"Root-to-leaf paths: {stats['paths']:,}")
    print(f"Max fan-out:        {stats['max_fan_out']}")
    print(f"Avg fan-out:        {stats['avg_fan_out']:.2f}")
    print()
    print("Operation breakdown:")
    for op_type, count in Counter(stats['operations']).most_common():
        pct = 100.0 * count / stats['nodes']
        print(f"  {op_type:12s}: {count:6,} ({pct:5.1f}%)")

    if detailed and stats['nodes'] <= 100:
        print()
        print("="*70)
        print("DETAILED NODE LIST")
        print("="*70)
        print_nodes(topological_order(root))

    print("="*70 + "\n")

    return stats


def print_computation_graph(root: Node, max_nodes: int = 20) -> None:
    """Print nodes in evaluation order, children first."""
    print("\n" + "="*70)
    print("COMPUTATION GRAPH STRUCTURE")
    print("="*70)

    nodes = topological_order(root)
    print_nodes(nodes[:max_nodes])
    if len(nodes) > max_nodes:
        print(f"... ({len(nodes) - max_nodes} more nodes)")

    print("="*70 + "\n")


def print_nodes(nodes: List[Node]) -> None:
    index = {id(node): i for i, node in enumerate(nodes)}
    for i, node in enumerate(nodes):
        label = node.name or ""
        if node.children:
            child_info = ", ".join(
                f"Node{index[id(c)]}" if id(c) in index else "external"
                for c in node.children
            )
            print(f"Node {i:4d}: {node.op_tag.value:8s} {str(node.shape):12s} {label:8s} <- [{child_info}]")
        else:
            print(f"Node {i:4d}: {node.op_tag.value:8s} {str(node.shape):12s} {label:8s} [leaf/input]")
