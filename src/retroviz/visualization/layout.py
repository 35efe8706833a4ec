"""
Tree layout algorithm for route visualization.

A route is laid out top-down: depth determines y, and every node is centered
horizontally over the width its subtree needs. The work happens in passes that
must run in order, since positions depend on every subtree width being known:

1. build     - wrap each source node in a LayoutNode with a path-derived id
2. width     - post-order, compute the width of every subtree
3. position  - pre-order, assign x, y
4. flatten   - pre-order, emit nodes and parent -> child edges
"""

from dataclasses import dataclass, field

from retroviz.domain.schemas import GraphEdge, GraphNode, RouteGraph, RouteVisualizationNode
from retroviz.visualization.constants import LAYOUT_CONFIG, LayoutConfig


@dataclass
class LayoutNode:
    """
    Working copy of a route node used while computing a layout.

    `source` is only read, never written to.
    """

    id: str
    source: RouteVisualizationNode
    children: list["LayoutNode"] = field(default_factory=list)
    width: float = 0.0
    x: float = 0.0
    y: float = 0.0


def build_layout_tree(node: RouteVisualizationNode, id_prefix: str) -> LayoutNode:
    """
    Builds a layout tree from a route tree.

    Ids are derived from the path to the node (sibling index plus SMILES at
    every level), so they stay unique when a molecule appears more than once.
    """
    node_id = f"{id_prefix}{node.smiles}"
    return LayoutNode(
        id=node_id,
        source=node,
        children=[build_layout_tree(child, f"{node_id}-{index}-") for index, child in enumerate(node.children)],
    )


def calculate_subtree_width(node: LayoutNode, config: LayoutConfig = LAYOUT_CONFIG) -> float:
    """
    Calculates the width required for each subtree and stores it on every node.

    A leaf is one node wide; an internal node needs the sum of its children's
    widths plus the gaps between them, but never less than one node.
    """
    if not node.children:
        node.width = config.node_width
        return node.width

    children_width = sum(calculate_subtree_width(child, config) for child in node.children)
    total_children_width = children_width + (len(node.children) - 1) * config.horizontal_spacing
    node.width = max(config.node_width, total_children_width)
    return node.width


def assign_positions(node: LayoutNode, x: float, y: float, config: LayoutConfig = LAYOUT_CONFIG) -> None:
    """
    Assigns x, y coordinates to each node in the tree, top-down and left-to-right.

    `x` is the left edge of the space allocated to this subtree. Widths must
    already be set by `calculate_subtree_width`.
    """
    # center node within its allocated width
    node.x = x + (node.width - config.node_width) / 2
    node.y = y

    current_x = x
    for child in node.children:
        assign_positions(child, current_x, y + config.level_height, config)
        current_x += child.width + config.horizontal_spacing


def flatten_layout_tree(node: LayoutNode) -> tuple[list[LayoutNode], list[tuple[str, str]]]:
    """
    Flattens a positioned tree into a pre-order node list and (parent id, child id) edges.
    """
    nodes: list[LayoutNode] = []
    edges: list[tuple[str, str]] = []

    def _visit(current: LayoutNode, parent_id: str | None) -> None:
        nodes.append(current)
        if parent_id is not None:
            edges.append((parent_id, current.id))
        for child in current.children:
            _visit(child, current.id)

    _visit(node, None)
    return nodes, edges


def position_tree(
    root: RouteVisualizationNode, id_prefix: str, config: LayoutConfig = LAYOUT_CONFIG
) -> LayoutNode:
    """Runs the build, width and position passes and returns the positioned layout root."""
    layout_root = build_layout_tree(root, id_prefix)
    calculate_subtree_width(layout_root, config)
    assign_positions(layout_root, 0, 0, config)
    return layout_root


def layout_tree(root: RouteVisualizationNode, id_prefix: str, config: LayoutConfig = LAYOUT_CONFIG) -> RouteGraph:
    """
    Complete layout pipeline.

    Takes a route tree and returns positioned nodes and edges, without any
    status or stock annotation.
    """
    layout_nodes, layout_edges = flatten_layout_tree(position_tree(root, id_prefix, config))

    nodes = [
        GraphNode(
            id=n.id,
            smiles=n.source.smiles,
            inchikey=n.source.inchikey,
            x=n.x,
            y=n.y,
            is_leaf=not n.children,
        )
        for n in layout_nodes
    ]
    edges = [
        GraphEdge(id=f"{id_prefix}edge-{idx}", source=source, target=target)
        for idx, (source, target) in enumerate(layout_edges)
    ]
    return RouteGraph(nodes=nodes, edges=edges)
