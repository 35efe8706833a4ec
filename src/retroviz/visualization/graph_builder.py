"""
Turns a single route into a renderable graph with stock availability.
"""

from collections.abc import Set

from retroviz.domain.schemas import GraphEdge, GraphNode, NodeStatus, RouteGraph, RouteVisualizationNode
from retroviz.domain.tree import collect_identities
from retroviz.utils.logging import logger
from retroviz.visualization.constants import LAYOUT_CONFIG, LayoutConfig
from retroviz.visualization.layout import flatten_layout_tree, position_tree


def build_route_graph(
    route: RouteVisualizationNode,
    in_stock_keys: Set[str],
    id_prefix: str,
    config: LayoutConfig = LAYOUT_CONFIG,
) -> RouteGraph:
    """
    Builds a positioned graph for one route and marks the molecules that are in stock.

    Args:
        route: Route to visualize.
        in_stock_keys: Identities (InChIKeys) available in the selected stock.
        id_prefix: Prefix for node and edge ids.
        config: Layout dimensions.

    Returns:
        The same nodes and edges as `layout_tree`, with `status` and `in_stock` filled in.
    """
    layout_nodes, layout_edges = flatten_layout_tree(position_tree(route, id_prefix, config))

    nodes = []
    for n in layout_nodes:
        in_stock = n.source.identity in in_stock_keys
        nodes.append(
            GraphNode(
                id=n.id,
                smiles=n.source.smiles,
                inchikey=n.source.inchikey,
                x=n.x,
                y=n.y,
                status=NodeStatus.IN_STOCK if in_stock else NodeStatus.DEFAULT,
                in_stock=in_stock,
                is_leaf=not n.children,
            )
        )

    edges = [
        GraphEdge(id=f"{id_prefix}edge-{idx}", source=source, target=target)
        for idx, (source, target) in enumerate(layout_edges)
    ]

    logger.debug(
        f"Built route graph '{id_prefix}': {len(nodes)} nodes, {sum(n.in_stock for n in nodes)} in stock"
    )
    return RouteGraph(nodes=nodes, edges=edges)


def get_route_identity_set(route: RouteVisualizationNode) -> set[str]:
    """
    Collects all identities in a route for a batch stock lookup.

    InChIKeys are the canonical identifiers for molecules; SMILES is used only
    for nodes that have no key.
    """
    return collect_identities(route)
