"""
Graph builders for route comparison visualizations.

Two routes are compared by chemical identity (InChIKey), not by position:
a molecule counts as shared when its identity occurs anywhere in both routes.
Structure only decides where nodes are drawn. Children of aligned nodes are
paired by identity, so a molecule missing from one route shows up under the
closest ancestor both routes have in common.

Supports side-by-side views (each route in its own coordinate space) and diff
overlay views (both routes merged into one tree).
"""

from collections.abc import Callable, Set

from retroviz.domain.schemas import (
    GraphEdge,
    GraphNode,
    MergedRouteNode,
    NodeStatus,
    RouteGraph,
    RouteVisualizationNode,
)
from retroviz.domain.tree import collect_identities
from retroviz.utils.logging import logger
from retroviz.visualization.constants import LAYOUT_CONFIG, LayoutConfig
from retroviz.visualization.layout import flatten_layout_tree, position_tree

StatusClassifier = Callable[[str], NodeStatus]

# statuses whose incoming edge (and everything below) is drawn dashed
GHOST_STATUSES = frozenset({NodeStatus.GHOST, NodeStatus.PRED_2_ONLY})


def _pair_children(
    lead_children: list[RouteVisualizationNode], follow_children: list[RouteVisualizationNode]
) -> tuple[list[tuple[RouteVisualizationNode, RouteVisualizationNode | None]], list[RouteVisualizationNode]]:
    """
    Pairs every lead child with the first unpaired follow child of the same identity.

    Returns the pairs in lead order, and the follow children left unpaired in
    their original order.
    """
    unpaired = list(follow_children)
    pairs: list[tuple[RouteVisualizationNode, RouteVisualizationNode | None]] = []
    for child in lead_children:
        match = next((i for i, candidate in enumerate(unpaired) if candidate.identity == child.identity), None)
        pairs.append((child, unpaired.pop(match) if match is not None else None))
    return pairs, unpaired


def _merge_trees(
    lead: RouteVisualizationNode,
    follow: RouteVisualizationNode | None,
    classify: StatusClassifier,
) -> MergedRouteNode:
    """
    Merges a lead node and its aligned follow node (if any) into one tree with status annotations.

    Lead children come first, followed by the follow children that had no partner.
    """
    pairs, leftovers = _pair_children(lead.children, follow.children if follow is not None else [])
    children = [_merge_trees(lead_child, follow_child, classify) for lead_child, follow_child in pairs]
    # unpaired follow subtrees have no lead counterpart at any depth
    children.extend(_uniform_status(child, classify) for child in leftovers)

    return MergedRouteNode(
        smiles=lead.smiles,
        inchikey=lead.inchikey,
        status=classify(lead.identity),
        children=children,
    )


def _first_occurrences(root: RouteVisualizationNode) -> dict[str, RouteVisualizationNode]:
    """Maps every identity in a tree to the first node (pre-order) carrying it."""
    index: dict[str, RouteVisualizationNode] = {}
    stack = [root]
    while stack:
        current = stack.pop()
        index.setdefault(current.identity, current)
        stack.extend(reversed(current.children))
    return index


def _annotate_prediction(
    prediction: RouteVisualizationNode,
    reference: RouteVisualizationNode,
    reference_keys: Set[str],
    prediction_keys: Set[str],
) -> MergedRouteNode:
    """
    Annotates a predicted tree as match/extension and injects the reference molecules it misses as ghosts.

    A prediction node is aligned with the same-identity child of its parent's
    partner, or else with the first reference node (pre-order) of its identity.
    A molecule the prediction reaches through a different intermediate thus
    still collects the reference precursors it lacks. Reference molecules that
    the prediction does contain are never drawn twice: when one is skipped,
    its missing precursors are lifted to the nearest drawn ancestor. Each
    reference node contributes its precursors at most once.
    """
    reference_index = _first_occurrences(reference)
    claimed: set[int] = set()

    def _inject(ref_node: RouteVisualizationNode) -> list[MergedRouteNode]:
        if id(ref_node) in claimed:
            return []
        claimed.add(id(ref_node))
        lifted = [ghost for child in ref_node.children for ghost in _inject(child)]
        if ref_node.identity in prediction_keys:
            return lifted
        return [
            MergedRouteNode(
                smiles=ref_node.smiles,
                inchikey=ref_node.inchikey,
                status=NodeStatus.GHOST,
                children=lifted,
            )
        ]

    def _annotate(pred_node: RouteVisualizationNode, partner: RouteVisualizationNode | None) -> MergedRouteNode:
        if partner is None:
            partner = reference_index.get(pred_node.identity)
        if partner is not None and id(partner) in claimed:
            partner = None
        if partner is not None:
            claimed.add(id(partner))

        pairs, leftovers = _pair_children(pred_node.children, partner.children if partner is not None else [])
        children = [_annotate(child, child_partner) for child, child_partner in pairs]
        children.extend(ghost for leftover in leftovers for ghost in _inject(leftover))

        return MergedRouteNode(
            smiles=pred_node.smiles,
            inchikey=pred_node.inchikey,
            status=NodeStatus.MATCH if pred_node.identity in reference_keys else NodeStatus.EXTENSION,
            children=children,
        )

    return _annotate(prediction, reference)


def _uniform_status(node: RouteVisualizationNode, classify: StatusClassifier) -> MergedRouteNode:
    """Annotates a single route without merging anything into it."""
    return MergedRouteNode(
        smiles=node.smiles,
        inchikey=node.inchikey,
        status=classify(node.identity),
        children=[_uniform_status(child, classify) for child in node.children],
    )


def _build_merged_graph(
    merged_root: MergedRouteNode,
    id_prefix: str,
    in_stock_keys: Set[str] | None,
    config: LayoutConfig,
) -> RouteGraph:
    """Lays out an annotated tree and flattens it, dashing edges into and below ghost nodes."""
    layout_root = position_tree(merged_root, id_prefix, config)
    layout_nodes, layout_edges = flatten_layout_tree(layout_root)

    dashed_ids: set[str] = set()
    stack = [(layout_root, False)]
    while stack:
        current, parent_dashed = stack.pop()
        dashed = parent_dashed or current.source.status in GHOST_STATUSES
        if dashed:
            dashed_ids.add(current.id)
        stack.extend((child, dashed) for child in current.children)

    nodes = [
        GraphNode(
            id=n.id,
            smiles=n.source.smiles,
            inchikey=n.source.inchikey,
            x=n.x,
            y=n.y,
            status=n.source.status,
            in_stock=n.source.identity in in_stock_keys if in_stock_keys is not None else None,
            is_leaf=not n.children,
        )
        for n in layout_nodes
    ]
    edges = [
        GraphEdge(id=f"{id_prefix}edge-{idx}", source=source, target=target, dashed=target in dashed_ids)
        for idx, (source, target) in enumerate(layout_edges)
    ]
    return RouteGraph(nodes=nodes, edges=edges)


def build_side_by_side_graph(
    route: RouteVisualizationNode,
    other_route: RouteVisualizationNode,
    reference_keys: Set[str],
    prediction_keys: Set[str],
    is_reference: bool,
    id_prefix: str,
    in_stock_keys: Set[str] | None = None,
    config: LayoutConfig = LAYOUT_CONFIG,
) -> RouteGraph:
    """
    Builds one half of a side-by-side comparison between a reference (ground truth) route and a prediction.

    For the reference side every node is shown as "match", since the reference
    is what the prediction is measured against. For the prediction side nodes
    are "match" or "extension", and reference molecules the prediction misses
    are injected as "ghost" nodes under the closest aligned ancestor.

    Args:
        route: Route to visualize.
        other_route: The route it is compared with.
        reference_keys: Identities of the reference route.
        prediction_keys: Identities of the predicted route.
        is_reference: Whether `route` is the reference (True) or the prediction (False).
        id_prefix: Prefix for node and edge ids.
        in_stock_keys: Identities that are in stock; `in_stock` stays None when omitted.
        config: Layout dimensions.
    """
    if is_reference:
        annotated = _uniform_status(route, lambda _identity: NodeStatus.MATCH)
    else:
        # roots describe the same target, so they are always aligned
        annotated = _annotate_prediction(route, other_route, reference_keys, prediction_keys)

    graph = _build_merged_graph(annotated, id_prefix, in_stock_keys, config)
    logger.debug(
        f"Built side-by-side graph '{id_prefix}' ({'reference' if is_reference else 'prediction'}): "
        f"{len(graph.nodes)} nodes"
    )
    return graph


def build_diff_overlay_graph(
    gt_route: RouteVisualizationNode,
    pred_route: RouteVisualizationNode,
    in_stock_keys: Set[str] | None = None,
    id_prefix: str = "diff_",
    config: LayoutConfig = LAYOUT_CONFIG,
) -> RouteGraph:
    """
    Builds a single graph overlaying a prediction on its ground truth.

    Nodes are "match" (identity in both routes), "extension" (prediction only)
    or "ghost" (ground truth only). Edges into ghost nodes are dashed.

    Args:
        gt_route: Ground truth route.
        pred_route: Predicted route.
        in_stock_keys: Identities that are in stock; `in_stock` stays None when omitted.
        id_prefix: Prefix for node and edge ids.
        config: Layout dimensions.
    """
    gt_keys = collect_identities(gt_route)
    pred_keys = collect_identities(pred_route)

    def classify(identity: str) -> NodeStatus:
        in_gt, in_pred = identity in gt_keys, identity in pred_keys
        if in_gt and in_pred:
            return NodeStatus.MATCH
        if in_pred:
            return NodeStatus.EXTENSION
        return NodeStatus.GHOST

    merged = _merge_trees(pred_route, gt_route, classify)
    graph = _build_merged_graph(merged, id_prefix, in_stock_keys, config)
    logger.debug(f"Built diff overlay graph '{id_prefix}': {len(graph.nodes)} nodes, {len(graph.edges)} edges")
    return graph


def build_prediction_side_by_side_graph(
    route: RouteVisualizationNode,
    other_route: RouteVisualizationNode,
    pred1_keys: Set[str],
    pred2_keys: Set[str],
    is_first_route: bool,
    id_prefix: str,
    in_stock_keys: Set[str] | None = None,
    config: LayoutConfig = LAYOUT_CONFIG,
) -> RouteGraph:
    """
    Builds one half of a side-by-side comparison between two predictions.

    Neither route is the reference, so nothing is injected: nodes are
    "pred-shared" when the other prediction has the same molecule and
    "pred-1-only" / "pred-2-only" otherwise.
    """
    other_keys = pred2_keys if is_first_route else pred1_keys
    only_status = NodeStatus.PRED_1_ONLY if is_first_route else NodeStatus.PRED_2_ONLY

    annotated = _uniform_status(
        route, lambda identity: NodeStatus.PRED_SHARED if identity in other_keys else only_status
    )
    return _build_merged_graph(annotated, id_prefix, in_stock_keys, config)


def build_prediction_diff_overlay_graph(
    pred1_route: RouteVisualizationNode,
    pred2_route: RouteVisualizationNode,
    in_stock_keys: Set[str] | None = None,
    id_prefix: str = "diff_pred_",
    config: LayoutConfig = LAYOUT_CONFIG,
) -> RouteGraph:
    """
    Builds a single graph overlaying two predictions.

    The first prediction leads the merge; molecules unique to the second one
    are "pred-2-only" and drawn with dashed edges.
    """
    pred1_keys = collect_identities(pred1_route)
    pred2_keys = collect_identities(pred2_route)

    def classify(identity: str) -> NodeStatus:
        in_first, in_second = identity in pred1_keys, identity in pred2_keys
        if in_first and in_second:
            return NodeStatus.PRED_SHARED
        if in_first:
            return NodeStatus.PRED_1_ONLY
        return NodeStatus.PRED_2_ONLY

    merged = _merge_trees(pred1_route, pred2_route, classify)
    return _build_merged_graph(merged, id_prefix, in_stock_keys, config)
