from retroviz.visualization.comparison import (
    build_diff_overlay_graph,
    build_prediction_diff_overlay_graph,
    build_prediction_side_by_side_graph,
    build_side_by_side_graph,
)
from retroviz.visualization.constants import (
    HORIZONTAL_SPACING,
    LAYOUT_CONFIG,
    NODE_HEIGHT,
    NODE_WIDTH,
    VERTICAL_SPACING,
    LayoutConfig,
)
from retroviz.visualization.graph_builder import build_route_graph, get_route_identity_set
from retroviz.visualization.layout import assign_positions, calculate_subtree_width, layout_tree

__all__ = [
    "HORIZONTAL_SPACING",
    "LAYOUT_CONFIG",
    "NODE_HEIGHT",
    "NODE_WIDTH",
    "VERTICAL_SPACING",
    "LayoutConfig",
    "assign_positions",
    "build_diff_overlay_graph",
    "build_prediction_diff_overlay_graph",
    "build_prediction_side_by_side_graph",
    "build_route_graph",
    "build_side_by_side_graph",
    "calculate_subtree_width",
    "get_route_identity_set",
    "layout_tree",
]
