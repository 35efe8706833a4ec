"""
Layout configuration constants for route tree visualization.

All values are in layout units (pixels on the default canvas). Changing them
rescales every layout but never changes its topology.
"""

from pydantic import BaseModel, ConfigDict, PositiveFloat

# Node dimensions
NODE_WIDTH = 150
NODE_HEIGHT = 60

# Spacing between nodes
HORIZONTAL_SPACING = 30
VERTICAL_SPACING = 160


class LayoutConfig(BaseModel):
    """Node dimensions and spacing used by every layout call."""

    model_config = ConfigDict(frozen=True)

    node_width: PositiveFloat = NODE_WIDTH
    node_height: PositiveFloat = NODE_HEIGHT
    horizontal_spacing: PositiveFloat = HORIZONTAL_SPACING
    vertical_spacing: PositiveFloat = VERTICAL_SPACING

    @property
    def level_height(self) -> float:
        """Vertical distance between two consecutive depth levels."""
        return self.node_height + self.vertical_spacing


LAYOUT_CONFIG = LayoutConfig()
