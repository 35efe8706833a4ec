from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, RootModel

from retroviz.typing import SmilesStr

# -------------------------------------------------------------------
#  Input Schemas (raw model output and persisted records)
# -------------------------------------------------------------------


class DMSTree(BaseModel):
    """
    A Pydantic model for the raw output from "DMS" models.

    This recursively validates the structure of a synthetic tree node,
    ensuring it has a 'smiles' string and a list of 'children' nodes.
    """

    smiles: str  # we don't canonicalize yet; this is raw input
    children: list["DMSTree"] = Field(default_factory=list)


class DMSRouteList(RootModel[list[DMSTree]]):
    """
    Represents the raw model output for a single target, which is a list of routes.
    """

    pass


class MoleculeRecord(BaseModel):
    """A molecule row as stored by the data layer."""

    id: str
    smiles: str
    inchikey: str


class RouteNodeRecord(BaseModel):
    """
    A single persisted route node.

    Routes are stored flat: every node points at its parent, and the root is
    the only node without one.
    """

    id: str
    parent_id: str | None = None
    molecule: MoleculeRecord
    is_leaf: bool = False
    template: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


# -------------------------------------------------------------------
#  Tree Model (what the layout and diff engines consume)
# -------------------------------------------------------------------


class NodeStatus(StrEnum):
    """Annotation attached to every rendered node."""

    DEFAULT = "default"
    IN_STOCK = "in-stock"
    # ground truth vs prediction
    MATCH = "match"
    EXTENSION = "extension"
    GHOST = "ghost"
    # prediction vs prediction
    PRED_SHARED = "pred-shared"
    PRED_1_ONLY = "pred-1-only"
    PRED_2_ONLY = "pred-2-only"


class RouteVisualizationNode(BaseModel):
    """
    A molecule in a synthesis route, together with the precursors it is made from.

    Children keep the original reactant order. Instances are frozen; the layout
    and diff engines only ever build new objects from them.
    """

    model_config = ConfigDict(frozen=True)

    smiles: str
    inchikey: str | None = None
    children: list["RouteVisualizationNode"] = Field(default_factory=list)

    @property
    def identity(self) -> str:
        """The key used for equality across trees: the InChIKey, or the SMILES when no key is known."""
        return self.inchikey or self.smiles

    @property
    def is_leaf(self) -> bool:
        return not self.children


class MergedRouteNode(RouteVisualizationNode):
    """A node of a merged comparison tree, carrying its diff status."""

    status: NodeStatus
    children: list["MergedRouteNode"] = Field(default_factory=list)


# -------------------------------------------------------------------
#  Output Schemas (positioned graphs for the rendering layer)
# -------------------------------------------------------------------


class GraphNode(BaseModel):
    id: str
    smiles: str
    inchikey: str | None = None
    x: float
    y: float
    status: NodeStatus | None = None
    in_stock: bool | None = None
    is_leaf: bool = False


class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    dashed: bool = False


class RouteGraph(BaseModel):
    """
    A flat, positioned graph of a single route or of a comparison.

    Node ids are unique and every edge references existing nodes.
    """

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)


# -------------------------------------------------------------------
#  Pipeline Schemas
# -------------------------------------------------------------------


class TargetInfo(BaseModel):
    """A simple container for the target molecule's identity."""

    smiles: SmilesStr
    id: str = Field(..., description="The original identifier for the target molecule.")


class RenderedRoute(BaseModel):
    """One predicted route, laid out and ready to be drawn."""

    rank: int
    signature: str
    graph: RouteGraph
    diff_graph: RouteGraph | None = None


class RunStatistics(BaseModel):
    """A Pydantic model to hold and calculate statistics for a rendering run."""

    total_routes_in_raw_files: int = 0
    routes_failed_transformation: int = 0
    successful_routes_before_dedup: int = 0
    final_unique_routes_rendered: int = 0
    routes_with_ground_truth_diff: int = 0
    targets_with_at_least_one_route: set[str] = Field(default_factory=set)

    @property
    def num_targets_with_routes(self) -> int:
        """The count of unique targets that have at least one rendered route."""
        return len(self.targets_with_at_least_one_route)

    @property
    def duplication_factor(self) -> float:
        """Ratio of successful routes before and after deduplication. 1.0 means no duplicates."""
        if self.final_unique_routes_rendered == 0:
            return 0.0
        ratio = self.successful_routes_before_dedup / self.final_unique_routes_rendered
        return round(ratio, 2)

    def to_manifest_dict(self) -> dict[str, int | float]:
        """Generates a dictionary suitable for including in the final manifest."""
        return {
            "total_routes_in_raw_files": self.total_routes_in_raw_files,
            "routes_failed_transformation": self.routes_failed_transformation,
            "final_unique_routes_rendered": self.final_unique_routes_rendered,
            "routes_with_ground_truth_diff": self.routes_with_ground_truth_diff,
            "num_targets_with_at_least_one_route": self.num_targets_with_routes,
            "duplication_factor": self.duplication_factor,
        }
