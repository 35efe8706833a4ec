import pytest

from retroviz.adapters.dms_adapter import DMSAdapter
from retroviz.domain.chem import canonicalize_smiles
from retroviz.domain.schemas import RouteVisualizationNode, TargetInfo

# InChIKeys of the small molecules used throughout the comparison tests
ETHANOL_KEY = "LFQSCWFLJHTTHZ-UHFFFAOYSA-N"
ETHANE_KEY = "OTMSDBZUPAUEDD-UHFFFAOYSA-N"
WATER_KEY = "XLYOFNOQVPJJNP-UHFFFAOYSA-N"
METHANOL_KEY = "OKKJLVBELUTLKV-UHFFFAOYSA-N"
METHANE_KEY = "VNWKTOKETHGBQD-UHFFFAOYSA-N"


def node(smiles: str, inchikey: str | None = None, children: list[RouteVisualizationNode] | None = None):
    """Shorthand for building route trees in tests. The InChIKey defaults to a fake key derived from the SMILES."""
    return RouteVisualizationNode(
        smiles=smiles,
        inchikey=inchikey if inchikey is not None else f"INCHIKEY-{smiles}",
        children=children or [],
    )


# --- Route trees ---


@pytest.fixture
def single_node() -> RouteVisualizationNode:
    return node("C", METHANE_KEY)


@pytest.fixture
def linear_chain() -> RouteVisualizationNode:
    """C <- CC <- CCC"""
    return node("C", METHANE_KEY, [node("CC", ETHANE_KEY, [node("CCC", "ATUOYWHBWRKTHZ-UHFFFAOYSA-N")])])


@pytest.fixture
def simple_tree() -> RouteVisualizationNode:
    """
    One parent and two children.
          CCCO
         /    \\
       CCO     C
    """
    return node("CCCO", "BDERNNFJNOPAEC-UHFFFAOYSA-N", [node("CCO", ETHANOL_KEY), node("C", METHANE_KEY)])


@pytest.fixture
def balanced_tree() -> RouteVisualizationNode:
    """
             A
            / \\
           B   C
          / \\ / \\
         D  E F  G
    """
    return node("A", children=[node("B", children=[node("D"), node("E")]), node("C", children=[node("F"), node("G")])])


@pytest.fixture
def asymmetric_tree() -> RouteVisualizationNode:
    """
           A
          /|\\
         B C D
        /|   |
       E F   G
             |
             H
    """
    return node(
        "A",
        children=[
            node("B", children=[node("E"), node("F")]),
            node("C"),
            node("D", children=[node("G", children=[node("H")])]),
        ],
    )


@pytest.fixture
def wide_tree() -> RouteVisualizationNode:
    return node("A", children=[node(s) for s in "BCDEFG"])


@pytest.fixture
def complex_tree() -> RouteVisualizationNode:
    """Simulates a realistic multi-step synthesis route."""
    return node(
        "CC(C)Cc1ccc(cc1)C(C)C(=O)O",
        "INCHIKEY-TARGET",
        [
            node(
                "CC(C)Cc1ccc(cc1)C(C)Cl",
                "INCHIKEY-CHLORO",
                [
                    node(
                        "CC(C)Cc1ccc(cc1)C(C)=O",
                        "INCHIKEY-KETONE",
                        [node("CC(C)Cc1ccc(cc1)C=O", "INCHIKEY-ALDEHYDE"), node("C[Li]", "INCHIKEY-MELI")],
                    ),
                    node("Cl", "INCHIKEY-HCL"),
                ],
            ),
            node("[Na+].[C-]#N", "INCHIKEY-NACN", [node("[Na+].[Cl-]", "INCHIKEY-NACL"), node("C#N", "INCHIKEY-HCN")]),
        ],
    )


@pytest.fixture
def duplicate_tree() -> RouteVisualizationNode:
    """The same reagent (A) used on two branches and twice within one step."""
    return node("T", children=[node("I", children=[node("A"), node("A")]), node("A")])


@pytest.fixture
def ground_truth_route() -> RouteVisualizationNode:
    """CCO made from CC and O."""
    return node("CCO", ETHANOL_KEY, [node("CC", ETHANE_KEY), node("O", WATER_KEY)])


@pytest.fixture
def prediction_route() -> RouteVisualizationNode:
    """CCO made from CC and CO; CO is a hallucinated precursor."""
    return node("CCO", ETHANOL_KEY, [node("CC", ETHANE_KEY), node("CO", METHANOL_KEY)])


# --- Raw model output ---

# fmt:off
@pytest.fixture
def single_dms_aspirin_tree_data() -> dict:
    """Provides the raw dict for a single DMS tree, for testing DMSTree directly."""
    return {"smiles":"CC(=O)OC1=CC=CC=C1C(=O)O","children":[{"smiles":"OC1=CC=CC=C1C(=O)O"},{"smiles":"CC(=O)Cl"}]}

@pytest.fixture
def raw_dms_aspirin_data() -> list[dict]:
    # The raw data for a target is a LIST of routes.
    return [{"smiles":"CC(=O)OC1=CC=CC=C1C(=O)O","children":[{"smiles":"OC1=CC=CC=C1C(=O)O"},{"smiles":"CC(=O)Cl"}]}]

@pytest.fixture
def raw_dms_vonoprazan_data() -> list[dict]:
    return [{"smiles":"CNCc1cc(-c2ccccc2F)n(S(=O)(=O)c2cccnc2)c1","children":[{"smiles":"O=Cc1cc(-c2ccccc2F)n(S(=O)(=O)c2cccnc2)c1","children":[{"smiles":"O=Cc1c[nH]c(-c2ccccc2F)c1"},{"smiles":"O=S(=O)(Cl)c1cccnc1"}]},{"smiles":"CN"}]}]

@pytest.fixture
def raw_dms_invalid_smiles_data() -> list[dict]:
    return [{"smiles": "CC(=O)OC1=CC=CC=C1C(=O)O", "children": [{"smiles": "this is not a smiles"}]}]
# fmt:on


@pytest.fixture
def aspirin_target_info() -> TargetInfo:
    return TargetInfo(id="aspirin", smiles=canonicalize_smiles("CC(=O)OC1=CC=CC=C1C(=O)O"))


@pytest.fixture
def vonoprazan_target_info() -> TargetInfo:
    return TargetInfo(id="vonoprazan", smiles=canonicalize_smiles("CNCc1cc(-c2ccccc2F)n(S(=O)(=O)c2cccnc2)c1"))


@pytest.fixture
def dms_adapter() -> DMSAdapter:
    return DMSAdapter()
