from __future__ import annotations

from collections.abc import Generator
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, RootModel, ValidationError

from retroviz.adapters.base_adapter import BaseAdapter
from retroviz.domain.chem import canonicalize_smiles, get_inchikey
from retroviz.domain.schemas import RouteVisualizationNode, TargetInfo
from retroviz.exceptions import AdapterLogicError, RetrovizException
from retroviz.utils.logging import logger

# --- Pydantic models for input validation ---
# these models validate the raw aizynthfinder output format before any transformation.


class AizynthBaseNode(BaseModel):
    """A base model for shared fields between node types."""

    smiles: str
    children: list[AizynthNode] = Field(default_factory=list)


class AizynthMoleculeInput(AizynthBaseNode):
    """Represents a 'mol' node in the raw aizynth tree."""

    type: Literal["mol"]
    in_stock: bool = False


class AizynthReactionInput(AizynthBaseNode):
    """Represents a 'reaction' node in the raw aizynth tree."""

    type: Literal["reaction"]
    metadata: dict[str, Any] = Field(default_factory=dict)


# a discriminated union to handle the bipartite graph structure.
AizynthNode = Annotated[AizynthMoleculeInput | AizynthReactionInput, Field(discriminator="type")]


class AizynthRouteList(RootModel[list[AizynthMoleculeInput]]):
    """The top-level object for a single target is a list of potential routes."""

    pass


class AizynthAdapter(BaseAdapter):
    """
    Adapter for AiZynthFinder-style outputs.

    AiZynthFinder alternates molecule and reaction nodes; route trees only keep
    the molecules, so every reaction node is collapsed into its product.
    """

    def adapt(self, raw_target_data: Any, target_info: TargetInfo) -> Generator[RouteVisualizationNode, None, None]:
        """
        Validates raw AiZynthFinder data, transforms it, and yields route trees.
        """
        try:
            validated_routes = AizynthRouteList.model_validate(raw_target_data)
        except ValidationError as e:
            logger.warning(f"  - Raw data for target '{target_info.id}' failed AiZynth schema validation. Error: {e}")
            return

        for aizynth_tree_root in validated_routes.root:
            try:
                yield self._transform(aizynth_tree_root, target_info)
            except RetrovizException as e:
                logger.warning(f"  - Route for '{target_info.id}' failed transformation: {e}")
                continue

    def _transform(self, raw_route: AizynthMoleculeInput, target_info: TargetInfo) -> RouteVisualizationNode:
        """
        Orchestrates the transformation of a single AiZynthFinder output tree.
        Raises RetrovizException on failure.
        """
        route = self._build_molecule_node(aizynth_mol=raw_route, path="root")

        if route.smiles != target_info.smiles:
            msg = (
                f"Mismatched SMILES for target {target_info.id}. "
                f"Expected canonical: {target_info.smiles}, but adapter produced: {route.smiles}"
            )
            logger.error(msg)
            raise AdapterLogicError(msg)

        return route

    def _build_molecule_node(self, aizynth_mol: AizynthMoleculeInput, path: str) -> RouteVisualizationNode:
        """
        Recursively builds a route node from a raw aizynth 'mol' node.

        `path` only serves error messages.
        """
        if aizynth_mol.type != "mol":
            raise AdapterLogicError(f"Expected node type 'mol' but got '{aizynth_mol.type}' at path {path}")

        canon_smiles = canonicalize_smiles(aizynth_mol.smiles)
        children: list[RouteVisualizationNode] = []

        if aizynth_mol.children:
            if len(aizynth_mol.children) > 1:
                logger.warning(
                    f"Molecule {canon_smiles} has multiple child reactions; only the first is used in a tree."
                )

            # a molecule node's child must be a reaction node
            reaction_input = aizynth_mol.children[0]
            if not isinstance(reaction_input, AizynthReactionInput):
                raise AdapterLogicError(f"Child of molecule node was not a reaction node at {path}")

            for i, reactant_input in enumerate(reaction_input.children):
                if not isinstance(reactant_input, AizynthMoleculeInput):
                    raise AdapterLogicError(f"Child of reaction node was not a molecule node at {path}")
                children.append(self._build_molecule_node(aizynth_mol=reactant_input, path=f"{path}-{i}"))

        return RouteVisualizationNode(
            smiles=canon_smiles,
            inchikey=get_inchikey(canon_smiles),
            children=children,
        )
