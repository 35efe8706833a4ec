from collections.abc import Generator
from typing import Any

from pydantic import ValidationError

from retroviz.adapters.base_adapter import BaseAdapter
from retroviz.domain.chem import canonicalize_smiles, get_inchikey
from retroviz.domain.schemas import DMSRouteList, DMSTree, RouteVisualizationNode, TargetInfo
from retroviz.exceptions import AdapterLogicError, RetrovizException
from retroviz.utils.logging import logger


class DMSAdapter(BaseAdapter):
    """Adapter for DirectMultiStep-style outputs, where every node is a molecule with its precursors as children."""

    def adapt(self, raw_target_data: Any, target_info: TargetInfo) -> Generator[RouteVisualizationNode, None, None]:
        """
        Validates raw DMS data, transforms it, and yields route trees.
        """
        try:
            validated_routes = DMSRouteList.model_validate(raw_target_data)
        except ValidationError as e:
            logger.warning(f"  - Raw data for target '{target_info.id}' failed DMS schema validation. Error: {e}")
            return

        for dms_tree_root in validated_routes.root:
            try:
                yield self._transform(dms_tree_root, target_info)
            except RetrovizException as e:
                logger.warning(f"  - Route for '{target_info.id}' failed transformation: {e}")
                continue

    def _transform(self, raw_route: DMSTree, target_info: TargetInfo) -> RouteVisualizationNode:
        """
        Transforms a single DMS tree. Raises RetrovizException on failure.
        """
        route = self._build_node(raw_route)

        if route.smiles != target_info.smiles:
            msg = (
                f"Mismatched SMILES for target {target_info.id}. "
                f"Expected canonical: {target_info.smiles}, but adapter produced: {route.smiles}"
            )
            logger.error(msg)
            raise AdapterLogicError(msg)

        return route

    def _build_node(self, dms_node: DMSTree) -> RouteVisualizationNode:
        """Recursively canonicalizes a DMS node and its precursors."""
        canon_smiles = canonicalize_smiles(dms_node.smiles)
        return RouteVisualizationNode(
            smiles=canon_smiles,
            inchikey=get_inchikey(canon_smiles),
            children=[self._build_node(child) for child in dms_node.children],
        )
