# src/retroviz/adapters/base_adapter.py

from abc import ABC, abstractmethod
from collections.abc import Generator
from typing import Any

from retroviz.domain.schemas import RouteVisualizationNode, TargetInfo


class BaseAdapter(ABC):
    """
    Abstract base class for all model output adapters.

    An adapter's role is to transform a model's raw output format into
    `RouteVisualizationNode` trees, with canonical SMILES and InChIKeys.
    """

    @abstractmethod
    def adapt(self, raw_target_data: Any, target_info: TargetInfo) -> Generator[RouteVisualizationNode, None, None]:
        """
        Validates, transforms, and yields route trees from raw model data.

        This is the primary method for an adapter. It encapsulates all model-
        specific logic. It should be a generator that yields successful trees
        and handles its own exceptions internally by logging and continuing.

        Args:
            raw_target_data: The raw data blob from a file for a single target.
            target_info: The identity of the target molecule.

        Yields:
            Successfully transformed route trees, in the model's rank order.
        """
        raise NotImplementedError

    @abstractmethod
    def _transform(self, raw_route: Any, target_info: TargetInfo) -> RouteVisualizationNode:
        """
        Transforms one validated raw route into a route tree.

        This method should be considered 'unsafe' and is expected to raise
        a RetrovizException (e.g., InvalidSmilesError, AdapterLogicError) if
        the transformation cannot be completed successfully.

        Raises:
            RetrovizException: If any part of the transformation fails.
        """
        raise NotImplementedError
