"""
Layer Processor

Owns the document's LayerResolver so that layer discovery runs once per
engine and caller overrides persist across page parses.
"""

import logging
from typing import Iterable, List, Optional, Union

from geopdf.engine.base_processor import EngineProcessor
from geopdf.models.pdf_types import LayerInfo, VisibilityState
from geopdf.processors.layer_resolver import LayerResolver, sanitize_layer_name

logger = logging.getLogger(__name__)


class LayerProcessor(EngineProcessor):
    """Layer discovery and visibility overrides for one document."""

    name = "layers"

    def __init__(self, engine):
        super().__init__(engine)
        self._resolver: Optional[LayerResolver] = None

    def open(self) -> None:
        self._resolver = LayerResolver(self.engine.document)
        super().open()

    def close(self) -> None:
        self._resolver = None
        super().close()

    @property
    def resolver(self) -> LayerResolver:
        self._require_ready()
        return self._resolver

    def list_layers(self) -> List[LayerInfo]:
        resolver = self.resolver
        return [
            LayerInfo(
                name=layer.name,
                sanitized_name=sanitize_layer_name(layer.name),
                ref=layer.ref,
                parent=layer.parent,
                default_visibility=layer.default_state,
                visible=resolver.is_visible(layer),
            )
            for layer in resolver.discover_layers()
        ]

    def set_layer_visibility(self, name: str, state: Union[VisibilityState, bool]) -> bool:
        return self.resolver.set_layer_visibility(name, state)

    def apply_filter(self, layers_on: Iterable[str] = (), layers_off: Iterable[str] = ()) -> List[str]:
        """
        Force layers on or off by name.

        Returns:
            Names that matched no layer
        """
        requested = [(name, VisibilityState.ON) for name in layers_on]
        requested += [(name, VisibilityState.OFF) for name in layers_off]
        unknown = [name for name, state in requested if not self.set_layer_visibility(name, state)]
        if unknown:
            logger.warning(f"Layer filter names not found in document: {unknown}")
        return unknown
