"""
Engine processors and their registry.

A processor wraps one concern of an open document (layers, georeferencing,
geometry) and may depend on other processors. The registry opens processors
so that every dependency is ready first and closes them in reverse.
"""

import logging
from typing import TYPE_CHECKING, Dict, List, Tuple

from geopdf.utils.validation import PdfValidationError

if TYPE_CHECKING:
    from geopdf.engine.pdf_engine import GeoPDFEngine

logger = logging.getLogger(__name__)


class EngineProcessor:
    """
    One document-scoped concern of a GeoPDFEngine.

    Subclasses set `name`, list the processors they read from in
    `requires()` and build their per-document state in `open()`.
    """

    name = "processor"

    def __init__(self, engine: 'GeoPDFEngine'):
        self.engine = engine
        self._ready = False

    def requires(self) -> Tuple[str, ...]:
        return ()

    def open(self) -> None:
        self._ready = True

    def close(self) -> None:
        self._ready = False

    @property
    def is_ready(self) -> bool:
        return self._ready

    def _require_ready(self) -> None:
        if not self._ready:
            raise RuntimeError(f"{self.__class__.__name__} not open. Use GeoPDFEngine context manager.")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({'open' if self._ready else 'closed'})"


class ProcessorRegistry:
    """Processors of one engine, opened in dependency order."""

    def __init__(self):
        self._processors: Dict[str, EngineProcessor] = {}
        self._open_order: List[str] = []

    def register(self, processor: EngineProcessor) -> None:
        if processor.name in self._processors:
            logger.warning(f"Processor '{processor.name}' already registered, replacing")
        self._processors[processor.name] = processor

    def get(self, name: str):
        return self._processors.get(name)

    def resolve_order(self) -> List[str]:
        """
        Registration order adjusted so each processor follows its requirements.

        Raises:
            PdfValidationError: A requirement is not registered or requirements form a cycle
        """
        order: List[str] = []
        visiting: List[str] = []

        def visit(name: str) -> None:
            if name in order:
                return
            if name in visiting:
                raise PdfValidationError(f"Processor dependency cycle: {' -> '.join(visiting + [name])}")
            visiting.append(name)
            for required in self._processors[name].requires():
                if required not in self._processors:
                    raise PdfValidationError(f"Processor '{name}' requires '{required}', which is not enabled")
                visit(required)
            visiting.pop()
            order.append(name)

        for name in self._processors:
            visit(name)
        return order

    def open_all(self) -> None:
        for name in self.resolve_order():
            self._processors[name].open()
            self._open_order.append(name)
            logger.debug(f"Opened processor: {name}")

    def close_all(self) -> None:
        """Close opened processors in reverse order; one failure does not stop the rest."""
        while self._open_order:
            name = self._open_order.pop()
            try:
                self._processors[name].close()
            except Exception as e:
                logger.warning(f"Error closing processor '{name}': {e}")

    @property
    def names(self) -> List[str]:
        return list(self._open_order) or list(self._processors)
