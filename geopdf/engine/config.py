"""
Configuration system for the GeoPDF engine.

Dataclass options per processor, nested in one EngineConfig that round-trips
through plain dicts for API and logging use.
"""

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

DEFAULT_DPI = 150.0


def _known_keys(cls, values: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    for key in values:
        if key not in names:
            logger.warning(f"Unknown {cls.__name__} key '{key}' will be ignored")
    return {key: value for key, value in values.items() if key in names}


def _report(problems: List[str]) -> bool:
    for problem in problems:
        logger.error(problem)
    return not problems


@dataclass
class VectorProcessorOptions:
    """Layer filtering, form recursion and coordinate output of geometry extraction."""
    ignore_layers: bool = False  # Emit geometry inside hidden layers too
    layers_on: List[str] = field(default_factory=list)  # Layer names forced visible
    layers_off: List[str] = field(default_factory=list)  # Layer names forced hidden
    max_recursion_depth: int = 16  # Nesting limit for form XObjects
    apply_georeferencing: bool = False  # Ground coordinates when a transform exists

    def problems(self) -> List[str]:
        found = []
        if self.max_recursion_depth < 0:
            found.append("max_recursion_depth must be non-negative")
        overlap = set(self.layers_on) & set(self.layers_off)
        if overlap:
            found.append(f"Layers both forced on and off: {sorted(overlap)}")
        return found

    def validate(self) -> bool:
        return _report(self.problems())


@dataclass
class GeoreferenceOptions:
    """Options for georeferencing recovery."""
    dpi_override: Optional[float] = None  # Raster resolution for GCP pixel coordinates
    max_scan_depth: int = 8  # Depth bound of the metadata scan
    scan_catalog: bool = True  # Also look for metadata in the document catalog

    @property
    def dpi(self) -> float:
        return self.dpi_override or DEFAULT_DPI

    def problems(self) -> List[str]:
        found = []
        if self.dpi_override is not None and self.dpi_override <= 0:
            found.append("dpi_override must be positive")
        if self.max_scan_depth < 0:
            found.append("max_scan_depth must be non-negative")
        return found

    def validate(self) -> bool:
        return _report(self.problems())


@dataclass
class EngineConfig:
    """
    Central configuration for GeoPDFEngine initialization.

    Example:
        >>> config = EngineConfig(enable_georef_processor=False)
        >>> engine = GeoPDFEngine(file_path, config=config)
    """

    max_cache_pages: int = 10  # 0 disables the per-page cache

    enable_vector_processor: bool = True
    enable_georef_processor: bool = True
    vector: VectorProcessorOptions = field(default_factory=VectorProcessorOptions)
    georef: GeoreferenceOptions = field(default_factory=GeoreferenceOptions)

    max_file_size_mb: int = 50
    validate_on_open: bool = True

    def validate(self) -> bool:
        found = []
        if self.max_cache_pages < 0:
            found.append("max_cache_pages must be non-negative")
        if self.max_file_size_mb < 1:
            found.append("max_file_size_mb must be at least 1 MB")
        if self.enable_vector_processor:
            found += self.vector.problems()
        if self.enable_georef_processor:
            found += self.georef.problems()
        return _report(found)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> 'EngineConfig':
        """
        Create EngineConfig from a dictionary such as `to_dict()` output.

        Unknown keys are ignored with a warning.
        """
        values = _known_keys(cls, config)
        if isinstance(values.get('vector'), dict):
            values['vector'] = VectorProcessorOptions(**_known_keys(VectorProcessorOptions, values['vector']))
        if isinstance(values.get('georef'), dict):
            values['georef'] = GeoreferenceOptions(**_known_keys(GeoreferenceOptions, values['georef']))
        return cls(**values)

    @classmethod
    def default(cls) -> 'EngineConfig':
        return cls()


@dataclass
class PageRange:
    """
    Range of pages to process, 1-based and inclusive.

    Example:
        >>> PageRange(start=2, end=5).to_page_numbers(10)
        [2, 3, 4, 5]
    """

    start: int = 1
    end: Optional[int] = None  # None means "to end of document"

    def __post_init__(self):
        if self.start < 1:
            raise ValueError(f"start page must be >= 1, got {self.start}")
        if self.end is not None and self.end < self.start:
            raise ValueError(f"end page ({self.end}) must be >= start page ({self.start})")

    def to_page_numbers(self, total_pages: int) -> List[int]:
        """Explicit 1-based page numbers; pages past the document are dropped."""
        end = total_pages if self.end is None else min(self.end, total_pages)
        return list(range(self.start, end + 1))
