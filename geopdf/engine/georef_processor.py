"""
Georeference Processor

Recovers the georeferencing of pages through the GeoreferenceParser and
caches the result per page on the engine.
"""

import logging
from typing import Optional

from geopdf.engine.base_processor import EngineProcessor
from geopdf.engine.config import GeoreferenceOptions
from geopdf.models.pdf_types import GeoReference
from geopdf.processors.georeference_parser import GeoreferenceParser

logger = logging.getLogger(__name__)

_NOT_GEOREFERENCED = "not-georeferenced"


class GeorefProcessor(EngineProcessor):
    """Per-page GeoReference lookup."""

    name = "georef"

    def __init__(self, engine, options: Optional[GeoreferenceOptions] = None):
        super().__init__(engine)
        self.options = options or GeoreferenceOptions()
        self._parser: Optional[GeoreferenceParser] = None

    def open(self) -> None:
        self._parser = GeoreferenceParser(
            self.engine.document,
            dpi=self.options.dpi,
            max_scan_depth=self.options.max_scan_depth,
            scan_catalog=self.options.scan_catalog,
        )
        super().open()

    def close(self) -> None:
        self._parser = None
        super().close()

    def get_georeference(self, page_num: int) -> Optional[GeoReference]:
        """
        GeoReference of a page.

        Args:
            page_num: 1-based page number

        Returns:
            GeoReference, or None when the page is not georeferenced

        Raises:
            RuntimeError: If processor not open
            IndexError: If page number out of bounds
        """
        self._require_ready()
        total = self.engine.get_page_count()
        if page_num < 1 or page_num > total:
            raise IndexError(f"Page {page_num} out of bounds (1-{total})")

        cache_key = ("georef", page_num)
        cached = self.engine.page_cache.get(cache_key)
        if cached is not None:
            return None if isinstance(cached, str) else cached

        reference = self._parser.parse(page_num - 1)
        if reference is None:
            logger.info(f"Page {page_num}: no georeferencing found")
        else:
            logger.info(
                f"Page {page_num}: {reference.dialect.value} georeferencing, "
                f"{'affine transform' if reference.has_transform else f'{len(reference.gcps or [])} GCPs'}, "
                f"SRS {reference.spatial_reference}"
            )
        self.engine.page_cache.put(cache_key, reference if reference is not None else _NOT_GEOREFERENCED)
        return reference
