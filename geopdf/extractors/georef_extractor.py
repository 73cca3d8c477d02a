"""
Georeference Extractor

Public-facing API for recovering a page's georeferencing.
"""

import logging
from typing import Optional

from geopdf.engine import EngineConfig, GeoPDFEngine
from geopdf.engine.config import GeoreferenceOptions
from geopdf.models.pdf_types import GeoReference, PdfGeoreferenceOptions

logger = logging.getLogger(__name__)


def extract_georeference(
    file_path: str,
    page: int = 1,
    options: Optional[GeoreferenceOptions] = None,
    georef_config: Optional[PdfGeoreferenceOptions] = None,
) -> Optional[GeoReference]:
    """
    Georeferencing of one page.

    Args:
        file_path: PDF file to read
        page: 1-based page number
        options: Full georeferencing options
        georef_config: Simplified API options, takes precedence over `options`

    Returns:
        GeoReference, or None when the page is not georeferenced
    """
    if georef_config is not None:
        options = GeoreferenceOptions(
            dpi_override=georef_config.dpi_override,
            scan_catalog=georef_config.scan_catalog,
        )

    config = EngineConfig(enable_vector_processor=False, georef=options or GeoreferenceOptions())

    try:
        with GeoPDFEngine(file_path, config=config) as engine:
            return engine.georef_processor.get_georeference(page)
    except FileNotFoundError:
        logger.error(f"PDF file not found: {file_path}")
        raise
