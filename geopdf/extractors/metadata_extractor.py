"""
Metadata Extractor

Public-facing API for a document's information dictionary and XMP packet.
"""

import logging

from geopdf.engine import EngineConfig, GeoPDFEngine
from geopdf.models.pdf_types import DocumentMetadata

logger = logging.getLogger(__name__)


def extract_metadata(file_path: str) -> DocumentMetadata:
    config = EngineConfig(enable_vector_processor=False, enable_georef_processor=False)
    with GeoPDFEngine(file_path, config=config) as engine:
        metadata = engine.get_metadata()

    logger.info(f"Read {len(metadata.info)} info entries from {file_path}, XMP {'present' if metadata.xmp else 'absent'}")
    return metadata
