"""
Layer Extractor

Public-facing API for listing a document's optional content groups.
"""

import logging
from typing import List

from geopdf.engine import EngineConfig, GeoPDFEngine
from geopdf.models.pdf_types import LayerInfo

logger = logging.getLogger(__name__)


def extract_layers(file_path: str) -> List[LayerInfo]:
    """Layers of a PDF file in display order with their default visibility."""
    config = EngineConfig(enable_vector_processor=False, enable_georef_processor=False)
    with GeoPDFEngine(file_path, config=config) as engine:
        layers = engine.layer_processor.list_layers()

    logger.info(f"Found {len(layers)} layers in {file_path}")
    return layers
