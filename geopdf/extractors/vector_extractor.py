"""
Vector Extractor

Public-facing API for GeoPDF geometry extraction.
"""

import logging
from typing import Callable, Dict, List, Optional

from geopdf.engine import EngineConfig, GeoPDFEngine
from geopdf.engine.config import GeoreferenceOptions, VectorProcessorOptions
from geopdf.models.pdf_types import (
    FeatureExtractionResponse,
    PageFeatures,
    PdfFeatureExtractionOptions,
    StructureFeature,
)

logger = logging.getLogger(__name__)


def _processor_options(feature_config: Optional[PdfFeatureExtractionOptions]) -> Optional[VectorProcessorOptions]:
    """Map the simplified API config onto the engine options."""
    if feature_config is None:
        return None
    return VectorProcessorOptions(
        ignore_layers=feature_config.ignore_layers,
        layers_on=list(feature_config.layers_on),
        layers_off=list(feature_config.layers_off),
        max_recursion_depth=feature_config.max_recursion_depth,
        apply_georeferencing=feature_config.apply_georeferencing,
    )


def _engine_config(
    options: Optional[VectorProcessorOptions],
    dpi_override: Optional[float] = None,
) -> EngineConfig:
    return EngineConfig(
        vector=options or VectorProcessorOptions(),
        georef=GeoreferenceOptions(dpi_override=dpi_override),
    )


def extract_features(
    file_path: str,
    start_page: int = 1,
    end_page: Optional[int] = None,
    options: Optional[VectorProcessorOptions] = None,
    feature_config: Optional[PdfFeatureExtractionOptions] = None,
    stop: Optional[Callable[[], bool]] = None,
) -> List[PageFeatures]:
    """Extract layer-tagged geometries from a PDF file, one PageFeatures per page."""
    try:
        logger.info(
            f"Starting feature extraction from {file_path} "
            f"(pages {start_page} to {end_page or 'end'})"
        )

        processor_options = _processor_options(feature_config) or options
        dpi_override = feature_config.dpi_override if feature_config else None

        with GeoPDFEngine(file_path, config=_engine_config(processor_options, dpi_override)) as engine:
            pages = engine.vector_processor.extract_features(
                start_page=start_page,
                end_page=end_page,
                stop=stop,
            )

            logger.info(f"Extracted features from {len(pages)} pages")
            return pages

    except FileNotFoundError:
        logger.error(f"PDF file not found: {file_path}")
        raise


def extract_feature_report(
    file_path: str,
    start_page: int = 1,
    end_page: Optional[int] = None,
    feature_config: Optional[PdfFeatureExtractionOptions] = None,
    include_structure: bool = False,
    stop: Optional[Callable[[], bool]] = None,
) -> FeatureExtractionResponse:
    """Features plus the document's layers, and optionally structure-tree elements."""
    processor_options = _processor_options(feature_config) or VectorProcessorOptions()
    dpi_override = feature_config.dpi_override if feature_config else None

    with GeoPDFEngine(file_path, config=_engine_config(processor_options, dpi_override)) as engine:
        pages = engine.vector_processor.extract_features(start_page=start_page, end_page=end_page, stop=stop)
        structure: Dict[int, List[StructureFeature]] = {}
        if include_structure:
            for page in pages:
                elements = engine.vector_processor.extract_structure(page)
                if elements:
                    structure[page.page_number] = elements
        layers = engine.layer_processor.list_layers()

    total = sum(len(page.features) for page in pages)
    logger.info(f"Extracted {total} features and {len(layers)} layers from {file_path}")
    return FeatureExtractionResponse(pages=pages, layers=layers, structure=structure)
