"""
PDF Vector Processor

High-level processor for extracting layer-tagged geometry from PDF pages.
Coordinates the ContentInterpreter, the engine's LayerResolver and, when
ground coordinates are requested, the georeferencing processor.
"""

import logging
from typing import Callable, List, Optional, Tuple

import pikepdf

from geopdf.engine.base_processor import EngineProcessor
from geopdf.engine.config import PageRange, VectorProcessorOptions
from geopdf.models.pdf_types import PageFeatures, StructureFeature
from geopdf.processors.content_interpreter import ContentInterpreter
from geopdf.processors.pdf_graphics import IDENTITY_MATRIX
from geopdf.processors.structure_tree import StructureTreeExplorer

logger = logging.getLogger(__name__)


class VectorProcessor(EngineProcessor):
    """
    Processor for extracting geometries from PDFs.

    Reads layer visibility from the layer processor and, with
    `apply_georeferencing`, page transforms from the georeferencing processor.
    """

    name = "vector"

    def __init__(self, engine, options: Optional[VectorProcessorOptions] = None):
        super().__init__(engine)
        self.options = options or VectorProcessorOptions()

    def requires(self) -> Tuple[str, ...]:
        if self.options.apply_georeferencing:
            return ("layers", "georef")
        return ("layers",)

    def open(self) -> None:
        if self.options.layers_on or self.options.layers_off:
            self.engine.layer_processor.apply_filter(self.options.layers_on, self.options.layers_off)
        super().open()

    def extract_features(
        self,
        start_page: int = 1,
        end_page: Optional[int] = None,
        stop: Optional[Callable[[], bool]] = None,
    ) -> List[PageFeatures]:
        """
        Extract geometries from PDF pages.

        Args:
            start_page: Starting page number (1-indexed)
            end_page: Ending page number (1-indexed), None for all pages
            stop: Polled between operators; returning True ends extraction

        Returns:
            One PageFeatures per page parsed; the last one is marked `stopped`
            when the stop signal ended extraction early

        Raises:
            RuntimeError: If processor not open
            ValueError: If the page range is invalid
        """
        self._require_ready()
        page_numbers = PageRange(start=start_page, end=end_page).to_page_numbers(self.engine.get_page_count())
        logger.info(f"Extracting features from {len(page_numbers)} pages starting at {start_page}")

        interpreter = ContentInterpreter(
            self.engine.document,
            layer_resolver=self.engine.layer_processor.resolver,
            ignore_layers=self.options.ignore_layers,
            max_recursion_depth=self.options.max_recursion_depth,
            stop=stop,
        )

        pages: List[PageFeatures] = []
        for page_num in page_numbers:
            try:
                page_features = self._extract_page(interpreter, page_num)
            except pikepdf.PdfError as e:
                logger.error(f"Error extracting features from page {page_num}: {e}")
                page_features = PageFeatures(page_number=page_num)

            pages.append(page_features)
            logger.debug(f"Page {page_num}: extracted {len(page_features.features)} features")
            if page_features.stopped:
                logger.info(f"Extraction stopped on page {page_num}")
                break

        return pages

    def _extract_page(self, interpreter: ContentInterpreter, page_num: int) -> PageFeatures:
        initial_ctm = IDENTITY_MATRIX
        georeferenced = False
        if self.options.apply_georeferencing:
            reference = self.engine.georef_processor.get_georeference(page_num)
            if reference is not None and reference.transform is not None:
                initial_ctm = reference.transform
                georeferenced = True
            else:
                logger.debug(f"Page {page_num}: no affine transform, keeping page coordinates")

        page_features = interpreter.parse_page(page_num - 1, initial_ctm=initial_ctm)
        page_features.georeferenced = georeferenced
        return page_features

    def extract_structure(self, page_features: PageFeatures) -> List[StructureFeature]:
        """Structure-tree elements of a parsed page, paired with their geometry."""
        self._require_ready()
        explorer = StructureTreeExplorer(self.engine.document)
        return explorer.explore(page_features.page_number - 1, page_features)
