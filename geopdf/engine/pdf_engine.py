"""
GeoPDF Processing Engine - Core Coordinator

The GeoPDFEngine opens a document, wraps it in the DocumentModel adapter and
opens the layer, georeferencing and vector processors in dependency order.

Usage:
    >>> from geopdf.engine import GeoPDFEngine
    >>>
    >>> with GeoPDFEngine('map.pdf') as engine:
    ...     reference = engine.georef_processor.get_georeference(1)
    ...     pages = engine.vector_processor.extract_features()
"""

import logging
import os
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Hashable, Optional

import pikepdf

from geopdf.engine.base_processor import ProcessorRegistry
from geopdf.engine.config import EngineConfig
from geopdf.engine.document import PikepdfDocument
from geopdf.engine.georef_processor import GeorefProcessor
from geopdf.engine.layer_processor import LayerProcessor
from geopdf.engine.vector_processor import VectorProcessor
from geopdf.models.pdf_types import DocumentMetadata
from geopdf.processors.metadata import read_metadata
from geopdf.utils.validation import PdfValidationError, comprehensive_pdf_validation

logger = logging.getLogger(__name__)


class PageCache:
    """Per-page results keyed by (processor, page); oldest entry goes first once full."""

    def __init__(self, max_entries: int):
        self.max_entries = max_entries
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()

    def get(self, key: Hashable) -> Optional[Any]:
        return self._entries.get(key)

    def put(self, key: Hashable, value: Any) -> None:
        if self.max_entries == 0:
            return
        if key not in self._entries and len(self._entries) >= self.max_entries:
            self._entries.popitem(last=False)
        self._entries[key] = value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


class GeoPDFEngine:
    """
    GeoPDF engine with resource management and processor coordination.

    Example:
        >>> with GeoPDFEngine('map.pdf') as engine:
        ...     total_pages = engine.get_page_count()
    """

    def __init__(self, file_path: str, config: Optional[EngineConfig] = None):
        """
        Args:
            file_path: Path to PDF file to process
            config: Engine configuration (uses defaults if None)

        Raises:
            FileNotFoundError: If file does not exist
            PdfValidationError: If configuration is invalid
        """
        self.file_path = file_path
        self.config = config or EngineConfig.default()

        if not os.path.exists(file_path):
            raise FileNotFoundError(f"PDF file not found: {file_path}")

        if not self.config.validate():
            raise PdfValidationError("Invalid engine configuration")

        self._pdf: Optional[pikepdf.Pdf] = None
        self._document: Optional[PikepdfDocument] = None
        self._page_count: Optional[int] = None
        self.page_cache = PageCache(self.config.max_cache_pages)
        self._processors = ProcessorRegistry()

        logger.debug(f"GeoPDFEngine initialized for: {Path(file_path).name}")

    def __enter__(self) -> 'GeoPDFEngine':
        """
        Open the PDF and its processors.

        Raises:
            PdfValidationError: If the PDF cannot be opened or a processor requirement is not enabled
        """
        try:
            logger.info(f"Opening PDF: {self.file_path}")
            if self.config.validate_on_open:
                self._validate_pdf_file()

            self._pdf = pikepdf.open(self.file_path)
            self._document = PikepdfDocument(self._pdf)
            self._page_count = self._document.page_count()

            self._register_processors()
            self._processors.open_all()

            logger.info(f"PDF opened: {self._page_count} pages, processors {self._processors.names}")
            return self

        except PdfValidationError:
            self._close()
            raise
        except Exception as e:
            logger.error(f"Failed to open PDF: {e}")
            self._close()
            raise PdfValidationError(f"Failed to open PDF: {str(e)}")

    def __exit__(self, exc_type, exc_val, exc_tb):
        logger.info("Closing GeoPDF engine")
        self._close()
        if exc_type is not None:
            logger.error(f"Exception during engine operation: {exc_val}")
        return False

    def _validate_pdf_file(self) -> None:
        results = comprehensive_pdf_validation(self.file_path, self.config.max_file_size_mb)
        if not results['is_valid']:
            raise PdfValidationError("; ".join(results['errors']))
        for warning in results['warnings']:
            logger.warning(warning)

    def _register_processors(self) -> None:
        self._processors.register(LayerProcessor(self))
        if self.config.enable_georef_processor:
            self._processors.register(GeorefProcessor(self, self.config.georef))
        if self.config.enable_vector_processor:
            self._processors.register(VectorProcessor(self, self.config.vector))

    def _close(self) -> None:
        """Idempotent release of processors, cache and document."""
        self._processors.close_all()
        self._document = None
        if self._pdf is not None:
            try:
                self._pdf.close()
            except Exception as e:
                logger.warning(f"Error closing pikepdf document: {e}")
            finally:
                self._pdf = None
        self.page_cache.clear()

    @property
    def is_open(self) -> bool:
        return self._document is not None

    @property
    def document(self) -> PikepdfDocument:
        """
        DocumentModel adapter over the open document.

        Raises:
            RuntimeError: If engine not opened
        """
        if self._document is None:
            raise RuntimeError("Engine not opened - use within context manager")
        return self._document

    def get_page_count(self) -> int:
        return self.document.page_count()

    def get_metadata(self) -> DocumentMetadata:
        """Document information dictionary and XMP packet."""
        return read_metadata(self.document)

    def _processor(self, name: str):
        processor = self._processors.get(name)
        if processor is None or not processor.is_ready:
            raise RuntimeError(f"Processor '{name}' not enabled or engine not opened")
        return processor

    @property
    def layer_processor(self) -> LayerProcessor:
        return self._processor(LayerProcessor.name)

    @property
    def georef_processor(self) -> GeorefProcessor:
        return self._processor(GeorefProcessor.name)

    @property
    def vector_processor(self) -> VectorProcessor:
        return self._processor(VectorProcessor.name)

    def get_status(self) -> Dict[str, Any]:
        return {
            'is_open': self.is_open,
            'file_path': self.file_path,
            'page_count': self._page_count,
            'cached_pages': len(self.page_cache),
            'processors': self._processors.names,
            'config': self.config.to_dict(),
        }

    def __repr__(self) -> str:
        status = "open" if self.is_open else "closed"
        return f"GeoPDFEngine({Path(self.file_path).name}, {status})"
