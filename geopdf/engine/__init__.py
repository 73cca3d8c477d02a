"""
GeoPDF Processing Engine

Core engine module for coordinating document access and the layer, vector
and georeferencing processors.
"""

__version__ = "1.0.0"

from geopdf.engine.pdf_engine import GeoPDFEngine, PageCache
from geopdf.engine.config import (
    EngineConfig,
    GeoreferenceOptions,
    PageRange,
    VectorProcessorOptions,
)
from geopdf.engine.base_processor import EngineProcessor, ProcessorRegistry
from geopdf.engine.document import DocumentModel, PikepdfDocument

__all__ = [
    'GeoPDFEngine',
    'PageCache',
    'EngineConfig',
    'GeoreferenceOptions',
    'PageRange',
    'VectorProcessorOptions',
    'EngineProcessor',
    'ProcessorRegistry',
    'DocumentModel',
    'PikepdfDocument',
]
