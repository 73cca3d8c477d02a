"""GeoPDF vector, layer and georeferencing extraction."""

__version__ = "1.0.0"

from geopdf.engine import EngineConfig, GeoPDFEngine
from geopdf.extractors.georef_extractor import extract_georeference
from geopdf.extractors.layer_extractor import extract_layers
from geopdf.extractors.metadata_extractor import extract_metadata
from geopdf.extractors.vector_extractor import extract_feature_report, extract_features

__all__ = [
    'EngineConfig',
    'GeoPDFEngine',
    'extract_features',
    'extract_feature_report',
    'extract_georeference',
    'extract_layers',
    'extract_metadata',
]
