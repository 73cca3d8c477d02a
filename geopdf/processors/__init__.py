"""
GeoPDF Processing Components

Stateful components that interpret page content and document metadata:

- Tokenizer: lazy content-stream tokens
- GraphicsStateTracker / MarkedContentStack: q/Q and BDC/EMC nesting
- ContentInterpreter: operators to layer-tagged geometry
- LayerResolver: optional content group discovery and visibility
- GeoreferenceParser: LGIDict and ISO Measure georeferencing
- StructureTreeExplorer: structure elements paired with geometry by MCID
- read_metadata: /Info entries and the XMP packet

These differ from utils/ which contains pure, stateless functions.
"""

from geopdf.processors.tokenizer import Token, TokenType, iter_tokens
from geopdf.processors.pdf_graphics import GraphicsStateTracker, MarkedContentStack
from geopdf.processors.geometry_builder import PathState, build_features, build_geometries
from geopdf.processors.layer_resolver import (
    CatalogLayerSource,
    LayerResolver,
    LayerSource,
    PropertiesLayerSource,
    sanitize_layer_name,
)
from geopdf.processors.content_interpreter import ContentInterpreter, ParseContext
from geopdf.processors.georeference_parser import GeoCandidate, GeoDictParseError, GeoreferenceParser
from geopdf.processors.structure_tree import StructureTreeExplorer
from geopdf.processors.metadata import read_metadata

__all__ = [
    'Token',
    'TokenType',
    'iter_tokens',
    'GraphicsStateTracker',
    'MarkedContentStack',
    'PathState',
    'build_features',
    'build_geometries',
    'CatalogLayerSource',
    'LayerResolver',
    'LayerSource',
    'PropertiesLayerSource',
    'sanitize_layer_name',
    'ContentInterpreter',
    'ParseContext',
    'GeoCandidate',
    'GeoDictParseError',
    'GeoreferenceParser',
    'StructureTreeExplorer',
    'read_metadata',
]
