"""
Pydantic models for GeoPDF Content Extraction
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

Point = Tuple[float, float]
ObjectRef = Tuple[int, int]
AffineMatrix = Tuple[float, float, float, float, float, float]


class VisibilityState(str, Enum):
    """Resolved visibility of an optional content group"""
    DEFAULT = "default"
    ON = "on"
    OFF = "off"


class GeoDialect(str, Enum):
    """Georeferencing metadata dialects found in GeoPDF files"""
    LEGACY = "LGIDict"
    MEASURE = "Measure"


# Layers
class Layer(BaseModel):
    """Optional content group discovered in the document catalog"""
    model_config = ConfigDict(frozen=True)

    name: str
    ref: ObjectRef  # (object number, generation)
    parent: Optional[str] = None
    order: int = 0
    default_state: VisibilityState = VisibilityState.DEFAULT


# Geometries
class _GeometryBase(BaseModel):
    """Shared helpers; each geometry type provides `points()`"""
    model_config = ConfigDict(frozen=True)

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        pts = self.points()
        if not pts:
            return None
        xs = [p[0] for p in pts]
        ys = [p[1] for p in pts]
        return min(xs), min(ys), max(xs), max(ys)


class PolygonGeometry(_GeometryBase):
    """Polygon: first ring is the outer boundary, rings are closed"""
    type: Literal["Polygon"] = "Polygon"
    rings: List[List[Point]]

    def points(self) -> List[Point]:
        return [p for ring in self.rings for p in ring]

    def map_points(self, fn: Callable[[float, float], Point]) -> "PolygonGeometry":
        return PolygonGeometry(rings=[[fn(x, y) for x, y in ring] for ring in self.rings])


class LineStringGeometry(_GeometryBase):
    type: Literal["LineString"] = "LineString"
    coordinates: List[Point]

    def points(self) -> List[Point]:
        return list(self.coordinates)

    def map_points(self, fn: Callable[[float, float], Point]) -> "LineStringGeometry":
        return LineStringGeometry(coordinates=[fn(x, y) for x, y in self.coordinates])


class MultiLineStringGeometry(_GeometryBase):
    type: Literal["MultiLineString"] = "MultiLineString"
    lines: List[List[Point]]

    def points(self) -> List[Point]:
        return [p for line in self.lines for p in line]

    def map_points(self, fn: Callable[[float, float], Point]) -> "MultiLineStringGeometry":
        return MultiLineStringGeometry(lines=[[fn(x, y) for x, y in line] for line in self.lines])


PdfGeometry = Union[PolygonGeometry, LineStringGeometry, MultiLineStringGeometry]


class PdfFeature(BaseModel):
    """Geometry emitted from a page content stream"""
    geometry: PdfGeometry
    layer_name: Optional[str] = None
    mcid: Optional[int] = None  # Marked-content id active when the path was painted
    stream_index: int = 0  # Position among painted paths on the page


class PageFeatures(BaseModel):
    """All features of one page plus the marked-content lookup"""
    page_number: int  # 1-based
    features: List[PdfFeature] = Field(default_factory=list)
    georeferenced: bool = False
    stopped: bool = False  # Parsing was cancelled by the caller's stop signal

    def geometries_for_mcid(self, mcid: int) -> Optional[List[PdfGeometry]]:
        """Geometries painted while `mcid` was active, or None if never seen."""
        found = [f.geometry for f in self.features if f.mcid == mcid]
        return found or None

    def layer_names(self) -> List[str]:
        names: List[str] = []
        for feature in self.features:
            if feature.layer_name is not None and feature.layer_name not in names:
                names.append(feature.layer_name)
        return names


class StructureFeature(BaseModel):
    """Structure-tree element pointing at marked content on a page"""
    layer_name: Optional[str] = None
    structure_type: Optional[str] = None
    mcid: int
    attributes: Dict[str, Any] = Field(default_factory=dict)
    geometries: List[PdfGeometry] = Field(default_factory=list)


# Georeferencing
class GroundControlPoint(BaseModel):
    """Raster pixel/line to ground coordinate correspondence"""
    pixel_x: float
    pixel_y: float
    ground_x: float
    ground_y: float
    elevation: float = 0.0


class ProjectionParams(BaseModel):
    """Projection parameters read from a legacy /Projection dictionary"""
    projection_type: Optional[str] = None
    datum: Optional[str] = None
    units: Optional[str] = None
    zone: Optional[int] = None
    hemisphere: Optional[str] = None
    parameters: Dict[str, float] = Field(default_factory=dict)


class GeoReference(BaseModel):
    """
    Georeferencing recovered from a page.

    `transform` maps PDF user-space coordinates (points, y up) to ground
    coordinates: X = a*x + c*y + e, Y = b*x + d*y + f. When no exact affine
    fit exists, `transform` is None and `gcps` holds the raw control points.
    """
    dialect: GeoDialect
    spatial_reference: str
    transform: Optional[AffineMatrix] = None
    gcps: Optional[List[GroundControlPoint]] = None
    projection: Optional[ProjectionParams] = None
    neatline: Optional[List[Point]] = None  # Page-space polygon delimiting the map
    area: float = 0.0
    dpi: float = 150.0
    page_width: float = 0.0
    page_height: float = 0.0
    page_origin: Point = (0.0, 0.0)  # Top-left MediaBox corner (x0, y1), raster pixel (0, 0)

    @property
    def has_transform(self) -> bool:
        return self.transform is not None

    def page_to_ground(self, x: float, y: float) -> Point:
        if self.transform is None:
            raise ValueError("GeoReference carries GCPs only, no affine transform")
        a, b, c, d, e, f = self.transform
        return (a * x + c * y + e, b * x + d * y + f)

    def georeference(self, geometry: PdfGeometry) -> PdfGeometry:
        """Return `geometry` with every vertex converted to ground coordinates."""
        return geometry.map_points(self.page_to_ground)

    def raster_geotransform(self) -> Optional[AffineMatrix]:
        """
        GDAL-ordered geotransform for a raster rendering of the page at `dpi`.

        Pixel (P, L) has its origin at the top-left corner of the MediaBox.
        """
        if self.transform is None:
            return None
        a, b, c, d, e, f = self.transform
        scale = 72.0 / self.dpi
        x0, y1 = self.page_origin
        return (
            a * x0 + c * y1 + e,
            a * scale,
            -c * scale,
            b * x0 + d * y1 + f,
            b * scale,
            -d * scale,
        )


# API models
class PdfFeatureExtractionOptions(BaseModel):
    """Simplified configuration for feature extraction requests"""
    ignore_layers: bool = Field(False, description="Emit geometry regardless of layer visibility")
    layers_on: List[str] = Field(default_factory=list, description="Layer names forced visible")
    layers_off: List[str] = Field(default_factory=list, description="Layer names forced hidden")
    apply_georeferencing: bool = Field(False, description="Convert coordinates to ground coordinates when possible")
    max_recursion_depth: int = Field(16, ge=0, description="Maximum nesting of form XObjects")
    dpi_override: Optional[float] = Field(None, gt=0, description="DPI used for GCP pixel coordinates")


class PdfGeoreferenceOptions(BaseModel):
    """Simplified configuration for georeferencing requests"""
    dpi_override: Optional[float] = Field(None, gt=0, description="DPI used for GCP pixel coordinates")
    scan_catalog: bool = Field(True, description="Also search the document catalog for metadata")


class LayerInfo(BaseModel):
    """Layer as reported to API clients"""
    name: str
    ref: ObjectRef
    parent: Optional[str] = None
    sanitized_name: str = ""  # Name usable as a vector layer identifier
    default_visibility: VisibilityState = VisibilityState.DEFAULT
    visible: bool = True  # Effective visibility after overrides and /BaseState


class DocumentMetadata(BaseModel):
    """Document information entries under upper-case keys, plus the raw XMP packet"""
    info: Dict[str, str] = Field(default_factory=dict)  # e.g. AUTHOR, CREATION_DATE
    xmp: Optional[str] = None


class FeatureExtractionResponse(BaseModel):
    pages: List[PageFeatures]
    layers: List[LayerInfo] = Field(default_factory=list)
    structure: Dict[int, List[StructureFeature]] = Field(default_factory=dict)  # page number -> elements


class GeoreferenceResponse(BaseModel):
    page_number: int
    georeferenced: bool
    georeference: Optional[GeoReference] = None
    raster_geotransform: Optional[AffineMatrix] = None


class ErrorResponse(BaseModel):
    """Error response model"""
    error: str
    detail: Optional[str] = None
