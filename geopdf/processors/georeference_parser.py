"""
Georeferencing metadata parser.

Two dialects carry georeferencing in GeoPDF files:

- the legacy /LGIDict dictionary (TerraGo / OGC best practice), which holds a
  /Projection description plus either a page-to-ground /CTM or /Registration
  control points;
- the ISO 32000 viewport measure: /VP entries whose /Measure has
  /Subtype /GEO, mapping normalized /LPTS to geographic /GPTS.

Pass 1 scans the page dictionary and then the catalog for candidates of
either dialect. Pass 2 parses the candidate covering the largest area; if
that fails the next candidate is tried.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Set, Tuple

from geopdf.constants.pdf_keys import (
    KEY_ANNOTS,
    KEY_BBOX,
    KEY_BOUNDS,
    KEY_CONTENTS,
    KEY_CTM,
    KEY_DATUM,
    KEY_DESCRIPTION,
    KEY_EPSG,
    KEY_GCS,
    KEY_GPTS,
    KEY_HEMISPHERE,
    KEY_KIDS,
    KEY_LGIDICT,
    KEY_LPTS,
    KEY_MEASURE,
    KEY_NEATLINE,
    KEY_PAGES,
    KEY_PARENT,
    KEY_PROJECTION,
    KEY_PROJECTION_TYPE,
    KEY_REGISTRATION,
    KEY_RESOURCES,
    KEY_STRUCT_TREE_ROOT,
    KEY_SUBTYPE,
    KEY_UNITS,
    KEY_WKT,
    KEY_ZONE,
    VAL_GEO,
)
from geopdf.engine.document import DocumentModel
from geopdf.models.pdf_types import (
    GeoDialect,
    GeoReference,
    GroundControlPoint,
    Point,
    ProjectionParams,
)
from geopdf.utils.pdf_objects import (
    as_float,
    as_int,
    as_name,
    as_text,
    dict_items,
    get,
    is_array,
    is_dict,
    iter_array,
    number_list,
)
from geopdf.utils.pdf_transforms import fit_affine, reprojection_errors

logger = logging.getLogger(__name__)

DEFAULT_DPI = 150.0
DEFAULT_MAX_SCAN_DEPTH = 8
GCP_TOLERANCE_PIXELS = 0.25
POINTS_PER_INCH = 72.0

# Keys that lead away from the page's own metadata or into bulky subtrees
SKIP_KEYS = {
    KEY_PARENT, KEY_KIDS, KEY_PAGES, KEY_CONTENTS, KEY_ANNOTS, KEY_RESOURCES,
    KEY_STRUCT_TREE_ROOT, "/Outlines", "/Metadata", "/Thumb", "/Names", "/Dests",
    "/AcroForm", "/OCProperties", "/P", "/Pg", "/First", "/Last", "/Next", "/Prev",
}

WGS84_DATUMS = {"WGE", "WGS84", "WGS 84", "WGS-84", "WGS_84"}
NAD83_DATUMS = {"NAR", "NAR-C", "NAD83", "NAD 83", "NAD-83", "NAD_83"}

# Numeric /Projection entries besides zone
PROJECTION_PARAMETERS = (
    "CentralMeridian", "OriginLatitude", "FalseEasting", "FalseNorthing",
    "ScaleFactor", "StandardParallelOne", "StandardParallelTwo",
)


class GeoDictParseError(Exception):
    """A georeferencing candidate could not be turned into a GeoReference"""
    pass


@dataclass
class GeoCandidate:
    """Georeferencing dictionary found during the discovery pass."""
    dialect: GeoDialect
    obj: Any
    area: float
    order: int  # discovery position


def _bbox_area(box: Optional[List[float]]) -> float:
    if not box or len(box) < 4:
        return 0.0
    return abs(box[2] - box[0]) * abs(box[3] - box[1])


def _points_area(coords: Optional[List[float]]) -> float:
    if not coords or len(coords) < 4:
        return 0.0
    xs = coords[0::2]
    ys = coords[1::2]
    return (max(xs) - min(xs)) * (max(ys) - min(ys))


def select_best(candidates: List[GeoCandidate]) -> Optional[GeoCandidate]:
    """Largest area wins; a later candidate must be strictly larger to replace."""
    best: Optional[GeoCandidate] = None
    for candidate in candidates:
        if best is None or candidate.area > best.area:
            best = candidate
    return best


def fallback_order(candidates: List[GeoCandidate]) -> List[GeoCandidate]:
    """Candidates by area descending, discovery order breaking ties."""
    return sorted(candidates, key=lambda c: (-c.area, c.order))


def _normalize_datum(datum: Optional[str]) -> Optional[str]:
    if datum is None:
        return None
    key = datum.strip().upper()
    if key in WGS84_DATUMS:
        return "WGS84"
    if key in NAD83_DATUMS:
        return "NAD83"
    return datum.strip()


def legacy_spatial_reference(projection: ProjectionParams) -> str:
    """Registry code for common legacy projections, otherwise an LGI: descriptor."""
    ptype = (projection.projection_type or "").upper()
    datum = _normalize_datum(projection.datum)

    if ptype == "GEOGRAPHIC":
        if datum == "WGS84":
            return "EPSG:4326"
        if datum == "NAD83":
            return "EPSG:4269"
    elif ptype == "UT" and datum == "WGS84" and projection.zone and 1 <= projection.zone <= 60:
        south = (projection.hemisphere or "N").upper().startswith("S")
        return f"EPSG:{32700 + projection.zone if south else 32600 + projection.zone}"

    parts = [f"ProjectionType={projection.projection_type or ''}"]
    if projection.datum:
        parts.append(f"Datum={projection.datum}")
    if projection.zone is not None:
        parts.append(f"Zone={projection.zone}")
    if projection.hemisphere:
        parts.append(f"Hemisphere={projection.hemisphere}")
    if projection.units:
        parts.append(f"Units={projection.units}")
    for key, value in projection.parameters.items():
        parts.append(f"{key}={value:g}")
    return "LGI:" + ";".join(parts)


class GeoreferenceParser:
    """
    Recovers a GeoReference for one page of a document.

    Args:
        document: DocumentModel to read
        dpi: Resolution used to express GCPs in raster pixels
        max_scan_depth: Depth bound of the candidate scan
        scan_catalog: Also scan the document catalog after the page
    """

    def __init__(
        self,
        document: DocumentModel,
        dpi: float = DEFAULT_DPI,
        max_scan_depth: int = DEFAULT_MAX_SCAN_DEPTH,
        scan_catalog: bool = True,
    ):
        self.document = document
        self.dpi = dpi
        self.max_scan_depth = max_scan_depth
        self.scan_catalog = scan_catalog

    # Pass 1

    def find_candidates(self, page_index: int) -> List[GeoCandidate]:
        page = self.document.page(page_index)
        media_box = self.document.media_box(page)
        candidates: List[GeoCandidate] = []
        visited: Set[Tuple[int, int]] = set()

        self._scan(page, 0, media_box, candidates, visited)
        if self.scan_catalog:
            self._scan(self.document.catalog(), 0, media_box, candidates, visited)

        logger.debug(f"Page {page_index + 1}: {len(candidates)} georeferencing candidates")
        return candidates

    def _add(self, candidates: List[GeoCandidate], dialect: GeoDialect, obj: Any, area: float) -> None:
        candidates.append(GeoCandidate(dialect=dialect, obj=obj, area=area, order=len(candidates)))

    def _scan(self, obj: Any, depth: int, media_box, candidates: List[GeoCandidate], visited: Set) -> None:
        if depth > self.max_scan_depth:
            return
        ref = self.document.object_ref(obj)
        if ref is not None:
            if ref in visited:
                return
            visited.add(ref)

        if is_array(obj):
            for item in iter_array(obj):
                if is_dict(item) or is_array(item):
                    self._scan(item, depth + 1, media_box, candidates, visited)
            return
        if not is_dict(obj):
            return

        measure = get(obj, KEY_MEASURE)
        if is_dict(measure) and as_name(get(measure, KEY_SUBTYPE)) == VAL_GEO:
            area = _bbox_area(number_list(get(obj, KEY_BBOX))) or _bbox_area(list(media_box))
            self._add(candidates, GeoDialect.MEASURE, obj, area)
            return

        for key, value in dict_items(obj):
            if key in SKIP_KEYS:
                continue
            if key == KEY_LGIDICT:
                entries = list(iter_array(value)) if is_array(value) else [value]
                for entry in entries:
                    if is_dict(entry):
                        area = (_points_area(number_list(get(entry, KEY_NEATLINE)))
                                or _bbox_area(list(media_box)))
                        self._add(candidates, GeoDialect.LEGACY, entry, area)
                continue
            if is_dict(value) or is_array(value):
                self._scan(value, depth + 1, media_box, candidates, visited)

    # Pass 2

    def parse(self, page_index: int) -> Optional[GeoReference]:
        """GeoReference of the page, or None when it carries no usable georeferencing."""
        candidates = self.find_candidates(page_index)
        if not candidates:
            return None

        page = self.document.page(page_index)
        media_box = self.document.media_box(page)
        best = select_best(candidates)
        retries = [c for c in fallback_order(candidates) if c is not best]
        for candidate in [best] + retries:
            try:
                return self.parse_candidate(candidate, media_box)
            except GeoDictParseError as e:
                logger.warning(
                    f"Discarding {candidate.dialect.value} candidate "
                    f"(area {candidate.area:.1f}): {e}"
                )
        return None

    def parse_candidate(self, candidate: GeoCandidate, media_box) -> GeoReference:
        if candidate.dialect == GeoDialect.LEGACY:
            reference = self._parse_legacy(candidate.obj, media_box)
        else:
            reference = self._parse_measure(candidate.obj, media_box)
        reference.area = candidate.area
        return reference

    def _make_gcps(self, page_points: List[Point], ground_points: List[Point], media_box) -> List[GroundControlPoint]:
        # Same pixel origin as GeoReference.raster_geotransform
        x0, _, _, y1 = media_box
        scale = self.dpi / POINTS_PER_INCH
        return [
            GroundControlPoint(
                pixel_x=(px - x0) * scale,
                pixel_y=(y1 - py) * scale,
                ground_x=gx,
                ground_y=gy,
            )
            for (px, py), (gx, gy) in zip(page_points, ground_points)
        ]

    def _solve(self, page_points: List[Point], ground_points: List[Point], media_box):
        """Affine transform within tolerance, or the GCPs when no such fit exists."""
        transform = fit_affine(page_points, ground_points)
        if transform is not None:
            errors = reprojection_errors(transform, page_points, ground_points)
            tolerance = GCP_TOLERANCE_PIXELS * POINTS_PER_INCH / self.dpi
            if errors is not None and max(errors) <= tolerance:
                return transform, None
            logger.debug("Affine fit outside tolerance, keeping ground control points")
        return None, self._make_gcps(page_points, ground_points, media_box)

    def _base_reference(self, dialect: GeoDialect, media_box, **fields) -> GeoReference:
        x0, y0, x1, y1 = media_box
        return GeoReference(
            dialect=dialect,
            dpi=self.dpi,
            page_width=x1 - x0,
            page_height=y1 - y0,
            page_origin=(x0, y1),
            **fields,
        )

    def _parse_projection(self, projection: Any) -> ProjectionParams:
        if not is_dict(projection):
            raise GeoDictParseError("missing /Projection dictionary")

        datum = get(projection, KEY_DATUM)
        if is_dict(datum):
            datum_text = as_text(get(datum, KEY_DESCRIPTION))
        else:
            datum_text = as_text(datum)

        parameters = {}
        for key in PROJECTION_PARAMETERS:
            value = as_float(get(projection, f"/{key}"))
            if value is not None:
                parameters[key] = value

        return ProjectionParams(
            projection_type=as_text(get(projection, KEY_PROJECTION_TYPE)),
            datum=datum_text,
            units=as_text(get(projection, KEY_UNITS)),
            zone=as_int(get(projection, KEY_ZONE)),
            hemisphere=as_text(get(projection, KEY_HEMISPHERE)),
            parameters=parameters,
        )

    def _parse_legacy(self, lgi: Any, media_box) -> GeoReference:
        projection = self._parse_projection(get(lgi, KEY_PROJECTION))
        spatial_reference = legacy_spatial_reference(projection)

        neatline = None
        coords = number_list(get(lgi, KEY_NEATLINE))
        if coords and len(coords) >= 4:
            neatline = list(zip(coords[0::2], coords[1::2]))

        ctm = number_list(get(lgi, KEY_CTM))
        if ctm is not None:
            if len(ctm) != 6:
                raise GeoDictParseError(f"/CTM has {len(ctm)} entries, expected 6")
            return self._base_reference(
                GeoDialect.LEGACY,
                media_box,
                spatial_reference=spatial_reference,
                transform=tuple(ctm),
                projection=projection,
                neatline=neatline,
            )

        page_points: List[Point] = []
        ground_points: List[Point] = []
        for entry in iter_array(get(lgi, KEY_REGISTRATION)):
            values = number_list(entry)
            if values is None or len(values) != 4:
                raise GeoDictParseError("/Registration entries must be [x y X Y]")
            page_points.append((values[0], values[1]))
            ground_points.append((values[2], values[3]))
        if not page_points:
            raise GeoDictParseError("neither /CTM nor /Registration present")

        transform, gcps = self._solve(page_points, ground_points, media_box)
        return self._base_reference(
            GeoDialect.LEGACY,
            media_box,
            spatial_reference=spatial_reference,
            transform=transform,
            gcps=gcps,
            projection=projection,
            neatline=neatline,
        )

    def _gcs_descriptor(self, gcs: Any) -> str:
        epsg = as_int(get(gcs, KEY_EPSG))
        if epsg:
            return f"EPSG:{epsg}"
        wkt = as_text(get(gcs, KEY_WKT))
        if wkt:
            return wkt
        raise GeoDictParseError("/GCS carries neither /EPSG nor /WKT")

    def _parse_measure(self, viewport: Any, media_box) -> GeoReference:
        measure = get(viewport, KEY_MEASURE)
        gcs = get(measure, KEY_GCS)
        if not is_dict(gcs):
            raise GeoDictParseError("missing /GCS in /Measure")
        spatial_reference = self._gcs_descriptor(gcs)

        bbox = number_list(get(viewport, KEY_BBOX))
        if not bbox or len(bbox) != 4:
            bbox = list(media_box)
        bx0, by0 = min(bbox[0], bbox[2]), min(bbox[1], bbox[3])
        width, height = abs(bbox[2] - bbox[0]), abs(bbox[3] - bbox[1])

        def to_page(u: float, v: float) -> Point:
            return bx0 + u * width, by0 + v * height

        gpts = number_list(get(measure, KEY_GPTS))
        lpts = number_list(get(measure, KEY_LPTS))
        if not gpts or len(gpts) % 2:
            raise GeoDictParseError("/GPTS missing or odd length")
        if lpts is None:
            # Without /LPTS the ground points map to the corners of /Bounds
            lpts = number_list(get(measure, KEY_BOUNDS)) or [0, 0, 0, 1, 1, 1, 1, 0]
        if len(lpts) != len(gpts):
            raise GeoDictParseError("/GPTS and /LPTS lengths differ")

        page_points = [to_page(u, v) for u, v in zip(lpts[0::2], lpts[1::2])]
        # GPTS pairs are (latitude, longitude); ground is (X=lon, Y=lat)
        ground_points = [(lon, lat) for lat, lon in zip(gpts[0::2], gpts[1::2])]

        bounds = number_list(get(measure, KEY_BOUNDS))
        neatline = None
        if bounds and len(bounds) >= 4 and len(bounds) % 2 == 0:
            neatline = [to_page(u, v) for u, v in zip(bounds[0::2], bounds[1::2])]

        transform, gcps = self._solve(page_points, ground_points, media_box)
        return self._base_reference(
            GeoDialect.MEASURE,
            media_box,
            spatial_reference=spatial_reference,
            transform=transform,
            gcps=gcps,
            neatline=neatline,
        )
