"""GeoPDF Extractor Python Server"""

import logging
import asyncio
import json
import socket
from typing import Annotated, List, Optional
import os

import uvicorn
from fastapi import FastAPI, UploadFile, File, HTTPException, Query, Form, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from rich.console import Console
from rich.logging import RichHandler

from geopdf.extractors.georef_extractor import extract_georeference
from geopdf.extractors.layer_extractor import extract_layers
from geopdf.extractors.metadata_extractor import extract_metadata
from geopdf.extractors.vector_extractor import extract_feature_report
from geopdf.models.pdf_types import (
    DocumentMetadata,
    FeatureExtractionResponse,
    GeoreferenceResponse,
    LayerInfo,
    PdfFeatureExtractionOptions,
    PdfGeoreferenceOptions,
)
from geopdf.utils.endpoint_decorators import handle_pdf_processing
from geopdf.utils.validation import ResourceManager

API_VERSION = "1.0.0"
ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
DEFAULT_TIMEOUT_SECONDS = 300
MIN_TIMEOUT_SECONDS = 30
MAX_TIMEOUT_SECONDS = 600

ProcessingTimeout = Annotated[
    Optional[int],
    Query(ge=MIN_TIMEOUT_SECONDS, le=MAX_TIMEOUT_SECONDS, description="Processing timeout in seconds"),
]

logger = logging.getLogger("rich")

app = FastAPI(
    title="GeoPDF Extractor API",
    description="Extract layer-tagged vector geometry and georeferencing from GeoPDF files",
    version=API_VERSION
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _parse_config(config: Optional[str], model):
    """Parse an optional JSON form field into a pydantic options model."""
    if not config:
        return None
    try:
        return model(**json.loads(config))
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=400, detail=f"Invalid JSON in config: {str(e)}")
    except (ValidationError, TypeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid config structure: {str(e)}")


@app.get("/")
async def root():
    return {
        "message": "GeoPDF Extractor API",
        "version": API_VERSION,
        "features": [
            "Vector geometry extraction (polygons, lines) tagged by layer",
            "Optional content group (layer) discovery and filtering",
            "Georeferencing from LGIDict and ISO 32000 Measure dictionaries",
            "Structure-tree feature attributes",
            "Document information and XMP metadata",
        ]
    }


@app.get("/health")
async def health_check():
    """Health check with dependency verification"""
    try:
        import pdfminer
        import pikepdf
        import numpy

        return {
            "status": "healthy",
            "version": API_VERSION,
            "features": {
                "document_model": "pikepdf",
                "matrix_math": "pdfminer.six",
                "affine_fitting": "numpy"
            },
            "dependencies": {
                "pdfminer": pdfminer.__version__,
                "pikepdf": pikepdf.__version__,
                "numpy": numpy.__version__
            }
        }
    except ImportError as e:
        return JSONResponse(
            status_code=503,
            content={
                "status": "unhealthy",
                "error": f"Missing dependency: {str(e)}"
            }
        )


@app.post("/extract-features", response_model=FeatureExtractionResponse)
@handle_pdf_processing
async def extract_pdf_features(
    *,
    request: Request,
    file: UploadFile = File(...),
    start_page: Optional[int] = Query(1, ge=1, description="Starting page number (1-based)"),
    end_page: Optional[int] = Query(None, ge=1, description="Ending page number (1-based), None for all pages"),
    include_structure: Optional[bool] = Query(False, description="Pair structure-tree elements with geometry"),
    config: Optional[str] = Form(None, description="Optional JSON string containing PdfFeatureExtractionOptions"),
    processing_timeout: ProcessingTimeout = DEFAULT_TIMEOUT_SECONDS,
):
    """
    Extract vector geometry from a GeoPDF.

    **Returns:**
    - One feature list per page: Polygon / LineString / MultiLineString
      geometries with layer name, MCID and paint order
    - The document's layers with their effective visibility
    - Structure-tree elements per page when `include_structure` is set

    **Configuration (JSON):**
    - `ignore_layers`: Emit geometry inside hidden layers (default: `false`)
    - `layers_on` / `layers_off`: Layer names forced visible / hidden
    - `apply_georeferencing`: Ground coordinates when the page has an affine transform
    - `max_recursion_depth`: Form XObject nesting limit (default: `16`)
    - `dpi_override`: Raster DPI used for GCPs (default: `150`)
    """
    temp_file_path = request.state.temp_file_path
    feature_config = _parse_config(config, PdfFeatureExtractionOptions)

    logger.info(f"Extracting features from PDF (pages {start_page} to {end_page or 'end'})")

    # The deadline ends the page parse cleanly instead of leaving a worker thread running
    with ResourceManager(max_time_seconds=request.state.timeout_seconds) as resources:
        report = await asyncio.to_thread(
            extract_feature_report,
            temp_file_path,
            start_page=start_page,
            end_page=end_page,
            feature_config=feature_config,
            include_structure=bool(include_structure),
            stop=resources.time_exceeded,
        )

    total_features = sum(len(page.features) for page in report.pages)
    logger.info(f"Successfully extracted {total_features} features from {len(report.pages)} pages")
    return report


@app.post("/layers", response_model=List[LayerInfo])
@handle_pdf_processing
async def list_pdf_layers(
    *,
    request: Request,
    file: UploadFile = File(...),
    processing_timeout: ProcessingTimeout = DEFAULT_TIMEOUT_SECONDS,
):
    """List optional content groups (layers) in display order."""
    layers = await asyncio.to_thread(extract_layers, request.state.temp_file_path)
    logger.info(f"Found {len(layers)} layers")
    return layers


@app.post("/metadata", response_model=DocumentMetadata)
@handle_pdf_processing
async def read_pdf_metadata(
    *,
    request: Request,
    file: UploadFile = File(...),
    processing_timeout: ProcessingTimeout = DEFAULT_TIMEOUT_SECONDS,
):
    """Document information entries (AUTHOR, TITLE, CREATION_DATE, ...) and the XMP packet."""
    return await asyncio.to_thread(extract_metadata, request.state.temp_file_path)


@app.post("/georeference", response_model=GeoreferenceResponse)
@handle_pdf_processing
async def georeference_pdf_page(
    *,
    request: Request,
    file: UploadFile = File(...),
    page: Optional[int] = Query(1, ge=1, description="Page number (1-based)"),
    config: Optional[str] = Form(None, description="Optional JSON string containing PdfGeoreferenceOptions"),
    processing_timeout: ProcessingTimeout = DEFAULT_TIMEOUT_SECONDS,
):
    """
    Recover a page's georeferencing.

    **Returns:**
    - `georeferenced: false` when the page carries no usable metadata
    - Otherwise the GeoReference with either an affine `transform`
      (PDF points to ground) or raw `gcps`, the spatial reference
      (EPSG code, WKT or LGI descriptor), and the equivalent raster
      geotransform at the effective DPI
    """
    georef_config = _parse_config(config, PdfGeoreferenceOptions)
    reference = await asyncio.to_thread(
        extract_georeference,
        request.state.temp_file_path,
        page=page,
        georef_config=georef_config,
    )

    return GeoreferenceResponse(
        page_number=page,
        georeferenced=reference is not None,
        georeference=reference,
        raster_geotransform=reference.raster_geotransform() if reference else None,
    )


class _QuietShutdown(logging.Filter):
    """Drops the tracebacks uvicorn logs when the server is interrupted."""

    INTERRUPTS = (KeyboardInterrupt, asyncio.CancelledError)

    def filter(self, record: logging.LogRecord) -> bool:
        if record.exc_info and record.exc_info[0] in self.INTERRUPTS:
            return False
        return not any(name.__name__ in str(record.msg) for name in self.INTERRUPTS)


def _configure_server_logging() -> Console:
    """Rich console logging: WARNING for libraries, LOG_LEVEL (default INFO) for geopdf."""
    console = Console(force_terminal=True)
    handler = RichHandler(console=console, rich_tracebacks=True, show_time=False, show_path=True)
    handler.addFilter(_QuietShutdown())
    logging.basicConfig(level=logging.WARNING, format="%(message)s", handlers=[handler])

    for name in ("uvicorn", "uvicorn.error", "fastapi"):
        logging.getLogger(name).setLevel(logging.INFO)
    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    for name in ("rich", "geopdf"):
        logging.getLogger(name).setLevel(log_level)
    return console


def _find_free_port(start_port: int = 8000, attempts: int = 100) -> int:
    for port in range(start_port, start_port + attempts):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(('localhost', port))
            except OSError:
                continue
            return port
    return start_port


def run():
    """Console entry point."""
    server_console = _configure_server_logging()
    port = _find_free_port()
    server_console.print(f"[bold green]Starting server on http://localhost:{port}[/bold green]")

    try:
        uvicorn.run("geopdf.main:app", host="0.0.0.0", port=port, log_config=None)
    except KeyboardInterrupt:
        server_console.print("\n[bold yellow]Server stopped.[/bold yellow]")


if __name__ == "__main__":
    run()
