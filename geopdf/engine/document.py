"""
Document model adapter.

The geometry, layer and georeferencing code only ever talks to a PDF through
this narrow interface. PikepdfDocument implements it on top of pikepdf, which
owns parsing, decompression and reference resolution.
"""

import logging
from typing import Any, Optional, Protocol, Tuple

import pikepdf

from geopdf.constants.pdf_keys import KEY_CONTENTS, KEY_INFO, KEY_MEDIABOX, KEY_METADATA, KEY_PARENT, KEY_RESOURCES
from geopdf.models.pdf_types import ObjectRef
from geopdf.utils.pdf_objects import get, is_array, iter_array, number_list, object_ref

logger = logging.getLogger(__name__)

DEFAULT_MEDIABOX = (0.0, 0.0, 612.0, 792.0)
MAX_INHERITANCE_DEPTH = 32


class DocumentModel(Protocol):
    """Accessors the core needs from a PDF object model."""

    def catalog(self) -> Any:
        ...

    def page_count(self) -> int:
        ...

    def page(self, index: int) -> Any:
        ...

    def page_content(self, page: Any) -> bytes:
        ...

    def stream_bytes(self, stream: Any) -> bytes:
        ...

    def resources(self, page: Any) -> Any:
        ...

    def media_box(self, page: Any) -> Tuple[float, float, float, float]:
        ...

    def object_ref(self, obj: Any) -> Optional[ObjectRef]:
        ...

    def info(self) -> Any:
        ...

    def xmp(self) -> Optional[bytes]:
        ...


class PikepdfDocument:
    """DocumentModel backed by an open pikepdf.Pdf."""

    def __init__(self, pdf: pikepdf.Pdf):
        self.pdf = pdf

    def catalog(self) -> Any:
        return self.pdf.Root

    def page_count(self) -> int:
        return len(self.pdf.pages)

    def page(self, index: int) -> Any:
        return self.pdf.pages[index].obj

    def stream_bytes(self, stream: Any) -> bytes:
        """Decoded stream data, empty if the stream cannot be decoded."""
        try:
            return stream.read_bytes()
        except (pikepdf.PdfError, AttributeError, NotImplementedError) as e:
            logger.debug(f"Could not decode content stream: {e}")
            return b""

    def page_content(self, page: Any) -> bytes:
        """Content stream bytes; arrays of streams are joined in order."""
        contents = get(page, KEY_CONTENTS)
        if contents is None:
            return b""
        if is_array(contents):
            parts = [self.stream_bytes(part) for part in iter_array(contents)]
            return b"\n".join(parts)
        return self.stream_bytes(contents)

    def _inherited(self, page: Any, key: str) -> Any:
        node = page
        for _ in range(MAX_INHERITANCE_DEPTH):
            value = get(node, key)
            if value is not None:
                return value
            node = get(node, KEY_PARENT)
            if node is None:
                break
        return None

    def resources(self, page: Any) -> Any:
        return self._inherited(page, KEY_RESOURCES)

    def media_box(self, page: Any) -> Tuple[float, float, float, float]:
        box = number_list(self._inherited(page, KEY_MEDIABOX))
        if not box or len(box) != 4:
            return DEFAULT_MEDIABOX
        x1, y1, x2, y2 = box
        return min(x1, x2), min(y1, y2), max(x1, x2), max(y1, y2)

    def object_ref(self, obj: Any) -> Optional[ObjectRef]:
        return object_ref(obj)

    def info(self) -> Any:
        """Trailer /Info dictionary, None when absent."""
        return get(self.pdf.trailer, KEY_INFO)

    def xmp(self) -> Optional[bytes]:
        """Raw catalog /Metadata stream."""
        metadata = get(self.pdf.Root, KEY_METADATA)
        if metadata is None:
            return None
        return self.stream_bytes(metadata) or None
