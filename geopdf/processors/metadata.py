"""
Document metadata: the /Info dictionary and the XMP packet.
"""

import logging
from typing import Dict, Optional

from geopdf.constants.pdf_keys import INFO_KEYS
from geopdf.engine.document import DocumentModel
from geopdf.models.pdf_types import DocumentMetadata
from geopdf.utils.pdf_objects import as_text, get

logger = logging.getLogger(__name__)

XMP_PACKET_START = b"<?xpacket begin="


def read_info(document: DocumentModel) -> Dict[str, str]:
    """Known /Info entries that hold text, keyed AUTHOR, TITLE, CREATION_DATE and so on."""
    info = document.info()
    values: Dict[str, str] = {}
    for pdf_key, key in INFO_KEYS.items():
        text = as_text(get(info, pdf_key))
        if text:
            values[key] = text
    return values


def read_xmp(document: DocumentModel) -> Optional[str]:
    """XMP packet text; streams that are not an xpacket are ignored."""
    data = document.xmp()
    if not data:
        return None
    if not data.lstrip().startswith(XMP_PACKET_START):
        logger.debug("Catalog /Metadata is not an XMP packet, ignoring")
        return None
    return data.decode("utf-8", errors="replace")


def read_metadata(document: DocumentModel) -> DocumentMetadata:
    return DocumentMetadata(info=read_info(document), xmp=read_xmp(document))
