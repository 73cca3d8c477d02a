"""Lenient accessors for pikepdf objects.

Every helper returns None (or a default) instead of raising when an object is
missing, dangling or of the wrong type. Unresolved references count as absent.
"""

import logging
from decimal import Decimal
from typing import Any, Iterator, List, Optional, Tuple

import pikepdf

from geopdf.models.pdf_types import ObjectRef

logger = logging.getLogger(__name__)


def is_dict(obj: Any) -> bool:
    return isinstance(obj, (pikepdf.Dictionary, pikepdf.Stream))


def is_array(obj: Any) -> bool:
    return isinstance(obj, pikepdf.Array)


def get(obj: Any, key: str, default: Any = None) -> Any:
    """Dictionary lookup tolerant of non-dictionaries and broken references."""
    if not is_dict(obj):
        return default
    try:
        value = obj.get(key, default)
    except (pikepdf.PdfError, ValueError, TypeError) as e:
        logger.debug(f"Unresolvable entry {key}: {e}")
        return default
    return default if value is None else value


def iter_array(obj: Any) -> Iterator[Any]:
    if not is_array(obj):
        return
    for i in range(len(obj)):
        try:
            yield obj[i]
        except (pikepdf.PdfError, IndexError) as e:
            logger.debug(f"Unresolvable array element {i}: {e}")


def dict_items(obj: Any) -> Iterator[Tuple[str, Any]]:
    if not is_dict(obj):
        return
    for key in list(obj.keys()):
        try:
            yield str(key), obj[key]
        except (pikepdf.PdfError, KeyError) as e:
            logger.debug(f"Unresolvable entry {key}: {e}")


def as_float(obj: Any, default: Optional[float] = None) -> Optional[float]:
    """Numbers, Decimals and numeric strings (common in LGIDict) as float."""
    if isinstance(obj, bool):
        return default
    if isinstance(obj, (int, float, Decimal)):
        return float(obj)
    if isinstance(obj, (pikepdf.String, str, bytes)):
        text = as_text(obj)
        try:
            return float(text.strip())
        except (ValueError, AttributeError):
            return default
    return default


def as_int(obj: Any, default: Optional[int] = None) -> Optional[int]:
    value = as_float(obj)
    if value is None:
        return default
    return int(value)


def as_name(obj: Any) -> Optional[str]:
    """Name objects as '/Name' strings."""
    if isinstance(obj, pikepdf.Name):
        return str(obj)
    return None


def as_text(obj: Any) -> Optional[str]:
    """Text strings decoded (PDFDocEncoding/UTF-16), names without slash."""
    if obj is None:
        return None
    if isinstance(obj, pikepdf.Name):
        return str(obj)[1:]
    if isinstance(obj, pikepdf.String):
        return str(obj)
    if isinstance(obj, bytes):
        return obj.decode("latin-1")
    return str(obj)


def number_list(obj: Any) -> Optional[List[float]]:
    """Array of numbers (or numeric strings); None if any entry is not numeric."""
    if not is_array(obj):
        return None
    values: List[float] = []
    for item in iter_array(obj):
        value = as_float(item)
        if value is None:
            return None
        values.append(value)
    return values


def object_ref(obj: Any) -> Optional[ObjectRef]:
    """(object number, generation) of an indirect object, None for direct ones."""
    try:
        num, gen = obj.objgen
    except (AttributeError, pikepdf.PdfError, ValueError, TypeError):
        return None
    if num == 0:
        return None
    return int(num), int(gen)
