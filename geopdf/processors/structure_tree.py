"""
Logical structure tree explorer.

Some GeoPDF producers describe features in the structure tree: each element
titled after its layer points (through an MCID) at the marked content that
paints it, and carries feature attributes as /UserProperties-style
<< /N name /V value >> entries. The explorer pairs those elements with the
geometry the content interpreter recorded for the same MCID.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Set

from geopdf.constants.pdf_keys import (
    KEY_A,
    KEY_K,
    KEY_MCID,
    KEY_N,
    KEY_P,
    KEY_PG,
    KEY_S,
    KEY_STRUCT_TREE_ROOT,
    KEY_T,
    KEY_V,
)
from geopdf.engine.document import DocumentModel
from geopdf.models.pdf_types import ObjectRef, PageFeatures, StructureFeature
from geopdf.utils.pdf_objects import as_int, as_text, dict_items, get, is_array, is_dict, iter_array

logger = logging.getLogger(__name__)

MAX_STRUCTURE_DEPTH = 64


def _attribute_value(value: Any) -> Any:
    if isinstance(value, (bool, int, float)):
        return value
    if isinstance(value, Decimal):
        return float(value)
    return as_text(value)


def _collect_attributes(attrs: Any, out: Dict[str, Any]) -> None:
    if is_array(attrs):
        for item in iter_array(attrs):
            _collect_attributes(item, out)
        return
    if not is_dict(attrs):
        return
    props = get(attrs, KEY_P)
    if is_array(props):
        for prop in iter_array(props):
            name = as_text(get(prop, KEY_N))
            if name:
                out[name] = _attribute_value(get(prop, KEY_V))
        return
    for key, value in dict_items(attrs):
        if key == "/O":
            continue
        out[key[1:]] = _attribute_value(value)


class StructureTreeExplorer:
    """Walks /StructTreeRoot and yields StructureFeatures for one page."""

    def __init__(self, document: DocumentModel, max_depth: int = MAX_STRUCTURE_DEPTH):
        self.document = document
        self.max_depth = max_depth

    def explore(self, page_index: int, page_features: Optional[PageFeatures] = None) -> List[StructureFeature]:
        root = get(self.document.catalog(), KEY_STRUCT_TREE_ROOT)
        if root is None:
            return []
        page_ref = self.document.object_ref(self.document.page(page_index))

        results: List[StructureFeature] = []
        visited: Set[ObjectRef] = set()
        self._walk(get(root, KEY_K), None, None, page_ref, page_features, results, visited, 0)
        logger.debug(f"Page {page_index + 1}: {len(results)} structure features")
        return results

    def _walk(
        self,
        node: Any,
        element: Any,
        title: Optional[str],
        page_ref: Optional[ObjectRef],
        page_features: Optional[PageFeatures],
        results: List[StructureFeature],
        visited: Set[ObjectRef],
        depth: int,
        node_page: Optional[ObjectRef] = None,
    ) -> None:
        if node is None or depth > self.max_depth:
            return

        if is_array(node):
            for kid in iter_array(node):
                self._walk(kid, element, title, page_ref, page_features, results, visited, depth + 1, node_page)
            return

        mcid = as_int(node) if not is_dict(node) else None
        if mcid is None and is_dict(node) and get(node, KEY_S) is None:
            # Marked-content reference << /Type /MCR /MCID n /Pg ... >>
            mcid = as_int(get(node, KEY_MCID))
            node_page = self.document.object_ref(get(node, KEY_PG)) or node_page

        if mcid is not None:
            if element is not None and (page_ref is None or node_page in (None, page_ref)):
                results.append(self._feature(element, title, mcid, page_features))
            return

        if not is_dict(node):
            return
        ref = self.document.object_ref(node)
        if ref is not None:
            if ref in visited:
                return
            visited.add(ref)

        node_title = as_text(get(node, KEY_T)) or title
        pg = self.document.object_ref(get(node, KEY_PG)) or node_page
        self._walk(get(node, KEY_K), node, node_title, page_ref, page_features, results, visited, depth + 1, pg)

    def _feature(
        self,
        element: Any,
        title: Optional[str],
        mcid: int,
        page_features: Optional[PageFeatures],
    ) -> StructureFeature:
        attributes: Dict[str, Any] = {}
        _collect_attributes(get(element, KEY_A), attributes)
        geometries = []
        if page_features is not None:
            geometries = page_features.geometries_for_mcid(mcid) or []
        return StructureFeature(
            layer_name=title,
            structure_type=as_text(get(element, KEY_S)),
            mcid=mcid,
            attributes=attributes,
            geometries=geometries,
        )
