"""
Layer (optional content group) discovery and visibility resolution.

Layers come from the catalog's /OCProperties when present. Documents without
one fall back to a scan of every page's /Properties resources. Both shapes are
normalized by a LayerSource into an ordered list of named layers plus a
ref -> visibility map.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Set, Union

import pikepdf

from geopdf.constants.pdf_keys import (
    KEY_BASE_STATE,
    KEY_NAME,
    KEY_OC_DEFAULT,
    KEY_OC_PROPERTIES,
    KEY_OCGS,
    KEY_OFF,
    KEY_ON,
    KEY_ORDER,
    KEY_PROPERTIES,
    KEY_TYPE,
    VAL_OCG,
    VAL_OCMD,
    VAL_OFF,
)
from geopdf.engine.document import DocumentModel
from geopdf.models.pdf_types import Layer, ObjectRef, VisibilityState
from geopdf.utils.pdf_objects import as_name, as_text, dict_items, get, is_array, is_dict, iter_array

logger = logging.getLogger(__name__)

MAX_ORDER_DEPTH = 32

_SANITIZE_TABLE = str.maketrans({" ": "_", ".": "_", ",": "_", "\"": None})


def sanitize_layer_name(name: str) -> str:
    """
    Layer name safe to use as a vector layer identifier.

    Spaces, dots and commas become underscores and double quotes are dropped.
    """
    return name.translate(_SANITIZE_TABLE) or "unnamed"


@dataclass
class LayerTree:
    """Normalized result of a LayerSource."""
    layers: List[Layer] = field(default_factory=list)
    visibility: Dict[ObjectRef, VisibilityState] = field(default_factory=dict)
    raw_names: Dict[ObjectRef, str] = field(default_factory=dict)
    base_state: VisibilityState = VisibilityState.ON

    @property
    def name_to_ref(self) -> Dict[str, ObjectRef]:
        return {layer.name: layer.ref for layer in self.layers}


class LayerSource(Protocol):
    def collect(self) -> LayerTree:
        ...


class _TreeBuilder:
    """Assigns unique names and order while layers are added."""

    def __init__(self, visibility: Dict[ObjectRef, VisibilityState]):
        self.tree = LayerTree(visibility=visibility)
        self._names: Set[str] = set()
        self._seen: Set[ObjectRef] = set()

    def __contains__(self, ref: ObjectRef) -> bool:
        return ref in self._seen

    def _unique(self, name: str) -> str:
        if name not in self._names:
            return name
        n = 2
        while f"{name}_{n}" in self._names:
            n += 1
        return f"{name}_{n}"

    def add(self, ref: ObjectRef, raw_name: str, parent: Optional[str] = None) -> Layer:
        full_name = f"{parent}/{raw_name}" if parent else raw_name
        name = self._unique(full_name)
        layer = Layer(
            name=name,
            ref=ref,
            parent=parent,
            order=len(self.tree.layers),
            default_state=self.tree.visibility.get(ref, VisibilityState.DEFAULT),
        )
        self._names.add(name)
        self._seen.add(ref)
        self.tree.layers.append(layer)
        self.tree.raw_names[ref] = raw_name
        return layer


def _ocg_name(ocg: Any, ref: ObjectRef) -> str:
    name = as_text(get(ocg, KEY_NAME))
    if not name:
        return f"Layer {ref[0]}"
    return name


def _ref_set(document: DocumentModel, array: Any) -> Set[ObjectRef]:
    refs = set()
    for item in iter_array(array):
        ref = document.object_ref(item)
        if ref is not None:
            refs.add(ref)
    return refs


class CatalogLayerSource:
    """Layers from /OCProperties: /OCGs plus the default configuration /D."""

    def __init__(self, document: DocumentModel):
        self.document = document

    def collect(self) -> LayerTree:
        oc_properties = get(self.document.catalog(), KEY_OC_PROPERTIES)
        config = get(oc_properties, KEY_OC_DEFAULT)

        ocgs: Dict[ObjectRef, Any] = {}
        for ocg in iter_array(get(oc_properties, KEY_OCGS)):
            ref = self.document.object_ref(ocg)
            if ref is not None and is_dict(ocg) and ref not in ocgs:
                ocgs[ref] = ocg

        on_refs = _ref_set(self.document, get(config, KEY_ON))
        off_refs = _ref_set(self.document, get(config, KEY_OFF))
        visibility: Dict[ObjectRef, VisibilityState] = {}
        for ref in ocgs:
            if ref in off_refs:
                visibility[ref] = VisibilityState.OFF
            elif ref in on_refs:
                visibility[ref] = VisibilityState.ON
            else:
                visibility[ref] = VisibilityState.DEFAULT

        builder = _TreeBuilder(visibility)
        if as_name(get(config, KEY_BASE_STATE)) == VAL_OFF:
            builder.tree.base_state = VisibilityState.OFF

        order = get(config, KEY_ORDER)
        if is_array(order):
            self._walk_order(builder, order, ocgs, None, 0)

        # OCGs never mentioned in /Order keep their /OCGs position after the tree
        for ref, ocg in ocgs.items():
            if ref not in builder:
                builder.add(ref, _ocg_name(ocg, ref))

        return builder.tree

    def _walk_order(
        self,
        builder: _TreeBuilder,
        order: Any,
        ocgs: Dict[ObjectRef, Any],
        parent: Optional[str],
        depth: int,
    ) -> None:
        if depth > MAX_ORDER_DEPTH:
            logger.debug("Layer /Order nesting too deep, truncating")
            return

        items = list(iter_array(order))
        prefix = parent
        if items and isinstance(items[0], pikepdf.String):
            label = as_text(items[0])
            prefix = f"{parent}/{label}" if parent else label
            items = items[1:]

        previous: Optional[str] = None
        for item in items:
            if is_array(item):
                # A nested array holds the children of the OCG just before it
                self._walk_order(builder, item, ocgs, previous or prefix, depth + 1)
                continue
            ref = self.document.object_ref(item)
            if ref is None or ref in builder:
                continue
            ocg = ocgs.get(ref, item)
            if not is_dict(ocg):
                continue
            layer = builder.add(ref, _ocg_name(ocg, ref), prefix)
            previous = layer.name


class PropertiesLayerSource:
    """Layers recovered from page /Properties when the catalog has none."""

    def __init__(self, document: DocumentModel):
        self.document = document

    def _candidates(self, prop: Any) -> List[Any]:
        prop_type = as_name(get(prop, KEY_TYPE))
        if prop_type == VAL_OCMD:
            members = get(prop, KEY_OCGS)
            return list(iter_array(members)) if is_array(members) else [members]
        if prop_type == VAL_OCG or (get(prop, KEY_NAME) is not None and get(prop, KEY_OCGS) is None):
            return [prop]
        return []

    def collect(self) -> LayerTree:
        builder = _TreeBuilder({})
        for index in range(self.document.page_count()):
            resources = self.document.resources(self.document.page(index))
            for _, prop in dict_items(get(resources, KEY_PROPERTIES)):
                for ocg in self._candidates(prop):
                    ref = self.document.object_ref(ocg)
                    if ref is None or ref in builder or not is_dict(ocg):
                        continue
                    builder.tree.visibility[ref] = VisibilityState.DEFAULT
                    builder.add(ref, _ocg_name(ocg, ref))
        return builder.tree


class LayerResolver:
    """
    Per-document layer catalogue with caller overrides.

    Layers are discovered once and cached. Overrides set through
    set_layer_visibility() only affect parses that start afterwards.
    """

    def __init__(self, document: DocumentModel, source: Optional[LayerSource] = None):
        self.document = document
        self._source = source
        self._tree: Optional[LayerTree] = None
        self._by_ref: Dict[ObjectRef, Layer] = {}
        self._by_name: Dict[str, Layer] = {}
        self._by_raw_name: Dict[str, Layer] = {}
        self._by_sanitized_name: Dict[str, Layer] = {}
        self._overrides: Dict[str, VisibilityState] = {}

    def _select_source(self) -> LayerSource:
        if self._source is not None:
            return self._source
        oc_properties = get(self.document.catalog(), KEY_OC_PROPERTIES)
        if is_array(get(oc_properties, KEY_OCGS)):
            return CatalogLayerSource(self.document)
        logger.debug("No /OCProperties in catalog, scanning page properties for layers")
        return PropertiesLayerSource(self.document)

    def _ensure_tree(self) -> LayerTree:
        if self._tree is None:
            self._tree = self._select_source().collect()
            for layer in self._tree.layers:
                self._by_ref[layer.ref] = layer
                self._by_name[layer.name] = layer
                self._by_sanitized_name.setdefault(sanitize_layer_name(layer.name), layer)
                raw = self._tree.raw_names.get(layer.ref)
                if raw is not None:
                    self._by_raw_name.setdefault(raw, layer)
            logger.debug(f"Discovered {len(self._tree.layers)} layers")
        return self._tree

    def discover_layers(self) -> List[Layer]:
        return list(self._ensure_tree().layers)

    @property
    def base_state(self) -> VisibilityState:
        return self._ensure_tree().base_state

    def get_layer(self, name: str) -> Optional[Layer]:
        """Layer by full name, or by its sanitized form."""
        self._ensure_tree()
        return self._by_name.get(name) or self._by_sanitized_name.get(name)

    def layer_for_ref(self, ref: Optional[ObjectRef]) -> Optional[Layer]:
        if ref is None:
            return None
        self._ensure_tree()
        return self._by_ref.get(ref)

    def resolve_visibility(self, ref: ObjectRef) -> VisibilityState:
        """OFF list beats ON list beats the group's default; overrides beat all."""
        tree = self._ensure_tree()
        layer = self._by_ref.get(ref)
        if layer is not None and layer.name in self._overrides:
            return self._overrides[layer.name]
        return tree.visibility.get(ref, VisibilityState.DEFAULT)

    def set_layer_visibility(self, name: str, state: Union[VisibilityState, bool]) -> bool:
        """Override one layer's visibility. Returns False for an unknown name."""
        layer = self.get_layer(name)
        if layer is None:
            logger.warning(f"Unknown layer '{name}', visibility unchanged")
            return False
        if isinstance(state, bool):
            state = VisibilityState.ON if state else VisibilityState.OFF
        self._overrides[layer.name] = VisibilityState(state)
        return True

    def is_visible(self, layer: Layer) -> bool:
        state = self.resolve_visibility(layer.ref)
        if state == VisibilityState.DEFAULT:
            return self.base_state != VisibilityState.OFF
        return state == VisibilityState.ON

    def layer_for_property(self, resources: Any, name: str) -> Optional[Layer]:
        """
        Map a marked-content property name (without slash) to its Layer.

        OCMDs resolve to their first member group. Property dictionaries that
        are not indirect objects are matched on their /Name.
        """
        return self.layer_for_oc(get(get(resources, KEY_PROPERTIES), f"/{name}"))

    def layer_for_oc(self, oc: Any) -> Optional[Layer]:
        """Layer of an OCG or OCMD object, e.g. a form XObject's /OC entry."""
        if not is_dict(oc):
            return None
        if as_name(get(oc, KEY_TYPE)) == VAL_OCMD:
            members = get(oc, KEY_OCGS)
            oc = next(iter_array(members), None) if is_array(members) else members
            if not is_dict(oc):
                return None

        self._ensure_tree()
        layer = self._by_ref.get(self.document.object_ref(oc))
        if layer is not None:
            return layer
        raw = as_text(get(oc, KEY_NAME))
        if raw:
            return self._by_raw_name.get(raw)
        return None
