import logging

import pikepdf
import pytest
from pikepdf import Array, Dictionary, Name

from geopdf.engine.document import PikepdfDocument
from geopdf.models.pdf_types import VisibilityState
from geopdf.processors.layer_resolver import LayerResolver, PropertiesLayerSource, sanitize_layer_name

from pdf_builders import make_ocg, set_layers


def _resolver(pdf) -> LayerResolver:
    return LayerResolver(PikepdfDocument(pdf))


def test_off_list_and_on_list_set_visibility(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    b = make_ocg(pdf, "B")
    set_layers(pdf, [a, b], on=[b], off=[a])
    resolver = _resolver(pdf)

    layer_a = resolver.get_layer("A")
    layer_b = resolver.get_layer("B")
    assert resolver.resolve_visibility(layer_a.ref) == VisibilityState.OFF
    assert resolver.resolve_visibility(layer_b.ref) == VisibilityState.ON
    assert not resolver.is_visible(layer_a)
    assert resolver.is_visible(layer_b)


def test_off_wins_when_listed_twice(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    set_layers(pdf, [a], on=[a], off=[a])
    resolver = _resolver(pdf)
    assert resolver.get_layer("A").default_state == VisibilityState.OFF


def test_base_state_off_hides_unlisted_groups(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    b = make_ocg(pdf, "B")
    set_layers(pdf, [a, b], on=[a], base_state="OFF")
    resolver = _resolver(pdf)
    assert resolver.is_visible(resolver.get_layer("A"))
    assert not resolver.is_visible(resolver.get_layer("B"))


def test_order_tree_builds_nested_names(new_pdf) -> None:
    pdf = new_pdf()
    parent = make_ocg(pdf, "Transportation")
    child = make_ocg(pdf, "Roads")
    orphan = make_ocg(pdf, "Grid")
    set_layers(pdf, [parent, child, orphan], order=Array([parent, Array([child])]))
    layers = _resolver(pdf).discover_layers()

    assert [layer.name for layer in layers] == ["Transportation", "Transportation/Roads", "Grid"]
    assert layers[1].parent == "Transportation"
    assert [layer.order for layer in layers] == [0, 1, 2]


def test_order_label_prefixes_group(new_pdf) -> None:
    pdf = new_pdf()
    roads = make_ocg(pdf, "Roads")
    set_layers(pdf, [roads], order=Array([Array([pikepdf.String("Map"), roads])]))
    assert [layer.name for layer in _resolver(pdf).discover_layers()] == ["Map/Roads"]


def test_duplicate_names_get_suffixes(new_pdf) -> None:
    pdf = new_pdf()
    first = make_ocg(pdf, "Roads")
    second = make_ocg(pdf, "Roads")
    set_layers(pdf, [first, second])
    layers = _resolver(pdf).discover_layers()
    assert [layer.name for layer in layers] == ["Roads", "Roads_2"]
    assert layers[0].ref != layers[1].ref


def test_unknown_layer_override_is_rejected(new_pdf, caplog) -> None:
    pdf = new_pdf()
    set_layers(pdf, [make_ocg(pdf, "A")])
    resolver = _resolver(pdf)
    with caplog.at_level(logging.WARNING):
        assert resolver.set_layer_visibility("Nope", True) is False
    assert "Nope" in caplog.text


def test_override_beats_document_state(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    set_layers(pdf, [a], off=[a])
    resolver = _resolver(pdf)
    layer = resolver.get_layer("A")
    assert resolver.set_layer_visibility("A", VisibilityState.ON)
    assert resolver.is_visible(layer)


def test_properties_fallback_without_oc_properties(new_pdf) -> None:
    pdf = new_pdf(b"", b"")
    hydro = make_ocg(pdf, "Hydro")
    roads = make_ocg(pdf, "Roads")
    pdf.pages[0].obj.Resources.Properties = Dictionary(oc1=hydro)
    pdf.pages[1].obj.Resources.Properties = Dictionary(oc1=hydro, oc2=roads)

    resolver = _resolver(pdf)
    layers = resolver.discover_layers()
    assert [layer.name for layer in layers] == ["Hydro", "Roads"]
    assert all(layer.default_state == VisibilityState.DEFAULT for layer in layers)
    assert all(resolver.is_visible(layer) for layer in layers)


def test_properties_source_can_be_forced(new_pdf) -> None:
    pdf = new_pdf()
    hydro = make_ocg(pdf, "Hydro")
    set_layers(pdf, [make_ocg(pdf, "Catalog")])
    pdf.pages[0].obj.Resources.Properties = Dictionary(oc1=hydro)
    document = PikepdfDocument(pdf)
    resolver = LayerResolver(document, source=PropertiesLayerSource(document))
    assert [layer.name for layer in resolver.discover_layers()] == ["Hydro"]


def test_ocmd_resolves_to_first_member(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    b = make_ocg(pdf, "B")
    set_layers(pdf, [a, b])
    resources = pdf.pages[0].obj.Resources
    resources.Properties = Dictionary(
        mc0=pdf.make_indirect(Dictionary(Type=Name.OCMD, OCGs=Array([b, a]))),
    )
    resolver = _resolver(pdf)
    assert resolver.layer_for_property(resources, "mc0").name == "B"
    assert resolver.layer_for_property(resources, "missing") is None


def test_direct_property_dictionary_matches_by_name(new_pdf) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    set_layers(pdf, [a])
    resources = pdf.pages[0].obj.Resources
    resources.Properties = Dictionary(mc0=Dictionary(Type=Name.OCG, Name=pikepdf.String("A")))
    assert _resolver(pdf).layer_for_property(resources, "mc0").ref == (a.objgen[0], a.objgen[1])


def test_document_without_layers(new_pdf) -> None:
    resolver = _resolver(new_pdf())
    assert resolver.discover_layers() == []
    assert resolver.get_layer("A") is None


@pytest.mark.parametrize("state, expected", [(True, VisibilityState.ON), (False, VisibilityState.OFF)])
def test_boolean_overrides(new_pdf, state, expected) -> None:
    pdf = new_pdf()
    a = make_ocg(pdf, "A")
    set_layers(pdf, [a])
    resolver = _resolver(pdf)
    resolver.set_layer_visibility("A", state)
    assert resolver.resolve_visibility(resolver.get_layer("A").ref) == expected


@pytest.mark.parametrize("name, expected", [
    ("Roads", "Roads"),
    ("Map Frame.Grid, UTM", "Map_Frame_Grid__UTM"),
    ('"Quoted" layer', "Quoted_layer"),
    ('""', "unnamed"),
])
def test_sanitize_layer_name(name, expected) -> None:
    assert sanitize_layer_name(name) == expected


def test_sanitized_name_finds_layer(new_pdf) -> None:
    pdf = new_pdf()
    grid = make_ocg(pdf, "Map Frame.Grid")
    set_layers(pdf, [grid], on=[grid])
    resolver = _resolver(pdf)

    assert resolver.get_layer("Map_Frame_Grid").name == "Map Frame.Grid"
    assert resolver.set_layer_visibility("Map_Frame_Grid", False)
    assert not resolver.is_visible(resolver.get_layer("Map Frame.Grid"))
