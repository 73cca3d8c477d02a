import pikepdf
from pikepdf import Array, Dictionary, Name

from geopdf.engine.document import PikepdfDocument
from geopdf.processors.content_interpreter import ContentInterpreter
from geopdf.processors.structure_tree import StructureTreeExplorer


def _element(pdf, title, kids, page=None, **attrs):
    element = Dictionary(Type=Name.StructElem, S=Name.Feature, T=pikepdf.String(title), K=kids)
    if page is not None:
        element.Pg = page
    if attrs:
        element.A = Dictionary(
            O=Name.UserProperties,
            P=Array([Dictionary(N=pikepdf.String(k), V=v) for k, v in attrs.items()]),
        )
    return pdf.make_indirect(element)


def _set_root(pdf, *elements) -> None:
    pdf.Root.StructTreeRoot = pdf.make_indirect(Dictionary(Type=Name.StructTreeRoot, K=Array(list(elements))))


def test_elements_pair_with_mcid_geometry(new_pdf) -> None:
    pdf = new_pdf(b"/P <</MCID 0>> BDC 0 0 10 10 re f EMC /P <</MCID 1>> BDC 0 0 m 5 5 l S EMC")
    page = pdf.pages[0].obj
    _set_root(
        pdf,
        _element(pdf, "Parcels", 0, page, ID=pikepdf.String("P-17"), AREA=12.5),
        _element(pdf, "Roads", Array([1]), page),
    )
    document = PikepdfDocument(pdf)
    features = ContentInterpreter(document).parse_page(0)

    parcels, roads = StructureTreeExplorer(document).explore(0, features)
    assert parcels.layer_name == "Parcels"
    assert parcels.structure_type == "Feature"
    assert parcels.mcid == 0
    assert parcels.attributes == {"ID": "P-17", "AREA": 12.5}
    assert parcels.geometries[0].type == "Polygon"
    assert roads.mcid == 1
    assert roads.geometries[0].type == "LineString"


def test_marked_content_reference_and_other_pages(new_pdf) -> None:
    pdf = new_pdf(b"", b"")
    first, second = pdf.pages[0].obj, pdf.pages[1].obj
    mcr = Dictionary(Type=Name.MCR, MCID=4, Pg=second)
    _set_root(pdf, _element(pdf, "Hydro", Array([mcr]), first), _element(pdf, "Grid", 2, first))

    explorer = StructureTreeExplorer(PikepdfDocument(pdf))
    assert [f.layer_name for f in explorer.explore(0)] == ["Grid"]
    (hydro,) = explorer.explore(1)
    assert hydro.mcid == 4
    assert hydro.geometries == []


def test_title_is_inherited_from_nearest_ancestor(new_pdf) -> None:
    pdf = new_pdf()
    page = pdf.pages[0].obj
    child = pdf.make_indirect(Dictionary(Type=Name.StructElem, S=Name.Span, K=3))
    _set_root(pdf, _element(pdf, "Buildings", Array([child]), page))
    (feature,) = StructureTreeExplorer(PikepdfDocument(pdf)).explore(0)
    assert feature.layer_name == "Buildings"
    assert feature.structure_type == "Span"


def test_cyclic_structure_terminates(new_pdf) -> None:
    pdf = new_pdf()
    element = _element(pdf, "Loop", Array([]), pdf.pages[0].obj)
    element.K = Array([element, 5])
    _set_root(pdf, element)
    (feature,) = StructureTreeExplorer(PikepdfDocument(pdf)).explore(0)
    assert feature.mcid == 5


def test_document_without_structure_tree(new_pdf) -> None:
    assert StructureTreeExplorer(PikepdfDocument(new_pdf())).explore(0) == []
