from __future__ import annotations

from pathlib import Path
from typing import Callable

import pikepdf
import pytest
from pikepdf import Array, Dictionary, Name

from pdf_builders import lgi_dict, make_ocg, set_layers


@pytest.fixture()
def new_pdf() -> Callable[..., pikepdf.Pdf]:
    """In-memory document with one 200x200 page per content stream."""
    def _create(*contents: bytes) -> pikepdf.Pdf:
        pdf = pikepdf.new()
        for content in contents or (b"",):
            page = pdf.add_blank_page(page_size=(200, 200))
            page.obj.Contents = pikepdf.Stream(pdf, content)
            page.obj.Resources = Dictionary()
        return pdf

    return _create


@pytest.fixture()
def save_pdf(tmp_path: Path) -> Callable[[pikepdf.Pdf, str], Path]:
    def _save(pdf: pikepdf.Pdf, filename: str = "map.pdf") -> Path:
        path = tmp_path / filename
        pdf.save(path)
        return path

    return _save


@pytest.fixture()
def geopdf_file(new_pdf, save_pdf) -> Path:
    """
    Saved GeoPDF with two layers (Roads visible, Hydro hidden), an LGIDict
    scaling page space by 2 and shifting it by 10, and a structure element
    pointing at MCID 0.
    """
    pdf = new_pdf(
        b"/OC /oc1 BDC /P <</MCID 0>> BDC 0 0 10 10 re f EMC EMC "
        b"/OC /oc2 BDC 0 0 m 50 50 l S EMC "
        b"20 20 m 30 30 l S"
    )
    roads = make_ocg(pdf, "Roads")
    hydro = make_ocg(pdf, "Hydro")
    set_layers(pdf, [roads, hydro], on=[roads], off=[hydro])

    page = pdf.pages[0].obj
    page.Resources.Properties = Dictionary(oc1=roads, oc2=hydro)
    page.LGIDict = lgi_dict(CTM=Array([2, 0, 0, 2, 10, 10]))

    element = pdf.make_indirect(Dictionary(
        Type=Name.StructElem,
        S=Name.Feature,
        T=pikepdf.String("Roads"),
        Pg=page,
        K=0,
        A=Dictionary(
            O=Name.UserProperties,
            P=Array([Dictionary(N=pikepdf.String("NAME"), V=pikepdf.String("Main St"))]),
        ),
    ))
    pdf.Root.StructTreeRoot = pdf.make_indirect(Dictionary(Type=Name.StructTreeRoot, K=Array([element])))
    return save_pdf(pdf)
