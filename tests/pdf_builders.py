"""Helpers that assemble GeoPDF structures with pikepdf."""

from typing import Optional

import pikepdf
from pikepdf import Array, Dictionary, Name


def make_ocg(pdf: pikepdf.Pdf, name: str) -> pikepdf.Object:
    return pdf.make_indirect(Dictionary(Type=Name.OCG, Name=pikepdf.String(name)))


def make_form(pdf: pikepdf.Pdf, content: bytes, **entries) -> pikepdf.Stream:
    form = pikepdf.Stream(pdf, content)
    form.Type = Name.XObject
    form.Subtype = Name.Form
    form.BBox = Array([0, 0, 200, 200])
    for key, value in entries.items():
        form[f"/{key}"] = value
    return form


def set_layers(pdf: pikepdf.Pdf, ocgs, on=(), off=(), order=None, base_state: Optional[str] = None) -> None:
    config = Dictionary(ON=Array(list(on)), OFF=Array(list(off)))
    if order is not None:
        config.Order = order
    if base_state is not None:
        config.BaseState = Name(f"/{base_state}")
    pdf.Root.OCProperties = Dictionary(OCGs=Array(list(ocgs)), D=config)


def lgi_dict(projection_type: str = "GEOGRAPHIC", datum: str = "WGE", **entries) -> Dictionary:
    lgi = Dictionary(
        Type=Name.LGIDict,
        Version=pikepdf.String("2.1"),
        Projection=Dictionary(
            Type=Name.Projection,
            ProjectionType=pikepdf.String(projection_type),
            Datum=pikepdf.String(datum),
        ),
    )
    for key, value in entries.items():
        lgi[f"/{key}"] = value
    return lgi
