import pikepdf
from pikepdf import Dictionary, Name

from geopdf.engine.document import PikepdfDocument
from geopdf.processors.metadata import read_info, read_metadata, read_xmp

XMP = b'<?xpacket begin="" id="W5M0MpCehiHzreSzNTczkc9d"?><x:xmpmeta xmlns:x="adobe:ns:meta/"/><?xpacket end="w"?>'


def _with_metadata(pdf: pikepdf.Pdf, data: bytes) -> None:
    stream = pikepdf.Stream(pdf, data)
    stream.Type = Name.Metadata
    stream.Subtype = Name.XML
    pdf.Root.Metadata = pdf.make_indirect(stream)


def test_info_entries_are_mapped(new_pdf) -> None:
    pdf = new_pdf()
    pdf.trailer.Info = pdf.make_indirect(Dictionary(
        Author=pikepdf.String("Survey Office"),
        Title=pikepdf.String("Sheet 12"),
        CreationDate=pikepdf.String("D:20240101120000Z"),
        Custom=pikepdf.String("ignored"),
    ))
    assert read_info(PikepdfDocument(pdf)) == {
        "AUTHOR": "Survey Office",
        "TITLE": "Sheet 12",
        "CREATION_DATE": "D:20240101120000Z",
    }


def test_document_without_info(new_pdf) -> None:
    pdf = new_pdf()
    if "/Info" in pdf.trailer:
        del pdf.trailer.Info
    assert read_info(PikepdfDocument(pdf)) == {}


def test_xmp_packet_is_returned(new_pdf) -> None:
    pdf = new_pdf()
    _with_metadata(pdf, XMP)
    assert read_xmp(PikepdfDocument(pdf)).startswith('<?xpacket begin=')


def test_metadata_stream_without_xpacket_is_ignored(new_pdf) -> None:
    pdf = new_pdf()
    _with_metadata(pdf, b"<rdf:RDF/>")
    assert read_xmp(PikepdfDocument(pdf)) is None


def test_read_metadata_combines_both(new_pdf) -> None:
    pdf = new_pdf()
    pdf.trailer.Info = pdf.make_indirect(Dictionary(Producer=pikepdf.String("mapper 2.0")))
    _with_metadata(pdf, XMP)
    metadata = read_metadata(PikepdfDocument(pdf))
    assert metadata.info == {"PRODUCER": "mapper 2.0"}
    assert metadata.xmp is not None
