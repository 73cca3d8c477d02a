from pathlib import Path

import pytest

from geopdf.engine import EngineConfig, EngineProcessor, GeoPDFEngine, PageCache, ProcessorRegistry
from geopdf.engine.config import GeoreferenceOptions, PageRange, VectorProcessorOptions
from geopdf.models.pdf_types import VisibilityState
from geopdf.utils.validation import PdfValidationError


def test_engine_opens_and_exposes_processors(geopdf_file: Path) -> None:
    with GeoPDFEngine(str(geopdf_file)) as engine:
        assert engine.is_open
        assert engine.get_page_count() == 1
        assert engine.get_status()['processors'] == ['layers', 'georef', 'vector']
        layers = engine.layer_processor.list_layers()
        assert [(layer.name, layer.visible) for layer in layers] == [("Roads", True), ("Hydro", False)]
        assert layers[1].default_visibility == VisibilityState.OFF
    assert not engine.is_open


def test_engine_requires_context_manager(geopdf_file: Path) -> None:
    engine = GeoPDFEngine(str(geopdf_file))
    with pytest.raises(RuntimeError):
        engine.get_page_count()
    with pytest.raises(RuntimeError):
        _ = engine.document


def test_missing_file() -> None:
    with pytest.raises(FileNotFoundError):
        GeoPDFEngine("does-not-exist.pdf")


def test_non_pdf_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "notes.pdf"
    path.write_bytes(b"hello, not a pdf")
    with pytest.raises(PdfValidationError):
        with GeoPDFEngine(str(path)):
            pass


def test_vector_extraction_respects_layer_visibility(geopdf_file: Path) -> None:
    with GeoPDFEngine(str(geopdf_file)) as engine:
        (page,) = engine.vector_processor.extract_features()
    assert page.page_number == 1
    assert page.layer_names() == ["Roads"]
    assert [f.geometry.type for f in page.features] == ["Polygon", "LineString"]


def test_layer_filter_from_options(geopdf_file: Path) -> None:
    options = VectorProcessorOptions(layers_on=["Hydro"], layers_off=["Roads"])
    config = EngineConfig(vector=options)
    with GeoPDFEngine(str(geopdf_file), config=config) as engine:
        (page,) = engine.vector_processor.extract_features()
    assert page.layer_names() == ["Hydro"]


def test_georeferenced_extraction(geopdf_file: Path) -> None:
    config = EngineConfig(vector=VectorProcessorOptions(apply_georeferencing=True))
    with GeoPDFEngine(str(geopdf_file), config=config) as engine:
        (page,) = engine.vector_processor.extract_features()
    assert page.georeferenced
    assert page.features[0].geometry.bounds() == pytest.approx((10, 10, 30, 30))


def test_georeferencing_requires_georef_processor(geopdf_file: Path) -> None:
    config = EngineConfig(enable_georef_processor=False, vector=VectorProcessorOptions(apply_georeferencing=True))
    with pytest.raises(PdfValidationError, match="requires 'georef'"):
        with GeoPDFEngine(str(geopdf_file), config=config):
            pass


def test_georeference_is_cached_per_page(geopdf_file: Path) -> None:
    with GeoPDFEngine(str(geopdf_file)) as engine:
        first = engine.georef_processor.get_georeference(1)
        assert engine.georef_processor.get_georeference(1) is first
        assert engine.get_status()['cached_pages'] == 1
        with pytest.raises(IndexError):
            engine.georef_processor.get_georeference(2)


def test_structure_pairs_with_features(geopdf_file: Path) -> None:
    with GeoPDFEngine(str(geopdf_file)) as engine:
        (page,) = engine.vector_processor.extract_features()
        (element,) = engine.vector_processor.extract_structure(page)
    assert element.layer_name == "Roads"
    assert element.attributes == {"NAME": "Main St"}
    assert element.geometries[0].type == "Polygon"


def test_stop_signal_returns_partial_pages(new_pdf, save_pdf) -> None:
    path = save_pdf(new_pdf(b"0 0 1 1 re f", b"0 0 1 1 re f"))
    with GeoPDFEngine(str(path)) as engine:
        pages = engine.vector_processor.extract_features(stop=lambda: True)
    assert len(pages) == 1
    assert pages[0].stopped
    assert pages[0].features == []


def test_page_range(new_pdf, save_pdf) -> None:
    path = save_pdf(new_pdf(b"0 0 1 1 re f", b"", b"0 0 m 1 1 l S"))
    with GeoPDFEngine(str(path)) as engine:
        pages = engine.vector_processor.extract_features(start_page=2, end_page=3)
    assert [p.page_number for p in pages] == [2, 3]
    assert [len(p.features) for p in pages] == [0, 1]


def test_config_validation() -> None:
    assert EngineConfig().validate()
    assert not EngineConfig(max_cache_pages=-1).validate()
    assert not EngineConfig(vector=VectorProcessorOptions(max_recursion_depth=-1)).validate()
    assert EngineConfig(enable_vector_processor=False, vector=VectorProcessorOptions(max_recursion_depth=-1)).validate()
    assert not VectorProcessorOptions(layers_on=["A"], layers_off=["A"]).validate()
    assert not GeoreferenceOptions(dpi_override=0).validate()
    assert GeoreferenceOptions().dpi == 150.0
    assert GeoreferenceOptions(dpi_override=300).dpi == 300


def test_config_round_trip_ignores_unknown_keys() -> None:
    config = EngineConfig.from_dict({'max_cache_pages': 3, 'bogus': True, 'georef': {'dpi_override': 72, 'extra': 1}})
    assert config.max_cache_pages == 3
    assert config.georef == GeoreferenceOptions(dpi_override=72)
    assert EngineConfig.from_dict(config.to_dict()) == config


def test_page_range_numbers() -> None:
    assert PageRange(start=2, end=5).to_page_numbers(3) == [2, 3]
    assert PageRange(start=4).to_page_numbers(3) == []
    assert PageRange().to_page_numbers(0) == []
    with pytest.raises(ValueError):
        PageRange(start=3, end=2)


def test_status_lists_processors_in_open_order(geopdf_file: Path) -> None:
    config = EngineConfig(vector=VectorProcessorOptions(apply_georeferencing=True))
    with GeoPDFEngine(str(geopdf_file), config=config) as engine:
        assert engine.get_status()['processors'] == ['layers', 'georef', 'vector']


def test_disabled_processor_is_not_reachable(geopdf_file: Path) -> None:
    config = EngineConfig(enable_vector_processor=False)
    with GeoPDFEngine(str(geopdf_file), config=config) as engine:
        assert engine.get_status()['processors'] == ['layers', 'georef']
        with pytest.raises(RuntimeError):
            _ = engine.vector_processor


def test_page_cache_evicts_oldest_entry() -> None:
    cache = PageCache(max_entries=2)
    cache.put(("georef", 1), "a")
    cache.put(("georef", 2), "b")
    cache.put(("georef", 3), "c")
    assert cache.get(("georef", 1)) is None
    assert cache.get(("georef", 3)) == "c"
    assert len(cache) == 2


def test_page_cache_disabled_with_zero_entries() -> None:
    cache = PageCache(max_entries=0)
    cache.put(("georef", 1), "a")
    assert cache.get(("georef", 1)) is None


class _Recorder(EngineProcessor):
    def __init__(self, name, requires=(), log=None):
        super().__init__(engine=None)
        self.name = name
        self._requires = tuple(requires)
        self.log = log if log is not None else []

    def requires(self):
        return self._requires

    def open(self):
        self.log.append(f"open {self.name}")
        super().open()

    def close(self):
        self.log.append(f"close {self.name}")
        super().close()


def test_registry_opens_requirements_first_and_closes_in_reverse() -> None:
    log = []
    registry = ProcessorRegistry()
    registry.register(_Recorder("vector", requires=["layers", "georef"], log=log))
    registry.register(_Recorder("georef", log=log))
    registry.register(_Recorder("layers", log=log))

    registry.open_all()
    assert registry.names == ["layers", "georef", "vector"]
    registry.close_all()
    assert log == [
        "open layers", "open georef", "open vector",
        "close vector", "close georef", "close layers",
    ]


def test_registry_rejects_missing_requirement() -> None:
    registry = ProcessorRegistry()
    registry.register(_Recorder("vector", requires=["georef"]))
    with pytest.raises(PdfValidationError, match="requires 'georef'"):
        registry.open_all()


def test_registry_rejects_cycles() -> None:
    registry = ProcessorRegistry()
    registry.register(_Recorder("a", requires=["b"]))
    registry.register(_Recorder("b", requires=["a"]))
    with pytest.raises(PdfValidationError, match="cycle"):
        registry.resolve_order()


def test_processor_must_be_open() -> None:
    processor = _Recorder("layers")
    with pytest.raises(RuntimeError, match="not open"):
        processor._require_ready()
