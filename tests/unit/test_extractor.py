"""Unit tests for the specification extractor."""

import pytest

from scopeguard.errors import ExtractionError
from scopeguard.models import Discipline
from scopeguard.pipeline.stages import (
    UNSPECIFIED_LOCATION,
    compile_vocabulary,
    extract_page,
    extract_specifications,
)


class TestExtractPage:
    """Tests for single-page extraction."""

    def test_bulletin_sheet(self, bulletin_page, tables):
        elements, trace = extract_page(bulletin_page, compile_vocabulary(tables))

        assert len(elements) == 1
        element = elements[0]
        assert element.element_id == "E-501-p1-e001"
        assert element.category == "ELECTRICAL_SCOPE"
        assert element.location == "Pit 2 (Service Car)"
        assert element.attributes == {"voltage": "208V", "phase": "3-Phase"}
        assert element.sheet_ref == "E-501, Note 4"
        assert element.discipline == Discipline.ELECTRICAL
        assert element.confidence == 1.0

        assert trace.tokens_seen == 5
        assert trace.facts_matched == 2
        assert trace.location_markers == ["Pit 2 (Service Car)"]
        assert trace.note_markers == ["Note 4"]

    def test_facts_before_any_marker_are_unspecified(self, page_factory, tables):
        page = page_factory(1, "E-101", "Feeder 480V", "Pit 1", "Sump pump 120V")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert [e.location for e in elements] == [UNSPECIFIED_LOCATION, "Pit 1"]
        assert elements[0].attributes == {"voltage": "480V"}
        assert elements[1].attributes == {"voltage": "120V"}

    def test_last_marker_wins(self, page_factory, tables):
        page = page_factory(1, "E-101", "Machine Room", "Hoistway", "GFCI receptacle")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert len(elements) == 1
        assert elements[0].location == "Hoistway"
        assert elements[0].attributes == {"gfci_protection": "GFCI"}

    def test_labelled_location_marker(self, page_factory, tables):
        page = page_factory(1, "E-101", "Location: Machine Room", "Disconnect 60A")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert elements[0].location == "Machine Room"
        assert elements[0].attributes == {"amperage": "60A"}

    def test_lettered_pit_is_a_location_not_amperage(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 1", "120V", "Pit 2A", "208V")

        elements, trace = extract_page(page, compile_vocabulary(tables))

        assert [(e.location, e.attributes) for e in elements] == [
            ("Pit 1", {"voltage": "120V"}),
            ("Pit 2A", {"voltage": "208V"}),
        ]
        assert trace.location_markers == ["Pit 1", "Pit 2A"]
        assert trace.ambiguous_matches == []

    def test_single_digit_amps_are_not_amperage(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 1", "Panel 2A feeder 208V", "Disconnect 30 amps")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert elements[0].attributes == {"voltage": "208V", "amperage": "30A"}

    def test_marker_with_trailing_text_is_not_a_marker(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 1", "Pit pump 120V")

        elements, trace = extract_page(page, compile_vocabulary(tables))

        assert trace.location_markers == ["Pit 1"]
        assert elements[0].location == "Pit 1"
        assert elements[0].attributes == {"voltage": "120V"}

    def test_categories_split_into_elements(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 2", "Sump pump 50 GPM", "208V")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert [(e.category, e.attributes) for e in elements] == [
            ("MECHANICAL_SCOPE", {"capacity": "50 GPM"}),
            ("ELECTRICAL_SCOPE", {"voltage": "208V"}),
        ]
        assert [e.element_id for e in elements] == ["E-101-p1-e001", "E-101-p1-e002"]

    def test_conflicting_repeat_keeps_first_value(self, page_factory, tables, settings):
        page = page_factory(1, "E-101", "Pit 2", "208V", "480V")

        elements, trace = extract_page(
            page,
            compile_vocabulary(tables),
            ambiguity_penalty=settings.ambiguity_penalty,
            min_confidence=settings.min_confidence,
        )

        assert elements[0].attributes == {"voltage": "208V"}
        assert elements[0].confidence == pytest.approx(0.85)
        assert trace.ambiguous_matches == [{
            "location": "Pit 2",
            "attribute": "voltage",
            "kept": "208V",
            "ignored": "480V",
        }]

    def test_confidence_floor(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 2", "208V", "480V", "277V", "120V")

        elements, _ = extract_page(page, compile_vocabulary(tables), ambiguity_penalty=0.5, min_confidence=0.2)

        assert elements[0].confidence == 0.2

    def test_unrecognized_tokens_ignored(self, page_factory, tables):
        page = page_factory(1, "A-101", "GENERAL NOTES", "See specifications", "")

        elements, trace = extract_page(page, compile_vocabulary(tables))

        assert elements == []
        assert trace.tokens_seen == 2

    def test_normalized_values(self, page_factory, tables):
        page = page_factory(1, "E-101", "Pit 2", "208 volts three-phase 60 Hz")

        elements, _ = extract_page(page, compile_vocabulary(tables))

        assert elements[0].attributes == {"voltage": "208V", "phase": "3-Phase", "frequency": "60Hz"}


class TestExtractSpecifications:
    """Tests for whole-document extraction."""

    def test_page_order_preserved(self, page_factory, document_factory, tables, settings):
        pages = [
            page_factory(n, f"E-{500 + n}", f"Pit {n}", f"{n}0 GPM") for n in range(1, 9)
        ]
        document = document_factory("multi", *pages)

        elements, trace = extract_specifications(document, tables, settings, max_workers=4)

        assert [e.page_number for e in elements] == list(range(1, 9))
        assert [p.page_number for p in trace.pages] == list(range(1, 9))
        assert trace.total_elements == 8
        assert trace.workers_used == 4

    def test_deterministic_across_worker_counts(self, page_factory, document_factory, tables, settings):
        pages = [
            page_factory(n, f"E-{500 + n}", "Pit 2", "208V", "3-Phase", "Note 2", "30A")
            for n in range(1, 6)
        ]
        document = document_factory("det", *pages)

        serial, _ = extract_specifications(document, tables, settings, max_workers=1)
        parallel, _ = extract_specifications(document, tables, settings, max_workers=5)

        assert serial == parallel

    def test_pages_do_not_share_location(self, page_factory, document_factory, tables, settings):
        document = document_factory(
            "doc",
            page_factory(1, "E-501", "Pit 2", "208V"),
            page_factory(2, "E-502", "120V"),
        )

        elements, _ = extract_specifications(document, tables, settings)

        assert elements[1].location == UNSPECIFIED_LOCATION

    def test_document_without_pages(self, document_factory, tables, settings):
        with pytest.raises(ExtractionError):
            extract_specifications(document_factory("empty"), tables, settings)
