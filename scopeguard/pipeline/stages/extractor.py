"""Stage 1: Specification Extractor - positioned sheet text to typed facts.

VOCABULARY-DRIVEN:
- A configurable table maps phrase patterns to (attribute, normalized value)
- Location-marker tokens set the location for the facts that follow them
- Note markers ("Note 4") refine the sheet reference
- Unrecognized tokens are ignored, never errors

RULES:
- A fact takes the LAST location marker before it on the SAME page
- Pages never share state; each one is extracted independently
- A token that wholly matches a location marker sets the location and
  contributes no facts, so "Pit 2A" is a place, never a 2A rating
- Repeated attributes with a different value keep the first value and
  lower the element's confidence
"""

import re
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

import structlog

from scopeguard.config.settings import Settings, get_settings
from scopeguard.config.tables import ConfigTables, VocabularyEntry
from scopeguard.errors import ExtractionError
from scopeguard.models import Document, Page, SpecificationElement

logger = structlog.get_logger(__name__)

UNSPECIFIED_LOCATION = "Unspecified"


# =============================================================================
# Trace Dataclasses
# =============================================================================

@dataclass
class PageExtractionTrace:
    """What one page contributed."""
    page_number: int
    sheet_code: str
    tokens_seen: int = 0
    facts_matched: int = 0
    location_markers: list[str] = field(default_factory=list)
    note_markers: list[str] = field(default_factory=list)
    ambiguous_matches: list[dict] = field(default_factory=list)
    elements_emitted: int = 0


@dataclass
class ExtractionTrace:
    """Complete trace of document extraction for inspection."""
    document_id: str
    pages: list[PageExtractionTrace] = field(default_factory=list)
    workers_used: int = 0
    total_elements: int = 0

    @property
    def total_facts(self) -> int:
        return sum(p.facts_matched for p in self.pages)

    @property
    def total_ambiguous(self) -> int:
        return sum(len(p.ambiguous_matches) for p in self.pages)


# =============================================================================
# Compiled Vocabulary
# =============================================================================

@dataclass(frozen=True)
class CompiledVocabulary:
    """Regexes compiled once per run and shared read-only by page workers."""
    facts: tuple[tuple[re.Pattern, VocabularyEntry], ...]
    locations: tuple[re.Pattern, ...]
    notes: tuple[re.Pattern, ...]


def compile_vocabulary(tables: ConfigTables) -> CompiledVocabulary:
    return CompiledVocabulary(
        facts=tuple(
            (re.compile(entry.pattern, re.IGNORECASE), entry) for entry in tables.vocabulary
        ),
        locations=tuple(re.compile(p, re.IGNORECASE) for p in tables.location_patterns),
        notes=tuple(re.compile(p, re.IGNORECASE) for p in tables.note_patterns),
    )


@dataclass
class _Fact:
    start: int
    attribute: str
    value: str
    category: str


@dataclass
class _ElementDraft:
    category: str
    location: str
    note_ref: Optional[str]
    attributes: dict[str, str] = field(default_factory=dict)
    ambiguous: int = 0


# =============================================================================
# Helper Functions
# =============================================================================

def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def _match_facts(text: str, vocab: CompiledVocabulary) -> list[_Fact]:
    """All vocabulary hits in one token, in reading order."""
    facts = []
    for order, (pattern, entry) in enumerate(vocab.facts):
        for match in pattern.finditer(text):
            facts.append((match.start(), order, _Fact(
                start=match.start(),
                attribute=entry.attribute,
                value=_collapse(match.expand(entry.value)),
                category=entry.category,
            )))
    facts.sort(key=lambda item: (item[0], item[1]))
    return [fact for _, _, fact in facts]


def _match_location(text: str, vocab: CompiledVocabulary) -> Optional[str]:
    """Location label if the whole token is a location marker."""
    for pattern in vocab.locations:
        match = pattern.fullmatch(text)
        if match:
            if "label" in pattern.groupindex and match.group("label"):
                return _collapse(match.group("label"))
            return _collapse(text)
    return None


def _match_note(text: str, vocab: CompiledVocabulary) -> Optional[str]:
    for pattern in vocab.notes:
        match = pattern.search(text)
        if match:
            if "number" in pattern.groupindex:
                return f"Note {match.group('number')}"
            return _collapse(match.group(0)).title()
    return None


def _confidence(ambiguous: int, penalty: float, floor: float) -> float:
    return round(max(floor, min(1.0, 1.0 - penalty * ambiguous)), 4)


# =============================================================================
# Page Extraction (runs inside a worker)
# =============================================================================

def extract_page(
    page: Page,
    vocab: CompiledVocabulary,
    ambiguity_penalty: float = 0.15,
    min_confidence: float = 0.1,
) -> tuple[list[SpecificationElement], PageExtractionTrace]:
    """Extract specification elements from a single page.

    Pure: depends only on the page and the compiled vocabulary.

    Returns:
        Tuple of (elements in order of first fact, page trace).
    """
    trace = PageExtractionTrace(page_number=page.page_number, sheet_code=page.sheet_code)

    location = UNSPECIFIED_LOCATION
    note_ref: Optional[str] = None
    drafts: dict[tuple[str, str], _ElementDraft] = {}

    for token in page.tokens:
        text = _collapse(token.text)
        if not text:
            continue
        trace.tokens_seen += 1

        note = _match_note(text, vocab)
        if note:
            note_ref = note
            trace.note_markers.append(note)

        label = _match_location(text, vocab)
        if label:
            location = label
            trace.location_markers.append(label)
            continue

        for fact in _match_facts(text, vocab):
            trace.facts_matched += 1
            key = (location.lower(), fact.category)
            draft = drafts.get(key)
            if draft is None:
                draft = _ElementDraft(category=fact.category, location=location, note_ref=note_ref)
                drafts[key] = draft

            current = draft.attributes.get(fact.attribute)
            if current is None:
                draft.attributes[fact.attribute] = fact.value
            elif current.upper() != fact.value.upper():
                draft.ambiguous += 1
                trace.ambiguous_matches.append({
                    "location": location,
                    "attribute": fact.attribute,
                    "kept": current,
                    "ignored": fact.value,
                })

    elements = []
    for index, draft in enumerate(drafts.values(), start=1):
        elements.append(SpecificationElement(
            element_id=f"{page.sheet_code}-p{page.page_number}-e{index:03d}",
            category=draft.category,
            location=draft.location,
            attributes=draft.attributes,
            sheet_code=page.sheet_code,
            page_number=page.page_number,
            note_ref=draft.note_ref,
            discipline=page.discipline,
            confidence=_confidence(draft.ambiguous, ambiguity_penalty, min_confidence),
        ))
    trace.elements_emitted = len(elements)

    logger.debug(
        "page_extracted",
        sheet=page.sheet_code,
        page=page.page_number,
        tokens=trace.tokens_seen,
        facts=trace.facts_matched,
        elements=len(elements),
    )
    return elements, trace


# =============================================================================
# Main Extraction Function
# =============================================================================

def extract_specifications(
    document: Document,
    tables: ConfigTables,
    settings: Settings | None = None,
    max_workers: Optional[int] = None,
) -> tuple[list[SpecificationElement], ExtractionTrace]:
    """Extract specification elements from every page of a document.

    Pages are extracted on a bounded worker pool. Results are concatenated in
    page order, not completion order, so output never depends on scheduling.

    Args:
        document: The ingested document.
        tables: Configuration tables holding the vocabulary.
        settings: Runtime settings (worker count, confidence tuning).
        max_workers: Override for the worker count.

    Returns:
        Tuple of (elements, extraction trace).

    Raises:
        ExtractionError: If the document has no pages.
    """
    settings = settings or get_settings()

    if not document.pages:
        raise ExtractionError(f"Document {document.document_id} has no pages")

    vocab = compile_vocabulary(tables)
    workers = max(1, min(max_workers or settings.extraction_max_workers, len(document.pages)))

    logger.info(
        "extraction_start",
        document_id=document.document_id,
        pages=len(document.pages),
        workers=workers,
    )

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="extract") as pool:
        futures = [
            pool.submit(
                extract_page,
                page,
                vocab,
                settings.ambiguity_penalty,
                settings.min_confidence,
            )
            for page in document.pages
        ]
        page_results = [future.result() for future in futures]

    trace = ExtractionTrace(document_id=document.document_id, workers_used=workers)
    elements: list[SpecificationElement] = []
    for page_elements, page_trace in page_results:
        elements.extend(page_elements)
        trace.pages.append(page_trace)
    trace.total_elements = len(elements)

    logger.info(
        "extraction_complete",
        document_id=document.document_id,
        elements=len(elements),
        facts=trace.total_facts,
        ambiguous=trace.total_ambiguous,
    )
    return elements, trace
