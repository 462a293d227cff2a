"""Streaming text extractor.

Scans assistant text (complete or still streaming) for every inline tool call
convention and returns ordered, non-overlapping extractions.

Callers re-run the scan on the whole buffer each time more text arrives; the
scan is a pure function of its input, so repeated calls on the same text give
identical results.
"""

from collections.abc import Callable, Iterable
from typing import Protocol, TypeVar

import structlog

from services.toolcall_service.core.parsing.recognizers import RECOGNIZERS, Candidate
from shared.protocol.tool_models import ToolCallExtraction

logger = structlog.get_logger(__name__)


class Span(Protocol):
    start: int
    end: int


SpanT = TypeVar("SpanT", bound=Span)


def select_non_overlapping(candidates: Iterable[SpanT], is_valid: Callable[[SpanT], bool] | None = None) -> list[SpanT]:
    """Accept candidates first-come-first-served by start offset.

    Candidates are stable-sorted by start offset, so recognizer order only
    breaks ties. A candidate intersecting an already accepted span is dropped,
    never merged, whichever recognizer produced it.
    """
    accepted: list[SpanT] = []
    for candidate in sorted(candidates, key=lambda c: c.start):
        if is_valid is not None and not is_valid(candidate):
            continue
        if any(candidate.start < kept.end and kept.start < candidate.end for kept in accepted):
            logger.debug("extraction_overlap_rejected", start=candidate.start, end=candidate.end)
            continue
        accepted.append(candidate)
    return accepted


def _has_name(candidate: Candidate) -> bool:
    return bool(candidate.name.strip())


def extract_tool_calls_from_text(text: str) -> list[ToolCallExtraction]:
    """Find every inline tool call in ``text``.

    Args:
        text: Assistant message text, possibly partial.

    Returns:
        Extractions in document order with mutually disjoint spans.
    """
    if not text:
        return []

    pooled: list[Candidate] = []
    for recognizer in RECOGNIZERS:
        pooled.extend(recognizer(text))

    return [
        ToolCallExtraction(
            name=candidate.name,
            arguments=candidate.arguments,
            start_index=candidate.start,
            end_index=candidate.end,
            source=candidate.source,
            raw_arguments=candidate.raw_arguments,
        )
        for candidate in select_non_overlapping(pooled, _has_name)
    ]
