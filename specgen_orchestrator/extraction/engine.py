"""
Content-extraction engine

Turns generated markdown into a StructuredDocument. The four sub-extractors
run independently over the same text and share no state, so their order (or
running them concurrently) never changes the result. Extraction never raises:
text without matching patterns gives empty collections.
"""

import logging
from typing import Any, Callable, Dict, List, Tuple

from ..models.document import StructuredDocument
from .code_templates import extract_code_templates
from .diagrams import extract_diagrams
from .project_structure import extract_project_structure
from .sections import extract_sections

logger = logging.getLogger(__name__)

SubExtractor = Callable[[str], List[Any]]

# (document field, extractor)
SUB_EXTRACTORS: Tuple[Tuple[str, SubExtractor], ...] = (
    ("sections", extract_sections),
    ("diagrams", extract_diagrams),
    ("code_templates", extract_code_templates),
    ("project_structure", extract_project_structure),
)


def _run(field_name: str, extractor: SubExtractor, text: str) -> List[Any]:
    try:
        return extractor(text)
    except Exception:
        logger.exception("Sub-extractor failed, leaving field empty", extra={"field": field_name})
        return []


def extract(text: Any, extractors: Tuple[Tuple[str, SubExtractor], ...] = SUB_EXTRACTORS) -> StructuredDocument:
    """
    Extract a structured document from generated text.

    Args:
        text: Generated markdown; anything that is not a string is treated as empty
        extractors: Sub-extractors to run, in any order

    Returns:
        StructuredDocument with every collection possibly empty
    """
    if not isinstance(text, str) or not text.strip():
        return StructuredDocument()

    # Normalise line endings so spans are stable across platforms
    text = text.replace("\r\n", "\n").replace("\r", "\n")

    fields: Dict[str, List[Any]] = {}
    for field_name, extractor in extractors:
        fields[field_name] = _run(field_name, extractor, text)

    return StructuredDocument(**fields)
