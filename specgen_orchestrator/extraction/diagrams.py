"""
Diagram extraction.

Diagram blocks are fenced blocks tagged with a diagram notation, or untagged
box drawings. The category comes from a keyword search in fixed priority,
first over the nearest preceding heading, then over the preceding text and
the diagram body.
"""

from typing import List, Optional, Tuple

from ..models.document import Diagram, DiagramCategory, element_id
from .blocks import (
    contains_any,
    diagram_notation,
    find_fenced_blocks,
    nearest_heading,
    preceding_context
)

# (category, context keywords, body keywords) in priority order
CATEGORY_KEYWORDS: Tuple[Tuple[DiagramCategory, Tuple[str, ...], Tuple[str, ...]], ...] = (
    (DiagramCategory.HIGH_LEVEL, ("high-level", "high level", "system architecture"), ()),
    (DiagramCategory.LOW_LEVEL, ("low-level", "low level", "detailed", "sequence"), ("sequencediagram",)),
    (DiagramCategory.DATA_FLOW, ("data flow", "data-flow", "dataflow"), ()),
    (DiagramCategory.DEPLOYMENT, ("deployment", "infrastructure"), ()),
    (DiagramCategory.SECURITY, ("security", "auth"), ()),
)


def _match_category(context: str, body: str = "") -> Optional[DiagramCategory]:
    context = context.lower()
    body = body.lower()
    for category, context_terms, body_terms in CATEGORY_KEYWORDS:
        if contains_any(context, context_terms) or contains_any(body, body_terms):
            return category
    return None


def classify_diagram(heading: Optional[str], context: str, body: str) -> DiagramCategory:
    """Category of a diagram; the heading wins over the surrounding text."""
    if heading:
        category = _match_category(heading)
        if category:
            return category
    return _match_category(context, body) or DiagramCategory.COMPONENT


def extract_diagrams(text: str) -> List[Diagram]:
    """All diagram blocks in document order."""
    blocks = find_fenced_blocks(text)
    diagrams: List[Diagram] = []

    for block in blocks:
        notation = diagram_notation(block)
        body = block.body.strip()
        if not notation or not body:
            continue

        heading = nearest_heading(text, block, blocks)
        category = classify_diagram(heading, preceding_context(text, block, blocks), body)
        diagrams.append(Diagram(
            id=element_id("diagram", block.index, body),
            title=heading or f"{category.value} diagram",
            content=body,
            notation=notation,
            category=category
        ))

    return diagrams
