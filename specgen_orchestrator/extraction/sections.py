"""
Section extraction.

A fixed catalog of plan sections, each with ranked heading matchers: the
numbered heading first, then the plain title, then short aliases. Catalog
order decides section order, regardless of where a heading appears.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Pattern, Set, Tuple

from ..models.document import Section, element_id
from .blocks import FencedBlock, Heading, find_fenced_blocks, find_headings

RULE_PATTERN = re.compile(r"^[ \t]*(?:-{3,}|\*{3,}|_{3,})[ \t]*$", re.MULTILINE)
_EMPHASIS = re.compile(r"[*_`]")


@dataclass(frozen=True)
class CatalogEntry:
    key: str
    title: str
    number: Optional[int] = None
    aliases: Tuple[str, ...] = field(default_factory=tuple)

    def matchers(self) -> List[Pattern]:
        """Heading-title patterns in rank order."""
        ranked = []
        if self.number is not None:
            ranked.append(re.compile(rf"^{self.number}\.?\s+{re.escape(self.title)}\s*:?$", re.IGNORECASE))
        for title in (self.title,) + self.aliases:
            ranked.append(re.compile(rf"^(?:\d+\.?\s+)?{re.escape(title)}\s*:?$", re.IGNORECASE))
        return ranked


SECTION_CATALOG: Tuple[CatalogEntry, ...] = (
    CatalogEntry("executive_summary", "Executive Summary and Integration Overview", 1, ("Executive Summary",)),
    CatalogEntry("architecture", "System Architecture and Component Design", 2, ("System Architecture", "Architecture")),
    CatalogEntry("api_specs", "API Specifications and Data Contracts", 3, ("API Specifications", "API Specification")),
    CatalogEntry("security", "Security Architecture and Authentication", 4, ("Security Architecture", "Security")),
    CatalogEntry("error_handling", "Error Handling and Resilience Patterns", 5, ("Error Handling",)),
    CatalogEntry("testing", "Testing Strategy and Quality Assurance", 6, ("Testing Strategy", "Testing")),
    CatalogEntry("deployment", "Deployment and Operations Guide", 7, ("Deployment",)),
    CatalogEntry("monitoring", "Monitoring and Observability", 8, ("Monitoring",)),
    CatalogEntry("performance", "Performance and Scalability Considerations", 9, ("Performance and Scalability", "Performance")),
    CatalogEntry("risks", "Risk Assessment and Mitigation", 10, ("Risk Assessment", "Risks")),
    CatalogEntry("implementation", "Implementation Guidance", None, ("Implementation Plan", "Implementation Roadmap")),
)


def _section_body(text: str, heading: Heading, headings: List[Heading], blocks: List[FencedBlock]) -> str:
    """Text from a heading to the next heading of same or higher level, a rule, or the end."""
    boundary = len(text)
    for other in headings:
        if other.start > heading.start and other.level <= heading.level:
            boundary = other.start
            break

    fence_spans = [(block.start, block.end) for block in blocks]
    for rule in RULE_PATTERN.finditer(text, heading.end, boundary):
        if not any(start <= rule.start() < end for start, end in fence_spans):
            boundary = rule.start()
            break

    return text[heading.end:boundary].strip()


def extract_sections(text: str) -> List[Section]:
    """Sections in catalog order; unmatched catalog entries are omitted."""
    blocks = find_fenced_blocks(text)
    headings = find_headings(text, blocks)
    normalized = [_EMPHASIS.sub("", heading.title).strip() for heading in headings]

    sections: List[Section] = []
    claimed: Set[int] = set()
    seen_titles: Set[str] = set()

    for entry in SECTION_CATALOG:
        if entry.title.lower() in seen_titles:
            continue
        body = None
        for matcher in entry.matchers():
            for position, heading in enumerate(headings):
                if position in claimed or not matcher.match(normalized[position]):
                    continue
                candidate = _section_body(text, heading, headings, blocks)
                if candidate:
                    body = candidate
                    claimed.add(position)
                    break
            if body:
                break
        if not body:
            continue

        order = len(sections)
        sections.append(Section(
            id=element_id("section", order, entry.key + body),
            key=entry.key,
            title=entry.title,
            content=body,
            order=order
        ))
        seen_titles.add(entry.title.lower())

    return sections
