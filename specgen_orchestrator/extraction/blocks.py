"""
Fenced block and heading scanning shared by the sub-extractors.

Everything here is a pure function of the input text.
"""

import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

FENCE_PATTERN = re.compile(
    r"^[ \t]*```[ \t]*(?P<tag>[^\n`]*?)[ \t]*\n(?P<body>.*?)^[ \t]*```[ \t]*$",
    re.MULTILINE | re.DOTALL
)
HEADING_PATTERN = re.compile(r"^(?P<hashes>#{1,6})[ \t]+(?P<title>.+?)[ \t]*#*[ \t]*$", re.MULTILINE)

# Glyphs that only appear in boxed drawings, never in tree listings
BOX_GLYPHS = frozenset("┌┐┘┬┴┼┤╔╗╚╝═║")
TREE_CONNECTORS = ("├──", "└──")

DIAGRAM_NOTATIONS = {
    "mermaid": "mermaid",
    "plantuml": "plantuml",
    "puml": "plantuml",
    "dot": "dot",
    "graphviz": "dot",
}

CONTEXT_WINDOW = 200


@dataclass(frozen=True)
class FencedBlock:
    """A fenced block: its info tag, body and span in the source text."""

    tag: str
    body: str
    start: int
    end: int
    index: int

    @property
    def language(self) -> str:
        """First word of the info tag, lowercased."""
        return self.tag.split()[0].lower() if self.tag.strip() else ""


@dataclass(frozen=True)
class Heading:
    level: int
    title: str
    start: int
    end: int


def find_fenced_blocks(text: str) -> List[FencedBlock]:
    """All terminated fenced blocks in document order."""
    blocks = []
    for index, match in enumerate(FENCE_PATTERN.finditer(text)):
        blocks.append(FencedBlock(
            tag=match.group("tag").strip(),
            body=match.group("body"),
            start=match.start(),
            end=match.end(),
            index=index
        ))
    return blocks


def _inside(position: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start <= position < end for start, end in spans)


def find_headings(text: str, blocks: Optional[List[FencedBlock]] = None) -> List[Heading]:
    """Markdown ATX headings outside fenced blocks, in document order."""
    if blocks is None:
        blocks = find_fenced_blocks(text)
    spans = [(block.start, block.end) for block in blocks]
    headings = []
    for match in HEADING_PATTERN.finditer(text):
        if _inside(match.start(), spans):
            continue
        headings.append(Heading(
            level=len(match.group("hashes")),
            title=match.group("title").strip(),
            start=match.start(),
            end=match.end()
        ))
    return headings


def preceding_context(text: str, block: FencedBlock, blocks: List[FencedBlock]) -> str:
    """Text before a block, bounded by the window size and the previous block's end."""
    floor = max(0, block.start - CONTEXT_WINDOW)
    if block.index > 0:
        floor = max(floor, blocks[block.index - 1].end)
    return text[floor:block.start]


def nearest_heading(text: str, block: FencedBlock, blocks: List[FencedBlock]) -> Optional[str]:
    """Title of the closest heading within the preceding context, if any."""
    context = preceding_context(text, block, blocks)
    # Only whole lines can be headings
    if block.start > len(context) and text[block.start - len(context) - 1] != "\n":
        context = context.partition("\n")[2]
    titles = [match.group("title").strip() for match in HEADING_PATTERN.finditer(context)]
    return titles[-1] if titles else None


def is_box_drawing(body: str) -> bool:
    return any(glyph in BOX_GLYPHS for glyph in body)


def is_tree_listing(body: str) -> bool:
    return any(connector in body for connector in TREE_CONNECTORS) and not is_box_drawing(body)


def diagram_notation(block: FencedBlock) -> Optional[str]:
    """Notation of a diagram block, or None if the block is not a diagram."""
    notation = DIAGRAM_NOTATIONS.get(block.language)
    if notation:
        return notation
    if not block.language and is_box_drawing(block.body):
        return "ascii"
    return None


def contains_any(haystack: str, needles) -> bool:
    return any(needle in haystack for needle in needles)


def is_diagram_block(block: FencedBlock) -> bool:
    return diagram_notation(block) is not None
