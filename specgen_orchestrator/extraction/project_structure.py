"""
Project structure extraction.

Tree listings (blocks drawn with ``├──``/``└──`` connectors) become one entry
per line; a trailing ``# ...`` or ``// ...`` comment becomes the description.
"""

import re
from typing import List, Optional

from ..models.document import ItemKind, ProjectStructureItem
from .blocks import find_fenced_blocks, is_diagram_block, is_tree_listing

CONNECTOR_PREFIX = re.compile(r"^[\s│├└─┬┴┼┤|`+]*(?:--\s+)?")
TRAILING_COMMENT = re.compile(r"^(?P<path>.*?)\s+(?:#|//)\s*(?P<description>.*)$")
COMMENT_LINE = re.compile(r"^\s*(?:#|//)")
ELLIPSIS_ONLY = re.compile(r"^[.…\s]+$")


def parse_tree_line(line: str) -> Optional[ProjectStructureItem]:
    """One tree line to an item; None for blank, comment and filler lines."""
    if not line.strip() or COMMENT_LINE.match(line):
        return None

    stripped = CONNECTOR_PREFIX.sub("", line).strip()
    if not stripped or COMMENT_LINE.match(stripped) or ELLIPSIS_ONLY.match(stripped):
        return None

    description = None
    comment = TRAILING_COMMENT.match(stripped)
    if comment:
        stripped = comment.group("path").strip()
        description = comment.group("description").strip() or None
        if not stripped:
            return None

    is_directory = stripped.endswith("/")
    path = stripped.rstrip("/") if is_directory and stripped != "/" else stripped
    leaf = path.rsplit("/", 1)[-1]
    if not is_directory and "." not in leaf:
        is_directory = True

    return ProjectStructureItem(
        path=path,
        kind=ItemKind.DIRECTORY if is_directory else ItemKind.FILE,
        description=description
    )


def extract_project_structure(text: str) -> List[ProjectStructureItem]:
    """Entries of every tree listing, in document order."""
    items: List[ProjectStructureItem] = []

    for block in find_fenced_blocks(text):
        if is_diagram_block(block) or not is_tree_listing(block.body):
            continue
        for line in block.body.splitlines():
            item = parse_tree_line(line)
            if item is not None:
                items.append(item)

    return items
