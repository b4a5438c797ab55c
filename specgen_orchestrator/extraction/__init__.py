"""
Content-extraction engine for generated plans.

Pure functions from markdown text to the structured document model.
"""

from .engine import extract, SUB_EXTRACTORS
from .sections import extract_sections, SECTION_CATALOG
from .diagrams import extract_diagrams, classify_diagram
from .code_templates import extract_code_templates, classify_code, detect_framework
from .project_structure import extract_project_structure, parse_tree_line

__all__ = [
    "extract",
    "SUB_EXTRACTORS",
    "extract_sections",
    "SECTION_CATALOG",
    "extract_diagrams",
    "classify_diagram",
    "extract_code_templates",
    "classify_code",
    "detect_framework",
    "extract_project_structure",
    "parse_tree_line"
]
