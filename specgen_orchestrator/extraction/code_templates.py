"""
Code template extraction.

Language-tagged fenced blocks that are neither diagrams nor box/tree drawings
mis-tagged as code.
"""

from typing import Dict, List, Optional, Tuple

from ..models.document import CodeCategory, CodeTemplate, element_id
from .blocks import (
    contains_any,
    find_fenced_blocks,
    is_box_drawing,
    is_diagram_block,
    is_tree_listing,
    nearest_heading,
    preceding_context
)

LANGUAGE_ALIASES: Dict[str, str] = {
    "ts": "typescript",
    "tsx": "typescript",
    "js": "javascript",
    "jsx": "javascript",
    "py": "python",
    "yml": "yaml",
    "sh": "bash",
    "shell": "bash",
    "golang": "go",
    "cs": "csharp",
    "c#": "csharp",
}

# (category, context keywords, body keywords) in priority order
CATEGORY_KEYWORDS: Tuple[Tuple[CodeCategory, Tuple[str, ...], Tuple[str, ...]], ...] = (
    (CodeCategory.INTERFACE, ("interface",), ("interface ",)),
    (CodeCategory.DTO, ("dto",), ("dto",)),
    (CodeCategory.SERVICE, ("service",), ("service",)),
    (CodeCategory.CONTROLLER, ("controller",), ("controller",)),
    (CodeCategory.MODEL, ("model",), ("model",)),
    (CodeCategory.CONFIG, ("config",), ("config",)),
    (CodeCategory.TEST, ("test",), ("test", "spec")),
    (CodeCategory.SCHEMA, ("schema",), ("create table", "schema")),
)

# language -> (framework, signature tokens) in priority order
FRAMEWORK_SIGNATURES: Dict[str, Tuple[Tuple[str, Tuple[str, ...]], ...]] = {
    "typescript": (
        ("React", ("react", "jsx", "usestate")),
        ("Express", ("express", "app.get", "req, res")),
        ("NestJS", ("nestjs", "@controller", "@injectable")),
    ),
    "python": (
        ("FastAPI", ("fastapi",)),
        ("Django", ("django",)),
        ("Flask", ("flask",)),
    ),
    "java": (
        ("Spring", ("springframework", "@restcontroller", "@springbootapplication")),
    ),
    "go": (
        ("Gin", ("gin-gonic", "gin.")),
    ),
}
FRAMEWORK_SIGNATURES["javascript"] = FRAMEWORK_SIGNATURES["typescript"]


def normalize_language(tag: str) -> str:
    return LANGUAGE_ALIASES.get(tag, tag)


def classify_code(context: str, code: str) -> CodeCategory:
    """Category by keyword search over context and code, defaulting to interface."""
    context = context.lower()
    code = code.lower()
    for category, context_terms, code_terms in CATEGORY_KEYWORDS:
        if contains_any(context, context_terms) or contains_any(code, code_terms):
            return category
    return CodeCategory.INTERFACE


def detect_framework(code: str, language: str) -> Optional[str]:
    code = code.lower()
    for framework, tokens in FRAMEWORK_SIGNATURES.get(language, ()):
        if contains_any(code, tokens):
            return framework
    return None


def extract_code_templates(text: str) -> List[CodeTemplate]:
    """All code templates in document order."""
    blocks = find_fenced_blocks(text)
    templates: List[CodeTemplate] = []

    for block in blocks:
        code = block.body.strip()
        if not block.language or not code or is_diagram_block(block):
            continue
        if is_box_drawing(code) or is_tree_listing(code):
            continue

        language = normalize_language(block.language)
        heading = nearest_heading(text, block, blocks)
        category = classify_code(preceding_context(text, block, blocks), code)
        templates.append(CodeTemplate(
            id=element_id("code", block.index, code),
            title=heading or f"{language} {category.value}",
            content=code,
            language=language,
            category=category,
            framework=detect_framework(code, language)
        ))

    return templates
