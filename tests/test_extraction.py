"""
Tests for the markdown content-extraction engine.
"""

import pytest

from specgen_orchestrator.engines.fake_engine import INTEGRATION_PLAN, PROJECT_STRUCTURE
from specgen_orchestrator.extraction import (
    SUB_EXTRACTORS,
    classify_diagram,
    detect_framework,
    extract,
    extract_diagrams,
    parse_tree_line
)
from specgen_orchestrator.models.document import (
    CodeCategory,
    DiagramCategory,
    ItemKind,
    StructuredDocument
)


@pytest.mark.parametrize("value", [None, "", "   \n\t", 42, ["## Security"]])
def test_extract_is_total(value):
    """Anything that is not non-blank text yields an empty document."""
    document = extract(value)
    assert isinstance(document, StructuredDocument)
    assert document.is_empty()


def test_plain_prose_yields_empty_document():
    document = extract("Just a paragraph of prose with no headings or code.")
    assert document.is_empty()


def test_extract_is_deterministic():
    """Equal input gives equal output, identifiers included."""
    first = extract(INTEGRATION_PLAN)
    second = extract(INTEGRATION_PLAN)
    assert first == second
    assert [s.id for s in first.sections] == [s.id for s in second.sections]


def test_sub_extractor_order_does_not_matter():
    reordered = tuple(reversed(SUB_EXTRACTORS))
    assert extract(INTEGRATION_PLAN, extractors=reordered) == extract(INTEGRATION_PLAN)


def test_crlf_input_matches_lf_input():
    assert extract(INTEGRATION_PLAN.replace("\n", "\r\n")) == extract(INTEGRATION_PLAN)


def test_integration_plan_sections_follow_catalog():
    document = extract(INTEGRATION_PLAN)

    keys = [section.key for section in document.sections]
    assert keys == [
        "executive_summary", "architecture", "api_specs", "security", "error_handling",
        "testing", "deployment", "monitoring", "performance", "risks", "implementation"
    ]
    assert [section.order for section in document.sections] == list(range(11))
    assert document.section("security").startswith("Every call carries a bearer token")
    # Subheadings below the section level stay inside the body
    assert "#### High-Level Architecture" in document.section("architecture")


def test_section_order_comes_from_catalog_not_position():
    text = (
        "## Security Architecture and Authentication\n\nTokens everywhere.\n\n"
        "## Executive Summary\n\nAn overview.\n"
    )
    sections = extract(text).sections

    assert [(s.key, s.order) for s in sections] == [("executive_summary", 0), ("security", 1)]
    assert sections[0].title == "Executive Summary and Integration Overview"
    assert sections[1].content == "Tokens everywhere."


def test_numbered_heading_outranks_alias():
    text = "## Security\n\nshort note\n\n## 4. Security Architecture and Authentication\n\nthe real section\n"
    sections = extract(text).sections

    assert len(sections) == 1
    assert sections[0].content == "the real section"


def test_section_stops_at_horizontal_rule():
    text = "## Monitoring\n\nDashboards per endpoint.\n\n---\n\nFooter text\n"
    assert extract(text).section("monitoring") == "Dashboards per endpoint."


def test_empty_section_body_is_omitted():
    text = "## Testing Strategy\n\n## Deployment\n\nShip it.\n"
    sections = extract(text).sections

    assert [s.key for s in sections] == ["deployment"]
    assert sections[0].order == 0


def test_headings_inside_fences_are_ignored():
    text = "```\n## Testing\nnot a heading\n```\n"
    assert extract(text).sections == []


def test_integration_plan_diagrams():
    diagrams = extract(INTEGRATION_PLAN).diagrams

    assert [(d.notation, d.category) for d in diagrams] == [
        ("mermaid", DiagramCategory.HIGH_LEVEL),
        ("mermaid", DiagramCategory.SECURITY),
    ]
    assert diagrams[0].title == "High-Level Architecture"


def test_diagram_under_security_heading_is_security():
    """The heading wins over the sequence keyword in the body."""
    text = "## Security Flow\n\n```mermaid\nsequenceDiagram\n  A->>B: token\n```\n"
    (diagram,) = extract_diagrams(text)
    assert diagram.category == DiagramCategory.SECURITY


def test_diagram_without_heading_uses_context():
    text = "The data flow between services:\n\n```mermaid\ngraph LR\n  A-->B\n```\n"
    (diagram,) = extract(text).diagrams

    assert diagram.category == DiagramCategory.DATA_FLOW
    assert diagram.title == "data-flow diagram"


def test_classify_diagram_defaults_to_component():
    assert classify_diagram(None, "", "graph TD\n A-->B") == DiagramCategory.COMPONENT
    assert classify_diagram(None, "", "sequenceDiagram\n A->>B: hi") == DiagramCategory.LOW_LEVEL


def test_untagged_box_drawing_is_ascii_diagram_only():
    text = "## Components\n\n```\n┌─────┐\n│ API │\n└─────┘\n```\n"
    document = extract(text)

    assert [d.notation for d in document.diagrams] == ["ascii"]
    assert document.code_templates == []
    assert document.project_structure == []


def test_integration_plan_code_templates():
    templates = extract(INTEGRATION_PLAN).code_templates

    assert [t.language for t in templates] == ["typescript", "python"]
    assert templates[0].category == CodeCategory.INTERFACE
    # Diagram and tree blocks never become code templates
    assert all("graph TD" not in t.content for t in templates)


def test_code_language_alias_category_and_framework():
    text = "## User Service\n\n```py\nfrom fastapi import FastAPI\n\nclass UserService:\n    pass\n```\n"
    (template,) = extract(text).code_templates

    assert template.language == "python"
    assert template.category == CodeCategory.SERVICE
    assert template.framework == "FastAPI"
    assert template.title == "User Service"


def test_code_without_heading_gets_generated_title():
    (template,) = extract("```go\npackage main\n```\n").code_templates

    assert template.title == "go interface"
    assert template.framework is None


def test_hash_inside_prose_line_is_not_a_heading():
    """The context window opening on the '#' of 'C#' must not produce a title."""
    line_tail = "# " + "x" * 197 + "\n"
    text = "Written in C" + line_tail + "```go\npackage main\n```\n"

    (template,) = extract(text).code_templates

    assert template.title == "go interface"


def test_detect_framework_is_language_specific():
    assert detect_framework("import express from 'express'", "typescript") == "Express"
    assert detect_framework("import express from 'express'", "python") is None


def test_unterminated_fence_is_not_a_block():
    text = "## Request Service\n\n```python\nclass RequestService:\n    pass\n"
    document = extract(text)

    assert document.code_templates == []
    assert document.diagrams == []


def test_project_structure_items():
    items = extract(PROJECT_STRUCTURE).project_structure

    assert [(i.path, i.kind) for i in items] == [
        ("integration-service", ItemKind.DIRECTORY),
        ("src", ItemKind.DIRECTORY),
        ("controllers", ItemKind.DIRECTORY),
        ("services", ItemKind.DIRECTORY),
        ("request.service.ts", ItemKind.FILE),
        ("index.ts", ItemKind.FILE),
        ("tests", ItemKind.DIRECTORY),
        ("package.json", ItemKind.FILE),
    ]
    assert items[2].description == "HTTP handlers"
    assert items[5].description == "entry point"


def test_parse_tree_line_skips_filler():
    assert parse_tree_line("") is None
    assert parse_tree_line("│   └── ...") is None
    assert parse_tree_line("# just a comment") is None

    item = parse_tree_line("├── Makefile")
    assert item.path == "Makefile"
    assert item.kind == ItemKind.DIRECTORY  # no extension and no slash


def test_failing_sub_extractor_is_absorbed():
    def boom(text):
        raise RuntimeError("extractor bug")

    extractors = (("sections", boom),) + tuple(
        (name, func) for name, func in SUB_EXTRACTORS if name != "sections"
    )
    document = extract(INTEGRATION_PLAN, extractors=extractors)

    assert document.sections == []
    assert len(document.diagrams) == 2
    assert len(document.code_templates) == 2


def test_counts():
    counts = extract(INTEGRATION_PLAN).counts()
    assert counts == {"sections": 11, "diagrams": 2, "code_templates": 2, "project_structure": 6}
