"""
Tests for the command line interface.
"""

import json
import logging

import pytest
from click.testing import CliRunner

from specgen_orchestrator.cli.main import cli
from specgen_orchestrator.engines.fake_engine import INTEGRATION_PLAN
from specgen_orchestrator.utils.logger import PACKAGE_LOGGER

MOCK_ENV = {"USE_MOCK_SERVICES": "true"}


@pytest.fixture(autouse=True)
def reset_package_logger():
    """The CLI attaches a handler bound to the runner's stderr; drop it afterwards."""
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        if not isinstance(handler, logging.NullHandler):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def plan_file(tmp_path):
    path = tmp_path / "plan.md"
    path.write_text(INTEGRATION_PLAN, encoding="utf-8")
    return path


def test_extract_json(runner, plan_file):
    result = runner.invoke(cli, ["extract", str(plan_file)], env=MOCK_ENV)

    assert result.exit_code == 0
    document = json.loads(result.output)
    assert len(document["sections"]) == 11
    assert document["diagrams"][1]["category"] == "security"
    assert document["code_templates"][0]["language"] == "typescript"


def test_extract_summary(runner, plan_file):
    result = runner.invoke(cli, ["extract", str(plan_file), "--format", "summary"], env=MOCK_ENV)

    assert result.exit_code == 0
    assert "sections: 11" in result.output
    assert "diagrams: 2" in result.output
    assert "[0] Executive Summary and Integration Overview" in result.output


def test_submit_single_stage_job(runner):
    result = runner.invoke(cli, [
        "--log-level", "CRITICAL",
        "job", "submit", "Parcel EARS",
        "--type", "ears-spec",
        "--user", "user-1",
        "--input", "Customers can track parcels."
    ], env=MOCK_ENV)

    assert result.exit_code == 0, result.output
    assert "Job submitted successfully!" in result.output
    assert "Status: COMPLETED" in result.output
    assert "Artifact: jobs/" in result.output


def test_submit_integration_plan_from_file(runner, tmp_path):
    requirements = tmp_path / "requirements.txt"
    requirements.write_text("Customers can track parcels.", encoding="utf-8")

    result = runner.invoke(cli, [
        "--log-level", "CRITICAL",
        "job", "submit", "Parcel plan",
        "--type", "integration-plan",
        "--user", "user-1",
        "--input-file", str(requirements)
    ], env=MOCK_ENV)

    assert result.exit_code == 0, result.output
    assert "Stage: COMPLETED" in result.output
    assert "Document: sections=11, diagrams=2, code_templates=2, project_structure=6" in result.output


def test_submit_requires_exactly_one_input(runner, tmp_path):
    requirements = tmp_path / "requirements.txt"
    requirements.write_text("text", encoding="utf-8")

    missing = runner.invoke(cli, ["job", "submit", "Plan", "--user", "user-1"], env=MOCK_ENV)
    both = runner.invoke(cli, [
        "job", "submit", "Plan", "--user", "user-1", "--input", "text", "--input-file", str(requirements)
    ], env=MOCK_ENV)

    assert missing.exit_code == 2
    assert both.exit_code == 2


def test_submit_rejects_unknown_type(runner):
    result = runner.invoke(cli, [
        "job", "submit", "Plan", "--type", "design-doc", "--user", "user-1", "--input", "text"
    ], env=MOCK_ENV)

    assert result.exit_code == 2


def test_status_of_unknown_job(runner):
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "job", "status", "missing-job"], env=MOCK_ENV)

    assert result.exit_code == 1
    assert "Job missing-job not found" in result.output


def test_list_without_jobs(runner):
    result = runner.invoke(cli, ["--log-level", "CRITICAL", "job", "list", "--user", "nobody"], env=MOCK_ENV)

    assert result.exit_code == 0
    assert "No jobs found" in result.output


def test_bad_configuration_exits(runner, tmp_path):
    config = tmp_path / "specgen.yaml"
    config.write_text("workflow:\n  max_attempts: 0\n", encoding="utf-8")

    result = runner.invoke(cli, ["--config", str(config), "job", "list", "--user", "u"], env=MOCK_ENV)

    assert result.exit_code == 1
    assert "Error loading configuration" in result.output
