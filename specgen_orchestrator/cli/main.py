"""
Main CLI entry point for the SpecGen job orchestrator

Provides commands to submit and inspect generation jobs and to run content
extraction over a markdown file.
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import click

from ..bootstrap import build_job_manager
from ..config import load_config
from ..core.exceptions import JobOrchestratorError
from ..extraction import extract
from ..models.job import Job, JobType
from ..services.job_manager import JobManager
from ..utils.logger import configure_logging

JOB_TYPE_CHOICES = [job_type.value.lower().replace("_", "-") for job_type in JobType]


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True), help='Configuration file path')
@click.option('--log-level', '-l', default=None,
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
              help='Log level')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
@click.pass_context
def cli(ctx, config, log_level, verbose):
    """SpecGen job orchestrator CLI"""

    ctx.ensure_object(dict)

    try:
        settings = load_config(config)
    except JobOrchestratorError as e:
        click.echo(f"Error loading configuration: {e.message}", err=True)
        sys.exit(1)

    if log_level:
        settings.logging.level = log_level.upper()
    if verbose:
        settings.logging.structured = False
    configure_logging(settings.logging)

    ctx.obj['settings'] = settings
    ctx.obj['verbose'] = verbose


@cli.group()
@click.pass_context
def job(ctx):
    """Job management commands"""
    pass


def _display_job(job_record: Job, verbose: bool):
    click.echo(f"Job ID: {job_record.job_id}")
    click.echo(f"Name: {job_record.job_name}")
    click.echo(f"Type: {job_record.job_type.value}")
    click.echo(f"Status: {job_record.status.value}")
    click.echo(f"Stage: {job_record.stage.value}")
    click.echo(f"Created: {job_record.created_at.isoformat()}")
    if job_record.completed_at:
        click.echo(f"Completed: {job_record.completed_at.isoformat()}")
    if job_record.actual_duration is not None:
        click.echo(f"Duration: {job_record.actual_duration}s (estimated {job_record.estimated_duration}s)")
    if job_record.artifact_ref:
        click.echo(f"Artifact: {job_record.artifact_ref}")
    if job_record.error_message:
        click.echo(f"Error: {job_record.error_message}")

    if job_record.output is not None and verbose:
        click.echo(json.dumps(job_record.output.to_dict(), indent=2, default=str))
    elif job_record.output is not None and job_record.output.kind == "plan":
        counts = job_record.output.document.counts()
        click.echo("Document: " + ", ".join(f"{name}={count}" for name, count in counts.items()))


async def _with_manager(ctx, action):
    manager: JobManager = build_job_manager(ctx.obj['settings'])
    await manager.start()
    try:
        return await action(manager)
    finally:
        await manager.stop()


@job.command('submit')
@click.argument('job_name')
@click.option('--type', 'job_type', type=click.Choice(JOB_TYPE_CHOICES), default='ears-spec', help='Type of job')
@click.option('--user', 'user_id', required=True, help='Owner of the job')
@click.option('--input', 'input_text', help='Requirement text')
@click.option('--input-file', type=click.Path(exists=True, dir_okay=False), help='File with the requirement text')
@click.option('--wait/--no-wait', default=True, help='Wait for the job to finish')
@click.option('--timeout', type=float, default=600.0, help='Seconds to wait for completion')
@click.pass_context
def submit_job(ctx, job_name, job_type, user_id, input_text, input_file, wait, timeout):
    """Submit a new generation job"""

    if bool(input_text) == bool(input_file):
        click.echo("Provide exactly one of --input or --input-file", err=True)
        sys.exit(2)

    requirements = input_text if input_text else Path(input_file).read_text(encoding="utf-8")

    async def _submit(manager: JobManager):
        created = await manager.create_job(user_id, job_name, job_type, requirements)
        click.echo("Job submitted successfully!")
        click.echo(f"Job ID: {created.job_id}")
        if not wait:
            return created
        finished = await manager.wait_for_job(created.job_id, timeout)
        _display_job(finished, ctx.obj['verbose'])
        return finished

    try:
        result = asyncio.run(_with_manager(ctx, _submit))
    except JobOrchestratorError as e:
        click.echo(f"Error submitting job: {e.message}", err=True)
        sys.exit(1)

    if wait and result.status.value == "FAILED":
        sys.exit(1)


@job.command('status')
@click.argument('job_id')
@click.pass_context
def job_status(ctx, job_id):
    """Get job status and details"""

    async def _status(manager: JobManager):
        return await manager.get_job(job_id)

    try:
        job_record = asyncio.run(_with_manager(ctx, _status))
    except JobOrchestratorError as e:
        click.echo(f"Error getting job status: {e.message}", err=True)
        sys.exit(1)

    _display_job(job_record, ctx.obj['verbose'])


@job.command('list')
@click.option('--user', 'user_id', required=True, help='Owner of the jobs')
@click.pass_context
def list_jobs(ctx, user_id):
    """List a user's jobs, most recent first"""

    async def _list(manager: JobManager):
        return await manager.list_jobs_for_user(user_id)

    try:
        jobs = asyncio.run(_with_manager(ctx, _list))
    except JobOrchestratorError as e:
        click.echo(f"Error listing jobs: {e.message}", err=True)
        sys.exit(1)

    if not jobs:
        click.echo("No jobs found")
        return

    click.echo(f"{'Job ID':<38} {'Type':<18} {'Status':<10} {'Created':<26} Name")
    click.echo("-" * 110)
    for job_record in jobs:
        click.echo(
            f"{job_record.job_id:<38} {job_record.job_type.value:<18} {job_record.status.value:<10} "
            f"{job_record.created_at.isoformat():<26} {job_record.job_name}"
        )


@cli.command('extract')
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.option('--format', 'output_format', type=click.Choice(['json', 'summary']), default='json',
              help='Output format')
def extract_file(file, output_format):
    """Extract the structured document from a markdown file"""

    document = extract(Path(file).read_text(encoding="utf-8"))

    if output_format == 'json':
        click.echo(json.dumps(document.to_dict(), indent=2, ensure_ascii=False))
        return

    for name, count in document.counts().items():
        click.echo(f"{name}: {count}")
    for section in document.sections:
        click.echo(f"  [{section.order}] {section.title}")
    for diagram in document.diagrams:
        click.echo(f"  diagram ({diagram.notation}, {diagram.category.value}): {diagram.title}")
    for template in document.code_templates:
        framework = f", {template.framework}" if template.framework else ""
        click.echo(f"  code ({template.language}, {template.category.value}{framework}): {template.title}")


def main(argv: Optional[list] = None):
    """Main CLI entry point"""
    cli(args=argv)


if __name__ == '__main__':
    main()
