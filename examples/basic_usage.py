"""
Basic usage example for the SpecGen Job Orchestrator

Runs one job of each type against the fake generation engine and in-memory
stores, then extracts a structured document from a markdown string directly.
"""

import asyncio

from specgen_orchestrator import (
    JobStatus,
    JobType,
    OrchestratorConfig,
    build_job_manager,
    extract
)

REQUIREMENTS = """
Customers can place orders from the web shop. Orders are paid by card through
the payment provider and shipped by the warehouse service. Customers receive
an email when their order ships.
"""


async def single_stage_example():
    """EARS specification and user stories: one generation call each."""
    print("Starting single-stage jobs")

    manager = build_job_manager(OrchestratorConfig())
    await manager.start()

    try:
        for job_type in (JobType.EARS_SPEC, JobType.USER_STORY):
            job = await manager.create_job("demo-user", f"Web shop {job_type.value}", job_type, REQUIREMENTS)
            print(f"Submitted {job_type.value}: {job.job_id}")

            finished = await manager.wait_for_job(job.job_id, timeout=60)
            print(f"  status={finished.status.value} artifact={finished.artifact_ref}")
            if finished.status == JobStatus.COMPLETED:
                print(f"  first line: {finished.output.content.splitlines()[0]}")

    finally:
        await manager.stop()


async def integration_plan_example():
    """Integration plan: three concurrent branches, then consolidation."""
    print("\nStarting integration plan job")

    manager = build_job_manager(OrchestratorConfig())
    await manager.start()

    try:
        job = await manager.create_job("demo-user", "Web shop integration", JobType.INTEGRATION_PLAN, REQUIREMENTS)
        finished = await manager.wait_for_job(job.job_id, timeout=120)

        print(f"Job {finished.job_id}: {finished.status.value} in {finished.actual_duration}s")
        if finished.status == JobStatus.COMPLETED:
            document = finished.output.document
            for section in document.sections:
                print(f"  [{section.order}] {section.title}")
            for diagram in document.diagrams:
                print(f"  diagram: {diagram.title} ({diagram.category.value})")
        else:
            print(f"  error: {finished.error_message}")

        history = await manager.list_jobs_for_user("demo-user")
        print(f"demo-user has {len(history)} job(s)")

    finally:
        await manager.stop()


def extraction_example():
    """Extraction is a pure function and can run without any job."""
    print("\nExtracting a structured document")

    markdown = """
### 4. Security Architecture and Authentication

Tokens are validated at the gateway.

```mermaid
sequenceDiagram
    Client->>Gateway: request with token
```
"""
    document = extract(markdown)
    print(f"  counts: {document.counts()}")
    print(f"  diagram category: {document.diagrams[0].category.value}")


if __name__ == "__main__":
    asyncio.run(single_stage_example())
    asyncio.run(integration_plan_example())
    extraction_example()
