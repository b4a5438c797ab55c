"""
Setup script for the SpecGen Job Orchestrator

Job orchestration and content-extraction core for generated requirements
documents: EARS specifications, user stories and multi-part integration plans.
"""

from setuptools import setup, find_packages
import pathlib

here = pathlib.Path(__file__).parent.resolve()

# Get the long description from the README file
try:
    long_description = (here / "README.md").read_text(encoding="utf-8")
except FileNotFoundError:
    long_description = """
    SpecGen Job Orchestrator

    Job orchestration and content-extraction core for generated requirements
    documents: EARS specifications, user stories and multi-part integration plans.
    """

setup(
    name="specgen-job-orchestrator",
    version="1.0.0",
    description="Job orchestration and structured extraction for generated specification documents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="SpecGen Team",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Topic :: Text Processing :: Markup :: Markdown",
    ],
    keywords="job orchestration, fan-out, markdown extraction, requirements, async",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        # Core dependencies
        "asyncpg>=0.27.0",
        "click>=8.0.0",
        "typing-extensions>=4.0.0",

        # Additional async and networking
        "aiofiles>=23.1.0",
        "httpx>=0.24.0",

        # Configuration and serialization
        "pyyaml>=6.0",
        "pydantic>=2.0.0",
        "pydantic-settings>=2.2.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.10.0",
            "mypy>=1.0.0",
            "coverage>=6.0.0",
            "flake8>=5.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "specgen=specgen_orchestrator.cli.main:main",
        ],
    },
)
