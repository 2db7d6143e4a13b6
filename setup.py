"""
Setup script for the landing-page-pipeline project.

Allows development installation with `pip install -e .`
"""

from pathlib import Path

from setuptools import setup, find_namespace_packages

version_ns = {}
exec((Path(__file__).parent / "version.py").read_text(), version_ns)

setup(
    name="landing-page-pipeline",
    version=version_ns["__version__"],
    # src/ is a namespace directory: imports look like `from src.landing_page import ...`
    packages=find_namespace_packages(include=["src", "src.*"]),
    py_modules=["version"],
    python_requires=">=3.11",
    install_requires=[
        "langchain-core>=0.3",
        "langchain-openai>=0.2",
        "langchain-anthropic>=0.2",
        "pydantic>=2.5",
        "tenacity>=8.2",
        "python-dotenv>=1.0",
        "json-repair>=0.25",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
