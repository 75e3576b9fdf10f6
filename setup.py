#!/usr/bin/env python
"""
Setup script for notemind
Hybrid retrieval and context assembly for a notes knowledge base
"""
import re
from pathlib import Path

from setuptools import setup, find_packages

this_directory = Path(__file__).parent

# Read the README file
readme = this_directory / "README.md"
long_description = readme.read_text(encoding="utf-8") if readme.exists() else ""

# Read version from the package
init_text = (this_directory / "src" / "notemind" / "__init__.py").read_text(encoding="utf-8")
version = re.search(r'^__version__ = "([^"]+)"', init_text, re.MULTILINE).group(1)


setup(
    name="notemind",
    version=version,
    description="Hybrid keyword and semantic retrieval with validated, budgeted LLM context",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Text Processing :: Indexing",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.6.0",
        "loguru>=0.7.2",
        "pyyaml>=6.0.0",
        "numpy>=1.26.0",
        "aiohttp>=3.9.0",
        "weaviate-client>=3.26.7,<4.0.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.4.0",
            "pytest-asyncio>=0.23.0",
            "pytest-cov>=5.0.0",
            "types-pyyaml>=6.0.12",
        ],
    },
    include_package_data=True,
    package_data={
        "notemind": [
            "**/*.yaml",
            "**/*.yml",
        ],
    },
)
