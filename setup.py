#!/usr/bin/env python3
"""
Setup script for LLM Race Bench.

A tool for racing Large Language Models head to head on crossword clues and
Wordle, scoring accuracy and speed under a per-request and per-race time limit.
"""

from pathlib import Path
from setuptools import setup, find_packages

# Read the contents of README file
this_directory = Path(__file__).parent
long_description = (this_directory / "README.md").read_text(encoding='utf-8') if (this_directory / "README.md").exists() else ""

# Read version from package
version_file = this_directory / "llm_race_bench" / "__init__.py"
version = "0.3.0"  # Default version
if version_file.exists():
    with open(version_file, encoding='utf-8') as f:
        for line in f:
            if line.startswith('__version__'):
                version = line.split('=')[1].strip().strip('"').strip("'")
                break

setup(
    name="llm-race-bench",
    version=version,
    description="Race LLMs head to head on crossword clues and Wordle",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="LLM Race Bench Team",

    # Package discovery
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",

    # Dependencies
    install_requires=[
        "rich>=13.0.0",
    ],

    # Optional dependencies
    extras_require={
        "openai": ["openai>=1.0.0"],
        "anthropic": ["anthropic>=0.30.0"],
        "gemini": ["google-generativeai>=0.5.0"],
        "dotenv": ["python-dotenv>=1.0.0"],
        "all": [
            "openai>=1.0.0",
            "anthropic>=0.30.0",
            "google-generativeai>=0.5.0",
            "python-dotenv>=1.0.0",
        ],
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "mypy>=1.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "isort>=5.0.0",
        ],
    },

    # Entry points for CLI
    entry_points={
        "console_scripts": [
            "llm-race-bench=llm_race_bench.cli:main",
        ],
    },

    # Classifiers
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Framework :: AsyncIO",
    ],

    # Keywords
    keywords=[
        "llm",
        "benchmark",
        "latency",
        "crossword",
        "wordle",
        "openai",
        "anthropic",
        "gemini",
        "evaluation",
    ],

    zip_safe=False,

    # Test configuration
    test_suite="tests",
)
