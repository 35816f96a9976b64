#!/usr/bin/env python3
"""
LLM Race Bench - Main Entry Point

A tool for racing Large Language Models head to head: every model answers the
same rounds concurrently under a per-request timeout and a whole-race time
budget, and is ranked on accuracy and speed.

This is the main entry point for the race tool. It imports and runs the CLI
interface from the llm_race_bench package.

Quick Examples:
    # Offline demo with random baselines
    python main.py --preset baseline

    # Crossword sprint with OpenAI and Anthropic models
    export OPENAI_API_KEY=your-api-key
    export ANTHROPIC_API_KEY=your-api-key
    python main.py --models gpt-5-mini,claude-haiku-4.5 --example tech-challenge

    # Wordle race
    python main.py --wordle crane --preset baseline

Installation:
    pip install -e ".[all]"
"""

import sys
from pathlib import Path

# Load environment variables from .env file
try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    # dotenv is optional
    pass

# Add the project root to the Python path so we can import our package
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

try:
    # Import the main CLI function from our package
    from llm_race_bench.cli import main
except ImportError as e:
    print(f"Error importing llm_race_bench package: {e}", file=sys.stderr)
    print("\nInstall the package in development mode:", file=sys.stderr)
    print("  pip install -e .", file=sys.stderr)
    sys.exit(1)

if __name__ == "__main__":
    sys.exit(main())
