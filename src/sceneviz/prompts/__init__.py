"""Prompt loader for sceneviz.

System prompts and few-shot examples are stored as .md files in this
directory and loaded at runtime.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

# Directory containing prompt files
PROMPTS_DIR = Path(__file__).parent

_EXAMPLE_TOPICS = [
    (("photosynthesis", "plant", "chloroplast"), "example_photosynthesis"),
    (("solar", "planet", "orbit", "sun"), "example_solar_system"),
    (("newton", "motion", "force", "gravity"), "example_newton"),
]

# Topics whose scenes need the larger output budget.
COMPLEX_TOPICS = ("photosynthesis", "solar system", "water cycle")


@lru_cache(maxsize=32)
def load_prompt(name: str) -> str:
    """Load a prompt from a .md file.

    Args:
        name: Name of the prompt file (without .md extension)

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    prompt_path = PROMPTS_DIR / f"{name}.md"
    if not prompt_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

    content = prompt_path.read_text(encoding="utf-8").strip()
    logger.debug("Loaded prompt '%s' (%d chars)", name, len(content))
    return content


def load_prompt_with_vars(name: str, **variables) -> str:
    """Load a prompt and substitute ``{var_name}`` placeholders."""
    content = load_prompt(name)
    if variables:
        content = content.format(**variables)
    return content


def clear_cache() -> None:
    load_prompt.cache_clear()


def example_for(question: str) -> str:
    """Few-shot example matching the question's topic."""
    q = question.lower()
    for keywords, name in _EXAMPLE_TOPICS:
        if any(k in q for k in keywords):
            return load_prompt(name)
    return load_prompt("example_generic")


def get_visualization_system(question: str, width: int = 800, height: int = 500) -> str:
    """System prompt (persona, task, context, format) with a topical example."""
    return load_prompt_with_vars(
        "visualization_system",
        width=width,
        height=height,
        examples=example_for(question),
    )


def get_user_prompt(question: str) -> str:
    return load_prompt_with_vars("visualization_user", question=question)


def is_complex_topic(question: str) -> bool:
    q = question.lower()
    return any(topic in q for topic in COMPLEX_TOPICS)
