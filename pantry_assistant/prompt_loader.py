"""Prompt templates for the list agent and the feasibility check.

Templates live as ``.txt`` files next to this module and use
``str.format`` placeholders. Template text is read once per process.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

PROMPTS_DIR = Path(__file__).parent / "prompts"


@lru_cache(maxsize=None)
def _read_template(name: str) -> str:
    template_path = PROMPTS_DIR / f"{name}.txt"
    if not template_path.is_file():
        raise FileNotFoundError(
            f"Prompt template not found: {name} (looked in {template_path})"
        )
    return template_path.read_text(encoding="utf-8")


def prompt_names() -> list[str]:
    """Return the names of all bundled templates, sorted."""
    return sorted(path.stem for path in PROMPTS_DIR.glob("*.txt"))


def load_prompt(name: str, **values: str) -> str:
    """Render the template ``name`` with ``values``.

    Substituted values are inserted verbatim, so braces inside user
    data (item names, notes) are safe.

    Args:
        name: Template name (without .txt extension).
        **values: Placeholder values.

    Returns:
        Rendered prompt string.

    Raises:
        FileNotFoundError: If the template doesn't exist.
        KeyError: If a placeholder has no value.
    """
    return _read_template(name).format(**values)
