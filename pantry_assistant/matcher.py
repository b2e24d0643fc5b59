"""Claude-powered recipe feasibility check against pantry stock.

:class:`IngredientMatcher` makes a single, non-conversational Claude
call that fuzzy-matches a recipe's ingredients to the pantry and
returns a :class:`FeasibilityVerdict`. The verdict is re-validated here
before anyone trusts it: staples are never reported as short, and a
verdict whose ``can_cook`` flag disagrees with its shortfall list is
rejected as a :class:`ContractViolation`.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pantry_assistant.claude_utils import (
    DEFAULT_MODEL,
    create_message,
    extract_json_text,
    parse_reply,
)
from pantry_assistant.errors import ContractViolation, ModelError
from pantry_assistant.models import FeasibilityVerdict, MissingReason
from pantry_assistant.prompt_loader import load_prompt

if TYPE_CHECKING:
    from collections.abc import Iterable

    from pantry_assistant.models import PantryEntry, Recipe

logger = logging.getLogger(__name__)

_MAX_TOKENS = 2048

DEFAULT_STAPLES: tuple[str, ...] = ("water",)

FEASIBILITY_TOOL_NAME = "report_feasibility"

FEASIBILITY_TOOL: dict[str, Any] = {
    "name": FEASIBILITY_TOOL_NAME,
    "description": "Report whether the recipe can be cooked from the pantry.",
    "input_schema": {
        "type": "object",
        "properties": {
            "can_cook": {
                "type": "boolean",
                "description": "True only when nothing is missing or short.",
            },
            "missing_or_insufficient": {
                "type": "array",
                "items": {
                    "type": "object",
                    "properties": {
                        "name": {"type": "string"},
                        "reason": {
                            "type": "string",
                            "enum": [r.value for r in MissingReason],
                        },
                        "shortfall": {
                            "type": ["string", "null"],
                            "description": (
                                "Gap in the recipe's units; null when missing."
                            ),
                        },
                    },
                    "required": ["name", "reason", "shortfall"],
                },
            },
        },
        "required": ["can_cook", "missing_or_insufficient"],
    },
}

# Claude sometimes echoes the camelCase names used in the app's UI.
_KEY_ALIASES = {
    "canCook": "can_cook",
    "missingOrInsufficient": "missing_or_insufficient",
}


def _normalize_staple(name: str) -> str:
    cleaned = name.strip().lower()
    if cleaned.endswith("s") and len(cleaned) > 3:
        cleaned = cleaned[:-1]
    return cleaned


def format_recipe_ingredients(recipe: Recipe) -> str:
    """Format recipe ingredients one per line for the prompt.

    Args:
        recipe: The recipe being checked.

    Returns:
        Bulleted ingredient lines with the required amount.
    """
    return "\n".join(
        f"- {ing.name} (needs: {ing.amount or 'unspecified'})"
        for ing in recipe.ingredients
    )


def format_pantry_contents(pantry: list[PantryEntry]) -> str:
    """Format a pantry snapshot for the prompt.

    Args:
        pantry: Current pantry entries.

    Returns:
        Bulleted pantry lines, or a placeholder when the pantry is empty.
    """
    if not pantry:
        return "- (pantry is empty)"
    return "\n".join(
        f"- ID: {entry.id}, Name: {entry.name}, Quantity: {entry.quantity:g}, "
        f"Unit: {entry.unit_amount:g} {entry.unit}".rstrip()
        for entry in pantry
    )


class IngredientMatcher:
    """Decide whether a recipe can be cooked from a pantry snapshot.

    Args:
        anthropic_client: Anthropic API client (typed as Any).
        staples: Ingredient names that are always available.
        model: Claude model identifier.
    """

    def __init__(
        self,
        anthropic_client: Any,
        staples: Iterable[str] = DEFAULT_STAPLES,
        model: str = DEFAULT_MODEL,
    ) -> None:
        """Initialize the matcher.

        Args:
            anthropic_client: Anthropic API client.
            staples: Ingredient names that are always available.
            model: Claude model identifier.
        """
        self._client = anthropic_client
        self._staples = tuple(staples)
        self._staple_keys = {_normalize_staple(s) for s in self._staples}
        self._model = model

    def check(self, recipe: Recipe, pantry: list[PantryEntry]) -> FeasibilityVerdict:
        """Compare a recipe with the pantry and return the verdict.

        Args:
            recipe: The recipe to cook.
            pantry: A fresh snapshot of the caller's pantry.

        Returns:
            A verdict whose ``can_cook`` flag agrees with its list.

        Raises:
            ModelError: If the Claude call fails or returns nothing usable.
            ContractViolation: If the verdict is malformed or inconsistent.
        """
        prompt = load_prompt(
            "recipe_feasibility",
            recipe_name=recipe.name,
            recipe_ingredients=format_recipe_ingredients(recipe),
            pantry_contents=format_pantry_contents(pantry),
            staples=", ".join(self._staples) if self._staples else "none",
        )
        response = create_message(
            self._client,
            model=self._model,
            max_tokens=_MAX_TOKENS,
            messages=[{"role": "user", "content": prompt}],
            tools=[FEASIBILITY_TOOL],
            tool_choice={"type": "tool", "name": FEASIBILITY_TOOL_NAME},
        )
        payload = self._extract_payload(response)
        verdict = self._validate(payload)
        return self._apply_staples(verdict, recipe)

    def is_staple(self, name: str) -> bool:
        """Check whether an ingredient name is on the staples allow-list."""
        return _normalize_staple(name) in self._staple_keys

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _extract_payload(self, response: Any) -> dict[str, Any]:
        """Pull the verdict object out of Claude's response.

        Prefers the forced tool call; falls back to JSON in a text block.

        Raises:
            ModelError: If the response holds no verdict.
        """
        reply = parse_reply(response)
        for call in reply.tool_calls:
            if call.name == FEASIBILITY_TOOL_NAME:
                return dict(call.args)

        if not reply.text:
            raise ModelError("The assistant returned an empty feasibility verdict.")
        try:
            data = json.loads(extract_json_text(reply.text))
        except json.JSONDecodeError as exc:
            logger.warning("Failed to parse feasibility verdict as JSON")
            raise ModelError("The assistant's verdict was not valid JSON.") from exc
        if not isinstance(data, dict):
            raise ModelError("The assistant's verdict was not a JSON object.")
        return data

    @staticmethod
    def _validate(payload: dict[str, Any]) -> FeasibilityVerdict:
        """Validate a raw verdict, mapping failures to ContractViolation."""
        normalized = {_KEY_ALIASES.get(key, key): value for key, value in payload.items()}
        try:
            return FeasibilityVerdict.model_validate(normalized)
        except ValidationError as exc:
            logger.error("Feasibility verdict broke its contract: %s", exc)
            raise ContractViolation(
                "The ingredient check returned an inconsistent result."
            ) from exc

    def _apply_staples(
        self,
        verdict: FeasibilityVerdict,
        recipe: Recipe,
    ) -> FeasibilityVerdict:
        """Drop staples from the shortfall list.

        If only staples were reported, the recipe is cookable.
        """
        kept = [
            item
            for item in verdict.missing_or_insufficient
            if not (item.reason == MissingReason.MISSING and self.is_staple(item.name))
        ]
        if len(kept) == len(verdict.missing_or_insufficient):
            return verdict
        logger.info(
            "Ignored %d staple(s) reported missing for %s",
            len(verdict.missing_or_insufficient) - len(kept),
            recipe.name,
        )
        return FeasibilityVerdict(can_cook=not kept, missing_or_insufficient=kept)
