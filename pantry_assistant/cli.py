"""Command-line interface for the pantry assistant.

Provides subcommands to chat with the list agent, print the shopping
list, manage pantry stock, walk a recipe through the shortfall flow,
and serve the JSON API.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from pantry_assistant.agent import AgentFailed, NeedsClarification
from pantry_assistant.claude_utils import make_anthropic_client
from pantry_assistant.clarification import ClarificationFlow, FlowState
from pantry_assistant.list_store import ListStore
from pantry_assistant.models import Recipe
from pantry_assistant.pantry_store import PantryStore
from pantry_assistant.service import PantryAssistant
from pantry_assistant.session import ConversationSession

if TYPE_CHECKING:
    from pantry_assistant.config import Config
    from pantry_assistant.models import ListItem, PantryEntry

logger = logging.getLogger(__name__)

_EXIT_WORDS = frozenset({"exit", "quit", "q"})


# ------------------------------------------------------------------
# Config + dependency bootstrap
# ------------------------------------------------------------------


def _load_config_safe() -> Config | None:
    """Load application config, returning None on failure.

    Returns:
        Config instance or None if loading fails.
    """
    from pantry_assistant.config import ConfigError, load_config

    try:
        return load_config()
    except ConfigError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return None


def _build_assistant(cfg: Config) -> PantryAssistant:
    """Wire a PantryAssistant from configuration.

    Args:
        cfg: Application configuration.

    Returns:
        Ready-to-use assistant.
    """
    client = make_anthropic_client(cfg.anthropic_api_key)
    return PantryAssistant.from_config(cfg, client)


# ------------------------------------------------------------------
# Output formatting
# ------------------------------------------------------------------


def _format_quantity(quantity: float) -> str:
    """Format a quantity without a trailing ``.0``."""
    return f"{quantity:g}"


def _format_list(items: list[ListItem]) -> str:
    """Format the shopping list grouped by category.

    Args:
        items: Shopping list rows.

    Returns:
        Formatted list string.
    """
    if not items:
        return "Shopping list is empty."

    by_category: dict[str, list[ListItem]] = {}
    for item in items:
        by_category.setdefault(item.category.value, []).append(item)

    lines: list[str] = []
    for category in sorted(by_category):
        lines.append(f"{category}:")
        for item in by_category[category]:
            mark = "x" if item.is_completed else " "
            line = (
                f"  [{mark}] {item.name:<24} "
                f"{_format_quantity(item.quantity)} {item.unit.value}"
            )
            if item.priority.value != "medium":
                line += f"  ({item.priority.value})"
            lines.append(line)
    return "\n".join(lines)


def _format_pantry(entries: list[PantryEntry]) -> str:
    """Format pantry entries one per line.

    Args:
        entries: Pantry entries.

    Returns:
        Formatted pantry string.
    """
    if not entries:
        return "Pantry is empty."
    return "\n".join(
        f"{entry.name:<24} {_format_quantity(entry.quantity)} x "
        f"{_format_quantity(entry.unit_amount)} {entry.unit}".rstrip()
        for entry in entries
    )


def _load_recipe(path: str) -> Recipe | None:
    """Read a recipe JSON file.

    Args:
        path: Path to a JSON file with ``id``, ``name``, ``ingredients``.

    Returns:
        Parsed Recipe, or None after printing an error.
    """
    try:
        data = json.loads(Path(path).read_text())
        return Recipe.model_validate(data)
    except (OSError, json.JSONDecodeError, ValidationError) as exc:
        print(f"Could not read recipe {path}: {exc}", file=sys.stderr)
        return None


# ------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------


def _handle_chat(args: argparse.Namespace) -> int:
    """Handle the ``chat`` subcommand: a REPL over one conversation.

    Args:
        args: Parsed arguments with ``user``.

    Returns:
        Exit code.
    """
    cfg = _load_config_safe()
    if cfg is None:
        return 1
    assistant = _build_assistant(cfg)
    session = ConversationSession(owner_id=args.user)
    print("Tell me what to change on your list (type 'exit' to quit).")

    while True:
        try:
            text = input("> ").strip()
        except EOFError:
            break
        if not text:
            continue
        if text.lower() in _EXIT_WORDS:
            break
        outcome = assistant.agent.submit(session, text)
        if isinstance(outcome, NeedsClarification):
            print(outcome.question)
        elif isinstance(outcome, AgentFailed):
            print(f"Error: {outcome.message}")
        else:
            print(outcome.message)
    return 0


def _handle_list(args: argparse.Namespace) -> int:
    """Handle the ``list`` subcommand.

    Args:
        args: Parsed arguments with ``user`` and ``open_only``.

    Returns:
        Exit code.
    """
    cfg = _load_config_safe()
    if cfg is None:
        return 1
    items = ListStore(cfg.database_path).list_items(
        args.user, include_completed=not args.open_only
    )
    print(_format_list(items))
    return 0


def _handle_pantry(args: argparse.Namespace) -> int:
    """Handle the ``pantry`` subcommand and its actions.

    Args:
        args: Parsed arguments with ``pantry_action``.

    Returns:
        Exit code.
    """
    cfg = _load_config_safe()
    if cfg is None:
        return 1
    store = PantryStore(cfg.database_path)

    if args.pantry_action == "add":
        entry = store.add_item(
            args.user,
            args.name,
            args.quantity,
            unit_amount=args.unit_amount,
            unit=args.unit,
        )
        print(f"Added {entry.name} to the pantry.")
        return 0
    if args.pantry_action == "remove":
        if not store.remove_item(args.user, args.item_id):
            print(f"No pantry item with id {args.item_id}.", file=sys.stderr)
            return 1
        print("Removed.")
        return 0

    print(_format_pantry(store.list_all(args.user)))
    return 0


def _handle_cook(args: argparse.Namespace) -> int:
    """Handle the ``cook`` subcommand: run a recipe through the flow.

    Args:
        args: Parsed arguments with ``recipe`` (a JSON path) and ``user``.

    Returns:
        Exit code (0 on success, 1 on error or cancel).
    """
    cfg = _load_config_safe()
    if cfg is None:
        return 1
    recipe = _load_recipe(args.recipe)
    if recipe is None:
        return 1

    assistant = _build_assistant(cfg)
    flow = ClarificationFlow(
        args.user,
        recipe,
        assistant.matcher,
        assistant.agent,
        assistant.pantry_store,
        max_rounds=cfg.round_limit,
    )
    print(f"Checking your pantry for {recipe.name}...")
    flow.start()

    while not flow.is_terminal:
        if flow.state == FlowState.NEEDS_SHORTFALL_REVIEW:
            print("You're missing:")
            for item in flow.shortfall:
                detail = (
                    "not in pantry"
                    if item.shortfall is None
                    else f"short by {item.shortfall}"
                )
                print(f"  - {item.name} ({detail})")
            reply = input("Add these to your shopping list? [y/N] ").strip().lower()
            if reply not in ("y", "yes"):
                print("Cancelled.")
                return 1
            flow.confirm_add_to_list()
        elif flow.state == FlowState.NEEDS_USER_CONTEXT:
            print(flow.question)
            answer = input("> ").strip()
            if not answer or answer.lower() in _EXIT_WORDS:
                print("Cancelled.")
                return 1
            flow.answer(answer)

    if flow.state == FlowState.TERMINAL_ERROR:
        print(f"Error: {flow.message}", file=sys.stderr)
        return 1
    print(flow.message)
    return 0


def _handle_serve(args: argparse.Namespace) -> int:
    """Handle the ``serve`` subcommand: run the JSON API.

    Args:
        args: Parsed arguments (unused).

    Returns:
        Exit code.
    """
    cfg = _load_config_safe()
    if cfg is None:
        return 1

    from pantry_assistant.app import create_app

    app = create_app(_build_assistant(cfg))
    app.run(port=cfg.flask_port, debug=cfg.flask_debug)
    return 0


# ------------------------------------------------------------------
# Argument parser
# ------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser with all subcommands.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="pantry-assistant",
        description="Pantry assistant: shopping list agent and recipe checks.",
    )
    parser.add_argument(
        "--user",
        default="local",
        help="Owner id to act as (default: local)",
    )
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("chat", help="Edit your shopping list in plain English")

    list_parser = subparsers.add_parser("list", help="Show your shopping list")
    list_parser.add_argument(
        "--open-only",
        action="store_true",
        help="Hide items that are already checked off",
    )

    _add_pantry_parser(subparsers)

    cook_parser = subparsers.add_parser(
        "cook",
        help="Check a recipe against your pantry and fill the gaps",
    )
    cook_parser.add_argument("recipe", help="Path to a recipe JSON file")

    subparsers.add_parser("serve", help="Run the JSON API")

    return parser


def _add_pantry_parser(
    subparsers: argparse._SubParsersAction[argparse.ArgumentParser],
) -> None:
    """Add the ``pantry`` subcommand.

    Args:
        subparsers: Subparser collection to extend.
    """
    pantry_parser = subparsers.add_parser("pantry", help="Manage pantry stock")
    pantry_sub = pantry_parser.add_subparsers(dest="pantry_action")

    pantry_sub.add_parser("show", help="List pantry contents")

    add_parser = pantry_sub.add_parser("add", help="Add a pantry item")
    add_parser.add_argument("name", help="Item name")
    add_parser.add_argument("quantity", type=float, help="Units on hand")
    add_parser.add_argument(
        "--unit-amount",
        type=float,
        default=1.0,
        help="Amount in one unit (default: 1)",
    )
    add_parser.add_argument("--unit", default="", help="Unit of the unit amount")

    remove_parser = pantry_sub.add_parser("remove", help="Remove a pantry item")
    remove_parser.add_argument("item_id", help="Pantry item id")


def main(argv: list[str] | None = None) -> None:
    """Run the CLI application.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    exit_code = _dispatch(args)
    sys.exit(exit_code)


def _dispatch(args: argparse.Namespace) -> int:
    """Dispatch a parsed command to the appropriate handler.

    Args:
        args: Parsed command-line arguments.

    Returns:
        Exit code from the handler.
    """
    command: str = args.command
    if command == "chat":
        return _handle_chat(args)
    if command == "list":
        return _handle_list(args)
    if command == "pantry":
        return _handle_pantry(args)
    if command == "cook":
        return _handle_cook(args)
    if command == "serve":
        return _handle_serve(args)
    return 1  # pragma: no cover
