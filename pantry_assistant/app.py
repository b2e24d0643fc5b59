"""Flask JSON API for the pantry assistant.

Exposes the list agent, the shopping list, and the recipe flow to the
mobile app. Authentication is handled upstream; the authenticated user
id arrives in the ``X-User-Id`` header and scopes every request.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from flask import Flask, abort, current_app, jsonify, request
from pydantic import ValidationError

from pantry_assistant.errors import AssistantError, ErrorKind
from pantry_assistant.models import Recipe

if TYPE_CHECKING:
    from werkzeug.wrappers import Response

    from pantry_assistant.service import PantryAssistant

logger = logging.getLogger(__name__)

_ERROR_STATUS = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.MODEL: 502,
}

OWNER_HEADER = "X-User-Id"


def create_app(assistant: PantryAssistant) -> Flask:
    """Create and configure the Flask application.

    Args:
        assistant: The wired assistant that serves every request.

    Returns:
        Configured Flask application instance.
    """
    app = Flask(__name__)
    app.extensions["pantry_assistant"] = assistant

    _register_error_handlers(app)
    _register_routes(app)

    return app


def _assistant() -> PantryAssistant:
    assistant: PantryAssistant = current_app.extensions["pantry_assistant"]
    return assistant


def _owner_id() -> str:
    """Return the authenticated user id or abort with 401."""
    owner_id = request.headers.get(OWNER_HEADER, "").strip()
    if not owner_id:
        abort(401)
    return owner_id


def _json_body() -> dict[str, Any]:
    """Return the request's JSON object or abort with 400."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400)
    return data


def _parse_recipe(data: dict[str, Any]) -> Recipe:
    try:
        return Recipe.model_validate(data.get("recipe"))
    except ValidationError:
        abort(400)


def _register_error_handlers(app: Flask) -> None:
    """Register JSON error responses.

    Args:
        app: Flask application instance.
    """

    @app.errorhandler(400)
    def bad_request(error: Exception) -> tuple[Response, int]:
        return jsonify({"status": "error", "message": "Bad Request"}), 400

    @app.errorhandler(401)
    def unauthorized(error: Exception) -> tuple[Response, int]:
        return jsonify({"status": "error", "message": "Not signed in"}), 401

    @app.errorhandler(404)
    def not_found(error: Exception) -> tuple[Response, int]:
        return jsonify({"status": "error", "message": "Not Found"}), 404

    @app.errorhandler(AssistantError)
    def assistant_error(error: AssistantError) -> tuple[Response, int]:
        status = _ERROR_STATUS.get(error.kind, 500)
        logger.error("Request failed (%s): %s", error.kind, error.message)
        return (
            jsonify(
                {"status": "error", "message": error.message, "kind": error.kind.value}
            ),
            status,
        )


def _register_routes(app: Flask) -> None:
    """Register all application routes.

    Args:
        app: Flask application instance.
    """
    _register_command_routes(app)
    _register_list_routes(app)
    _register_recipe_routes(app)


def _register_command_routes(app: Flask) -> None:
    """Register list-agent conversation routes.

    Args:
        app: Flask application instance.
    """

    @app.route("/api/command", methods=["POST"])
    def command() -> Response:
        """Run one agent round in the caller's session."""
        owner_id = _owner_id()
        data = _json_body()
        session_id = str(data.get("session_id", "")).strip()
        text = str(data.get("text", "")).strip()
        if not session_id or not text:
            abort(400)
        response = _assistant().submit_command(owner_id, session_id, text)
        return jsonify(response.to_dict())

    @app.route("/api/sessions/<session_id>", methods=["DELETE"])
    def end_session(session_id: str) -> tuple[Response, int]:
        """Discard a conversation."""
        owner_id = _owner_id()
        if not _assistant().end_session(owner_id, session_id):
            abort(404)
        return jsonify({"status": "ok"}), 200


def _register_list_routes(app: Flask) -> None:
    """Register shopping list routes.

    Args:
        app: Flask application instance.
    """

    @app.route("/api/list")
    def shopping_list() -> Response:
        """Return the caller's shopping list."""
        owner_id = _owner_id()
        include_completed = request.args.get("completed", "true").lower() != "false"
        items = _assistant().list_store.list_items(owner_id, include_completed)
        return jsonify({"items": [item.model_dump(mode="json") for item in items]})

    @app.route("/api/list/<item_id>/complete", methods=["POST"])
    def complete_item(item_id: str) -> Response:
        """Check or uncheck one of the caller's list rows."""
        owner_id = _owner_id()
        data = request.get_json(silent=True) or {}
        completed = bool(data.get("completed", True))
        if not _assistant().list_store.set_completed(owner_id, item_id, completed):
            abort(404)
        return jsonify({"status": "ok"})


def _register_recipe_routes(app: Flask) -> None:
    """Register recipe feasibility routes.

    Args:
        app: Flask application instance.
    """

    @app.route("/api/recipes/feasibility", methods=["POST"])
    def feasibility() -> tuple[Response, int]:
        """Check whether the caller can cook a recipe right now."""
        owner_id = _owner_id()
        recipe = _parse_recipe(_json_body())
        try:
            verdict = _assistant().check_recipe_feasibility(owner_id, recipe)
        except AssistantError as exc:
            logger.warning("Feasibility check failed (%s): %s", exc.kind, exc.message)
            return (
                jsonify(
                    {"status": "error", "message": exc.message, "kind": exc.kind.value}
                ),
                502,
            )
        return jsonify(verdict.model_dump(mode="json")), 200

    @app.route("/api/recipes/shortfall", methods=["POST"])
    def shortfall() -> Response:
        """Advance the caller's shortfall flow for a recipe."""
        owner_id = _owner_id()
        data = _json_body()
        recipe = _parse_recipe(data)
        answer = data.get("answer")
        response = _assistant().resolve_shortfall(
            owner_id, recipe, str(answer) if answer else None
        )
        return jsonify(response.to_dict())

    @app.route("/api/recipes/<recipe_id>/shortfall", methods=["DELETE"])
    def cancel_shortfall(recipe_id: str) -> tuple[Response, int]:
        """Abandon the caller's open flow for a recipe."""
        owner_id = _owner_id()
        _assistant().discard_flow(owner_id, recipe_id)
        return jsonify({"status": "ok"}), 200
