"""Generic table-to-HTTP handlers shared by every resource endpoint.

Each ``handle_*`` helper performs one CRUD operation against a configured
Supabase table for the current request and returns a Flask response.  The
``with_*`` wrappers add the cross-origin headers, method guard and
last-resort error handling that every endpoint shares, and
``create_api_handler`` composes them around a method-to-handler mapping.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Iterable, Mapping

from flask import abort, current_app, jsonify, make_response, request
from werkzeug.exceptions import HTTPException

from config.supabase_schema import (
    column_name,
    default_values as configured_defaults,
    filter_columns,
    singular_name,
    table_columns,
)
from kyctrust.db import Queryer, delete_row, fetch_rows, insert_row, update_row

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Methods routed to the dispatcher so unregistered ones get a JSON 405.
ROUTE_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]

Handler = Callable[[], Any]


def _request_method() -> str:
    # HEAD is answered by the GET handler; werkzeug strips the body.
    if request.method == "HEAD":
        return "GET"
    return request.method


def method_not_allowed(methods: Iterable[str]):
    """Return a 405 response advertising ``methods`` in ``Allow``."""

    response = jsonify({"error": f"Method {request.method} Not Allowed"})
    response.status_code = 405
    response.headers["Allow"] = ", ".join(methods)
    return response


def with_cors(view: Callable) -> Callable:
    """Add permissive CORS headers and answer pre-flight requests."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if request.method == "OPTIONS":
            response = make_response("", 200)
        else:
            response = make_response(view(*args, **kwargs))
        response.headers.update(CORS_HEADERS)
        return response

    return wrapper


def with_error_handler(view: Callable) -> Callable:
    """Convert anything raised by ``view`` into the JSON error shape."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except HTTPException as exc:
            return jsonify({"error": exc.description}), exc.code or 500
        except Exception as exc:
            current_app.logger.exception("API Error: %s", exc)
            return (
                jsonify({"error": "Internal Server Error", "message": str(exc)}),
                500,
            )

    return wrapper


def with_method_guard(methods: Iterable[str]) -> Callable[[Callable], Callable]:
    """Reject requests whose method is not in ``methods`` with a 405."""

    allowed = [method.upper() for method in methods]

    def decorator(view: Callable) -> Callable:
        @wraps(view)
        def wrapper(*args, **kwargs):
            if _request_method() not in allowed:
                return method_not_allowed(allowed)
            return view(*args, **kwargs)

        wrapper.allowed_methods = tuple(allowed)
        return wrapper

    return decorator


def create_api_handler(handlers: Mapping[str, Handler]) -> Callable:
    """Build a view dispatching on the request method to ``handlers``."""

    registered = {method.upper(): handler for method, handler in handlers.items()}

    def dispatch(**kwargs):
        handler = registered.get(_request_method())
        if handler is None:
            return method_not_allowed(registered)
        return handler()

    view = with_cors(with_error_handler(dispatch))
    view.allowed_methods = tuple(registered)
    return view


def registered_methods() -> tuple[str, ...] | None:
    """Return the methods handled by the view matching the request path.

    Used when routing rejects a method before any view runs.
    """

    adapter = current_app.url_map.bind_to_environ(request.environ)
    try:
        endpoint, _ = adapter.match(method="OPTIONS")
    except HTTPException:
        return None
    view = current_app.view_functions.get(endpoint)
    return getattr(view, "allowed_methods", None)


def request_body() -> dict:
    """Return the JSON object sent with the request (``{}`` when absent)."""

    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        abort(400, description="Request body must be a JSON object")
    return payload


def build_patch(resource: str, body: Mapping[str, Any]) -> dict:
    """Restrict ``body`` to the fields ``resource`` knows about.

    The identifier is never accepted from callers; it is assigned by the
    backend and immutable afterwards.  Resources without a column mapping
    accept any other field.
    """

    columns = table_columns(resource)
    patch: dict = {}
    dropped: list[str] = []
    for key, value in body.items():
        if key == "id" or (columns and key not in columns):
            dropped.append(str(key))
            continue
        patch[key] = value
    if dropped:
        current_app.logger.warning(
            "Ignoring unsupported %s fields: %s", resource, ", ".join(sorted(dropped))
        )
    return patch


def filter_by_args(resource: str) -> Queryer:
    """Return a queryer adding an equality filter per matching query arg."""

    def queryer(query):
        for column in filter_columns(resource):
            value = request.args.get(column)
            if value not in (None, ""):
                query = query.eq(column_name(resource, column), value)
        return query

    return queryer


def handle_get(resource: str, queryer: Queryer | None = None):
    rows, error = fetch_rows(resource, queryer)
    if error:
        current_app.logger.error("Error fetching %s: %s", resource, error)
        return jsonify({"error": f"Failed to fetch {resource}"}), 500
    return jsonify({resource: rows}), 200


def handle_post(
    resource: str,
    body: Mapping[str, Any] | None = None,
    default_values: Mapping[str, Any] | None = None,
):
    """Insert a row built from the caller's fields over the defaults."""

    if body is None:
        body = build_patch(resource, request_body())
    if default_values is None:
        default_values = configured_defaults(resource)

    record = {**default_values, **body}
    row, error = insert_row(resource, record)
    if error:
        current_app.logger.error("Error creating %s: %s", resource, error)
        return jsonify({"error": f"Failed to create {resource}"}), 500

    return (
        jsonify(
            {
                "message": f"{resource} created successfully",
                singular_name(resource): row,
            }
        ),
        201,
    )


def handle_put(
    resource: str,
    body: Mapping[str, Any] | None = None,
    row_id: Any | None = None,
    load_body: Callable[[], Mapping[str, Any]] | None = None,
):
    """Patch the row named by ``row_id`` (or the ``id`` query argument).

    When ``body`` is not given it is read with ``load_body`` only after the
    row id has been checked.
    """

    if row_id in (None, ""):
        row_id = request.args.get("id")
    if not row_id:
        return jsonify({"error": f"{resource} ID is required"}), 400

    if body is None:
        if load_body is not None:
            body = load_body()
        else:
            body = build_patch(resource, request_body())
    if not body:
        return jsonify({"error": "No valid fields to update."}), 400

    row, error = update_row(resource, row_id, dict(body))
    if error:
        current_app.logger.error("Error updating %s %s: %s", resource, row_id, error)
        return jsonify({"error": f"Failed to update {resource}"}), 500

    if row is None:
        return jsonify({"error": f"{resource} not found"}), 404

    return (
        jsonify(
            {
                "message": f"{resource} updated successfully",
                singular_name(resource): row,
            }
        ),
        200,
    )


def handle_delete(resource: str):
    # Deleting an unknown id still succeeds; the backend reports no rows.
    row_id = request.args.get("id")
    if not row_id:
        return jsonify({"error": f"{resource} ID is required"}), 400

    _, error = delete_row(resource, row_id)
    if error:
        current_app.logger.error("Error deleting %s %s: %s", resource, row_id, error)
        return jsonify({"error": f"Failed to delete {resource}"}), 500

    return jsonify({"message": f"{resource} deleted successfully"}), 200
