import os

from flask import Flask, jsonify
from supabase import create_client
from werkzeug.exceptions import HTTPException, MethodNotAllowed

from .api import api_bp
from .api.helpers import CORS_HEADERS, method_not_allowed, registered_methods
from .logging_config import configure_logging

_ENVIRONMENT_KEYS = (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_ANON_KEY",
    "LOG_LEVEL",
    "LOG_LEVELS",
)


def create_app(test_config=None):
    app = Flask(__name__)

    for key in _ENVIRONMENT_KEYS:
        app.config[key] = os.environ.get(key)
    if test_config:
        app.config.update(test_config)

    configure_logging(app)

    supabase = None
    supabase_url = app.config.get("SUPABASE_URL")
    supabase_key = app.config.get("SUPABASE_SERVICE_KEY")
    if supabase_url and supabase_key:
        supabase = create_client(supabase_url, supabase_key)
    else:
        app.logger.warning(
            "SUPABASE_URL or SUPABASE_SERVICE_KEY missing; API data operations will fail."
        )
    app.config["SUPABASE"] = supabase

    app.register_blueprint(api_bp)

    @app.errorhandler(HTTPException)
    def json_http_error(exc):
        # Reached only for requests no API view dispatched, e.g. unknown paths
        # or methods outside the routed set.
        allowed = registered_methods() if isinstance(exc, MethodNotAllowed) else None
        if allowed:
            response = method_not_allowed(allowed)
        else:
            response = exc.get_response()
            response.data = jsonify({"error": exc.description}).get_data()
            response.content_type = "application/json"
        response.headers.update(CORS_HEADERS)
        return response

    return app
