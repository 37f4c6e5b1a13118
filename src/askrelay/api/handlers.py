"""Route handlers for askrelay endpoints."""
import time

from flask import g, jsonify, request
from pydantic import ValidationError
from werkzeug.exceptions import HTTPException

from ..utils.http import reply_response
from ..utils.logging import log_event
from ..utils.text import brand_swap, truncate_message
from .schemas import AskRequest


def _read_body():
    """JSON body, or form fields for clients that post urlencoded data."""
    data = request.get_json(silent=True)
    if data is None and request.form:
        data = request.form.to_dict()
    return data


def register_routes(app, settings, caller):
    """Register Flask routes on the app."""
    brand = settings.brand_name

    def _reply(text: str, status: int = 200):
        return reply_response(brand_swap(text, brand, settings.vendor_names), status)

    @app.route('/', methods=['GET'])
    def index():
        return f"{brand} backend OK", 200, {"Content-Type": "text/plain; charset=utf-8"}

    @app.route('/ask', methods=['POST'])
    def ask():
        try:
            data = _read_body()
            if not isinstance(data, dict):
                return _reply(f"{brand}: send the message field as text.", 400)
            try:
                payload = AskRequest.model_validate(data)
            except ValidationError:
                return _reply(f"{brand}: send the message field as text.", 400)

            message = truncate_message(payload.message, settings.max_message_chars)
            reply = caller.ask(message)
            return _reply(reply)
        except HTTPException:
            raise
        except Exception as e:
            log_event(40, "ask_error", error=str(e), request_id=getattr(g, "request_id", ""))
            return _reply(f"{brand}: server error", 500)

    @app.route('/healthz', methods=['GET'])
    def health():
        errors = settings.validate()
        status = "ok" if not errors else "warn"
        if request.args.get("verbose") != "1":
            return jsonify({"status": status})
        return jsonify(
            {
                "status": status,
                "uptime_seconds": int(time.time() - app.config.get("APP_STARTED_AT", time.time())),
                "version": settings.app_version,
                "providers": [provider.name for provider in caller.providers],
                "config_errors": errors,
            }
        )

    @app.route('/version', methods=['GET'])
    def version():
        return jsonify({"version": settings.app_version})

    @app.errorhandler(404)
    def handle_not_found(error):
        return reply_response("Not found", 404)

    @app.errorhandler(405)
    def handle_method_not_allowed(error):
        return reply_response("Method not allowed", 405)

    @app.errorhandler(413)
    def handle_payload_too_large(error):
        return reply_response(f"{brand}: message too large", 413)

    @app.errorhandler(500)
    def handle_internal_error(error):
        log_event(40, "internal_error", error=str(error), request_id=getattr(g, "request_id", ""))
        return reply_response(f"{brand}: server error", 500)
