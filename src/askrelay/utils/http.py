"""HTTP helpers and reply payloads."""
from flask import jsonify, request


def get_client_ip() -> str:
    """Resolve client IP with basic X-Forwarded-For support."""
    forwarded_for = request.headers.get("X-Forwarded-For", "")
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    return request.remote_addr or "unknown"


def reply_response(text: str, status: int = 200):
    """Return the `{"reply": ...}` payload every /ask outcome uses."""
    return jsonify({"reply": text}), status
