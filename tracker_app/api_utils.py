"""
JSON envelope shared by every endpoint.

Success: ``{"success": true, "data": ..., "meta": {...}}``
Failure: ``{"success": false, "error": {"code": ..., "message": ...}}``
"""
from flask import jsonify, current_app


def api_success(data=None, meta=None, status=200):
    body = {"success": True, "data": {} if data is None else data, "meta": meta or {}}
    return jsonify(body), status


def api_error(code="error", message="", status=400):
    if status >= 500:
        current_app.logger.error("Request failed with %s (%s): %s", status, code, message)
    body = {"success": False, "error": {"code": code, "message": message}}
    return jsonify(body), status


def api_http_error(exc):
    """Render a Werkzeug HTTPException; the code is its snake_cased name, e.g. ``method_not_allowed``."""
    code = "_".join((exc.name or "error").lower().split())
    return api_error(code, exc.description or "", exc.code or 500)


def request_payload(req):
    """JSON body if present, otherwise the submitted form as a plain dict."""
    data = req.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return req.form.to_dict()
