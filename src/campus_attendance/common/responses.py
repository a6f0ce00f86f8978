"""JSON envelope shared by every endpoint.

Shape: {success, message, data?, error?, pagination?}
"""

from __future__ import annotations

from typing import Any, Optional

from flask import jsonify

from .pagination import Page


def success(message: str, data: Any = None, status: int = 200, *, page: Optional[Page] = None):
    body: dict[str, Any] = {"success": True, "message": message, "data": data}
    if page is not None:
        body["pagination"] = page.meta()
    return jsonify(body), status


def failure(message: str, status: int = 400, *, error: Any = None, errors: Optional[list] = None):
    body: dict[str, Any] = {"success": False, "message": message, "error": error}
    if errors:
        body["errors"] = errors
    return jsonify(body), status
