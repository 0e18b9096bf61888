"""
Dairy Sustainability Reporting Portal
Blueprint registry.
"""

from flask import request


def request_payload() -> dict:
    """Return the request body as a dict.

    File-carrying endpoints post ``multipart/form-data``; the rest post
    JSON.  Both arrive here as a plain dict.
    """
    if request.files or request.form:
        return request.form.to_dict()
    return request.get_json(silent=True) or {}
