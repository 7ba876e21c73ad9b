from flask import request

from Utils.appError import AppError


def json_body() -> dict:
    """Parsed JSON body; an empty or missing body reads as {}."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise AppError("Request body must be a JSON object.", 400)
    return data
