from flask import jsonify, request
from pydantic import ValidationError


def parse_body(schema):
    """Validate the JSON body against a pydantic schema (raises ValidationError)."""
    return schema.model_validate(request.get_json(silent=True) or {})


def validation_error_response(error: ValidationError):
    return jsonify({
        "error": "Validation failed",
        "details": error.errors(include_url=False, include_context=False),
    }), 400
