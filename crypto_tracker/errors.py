"""Application-wide error types and the JSON error handlers."""

from __future__ import annotations

import logging
from typing import Any

from flask import Flask, jsonify

from crypto_tracker.domain import (
    DuplicateCurrencyError,
    DuplicatePriceError,
    InvalidSymbolError,
    NegativePriceError,
    NotTrackedError,
    PriceNotFoundError,
    StoreError,
    TimestampFutureError,
    TrackerError,
)
from crypto_tracker.providers import ProviderError

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base class for API-level errors."""

    status_code: int = 400
    code: str = "bad_request"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        code: str | None = None,
        payload: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.payload = payload or {}


class ValidationError(APIError):
    """Error raised for request payload validation failures."""

    status_code = 422
    code = "validation_error"


TRACKER_ERROR_STATUS: dict[type[TrackerError], int] = {
    InvalidSymbolError: 400,
    DuplicateCurrencyError: 409,
    NotTrackedError: 404,
    NegativePriceError: 422,
    TimestampFutureError: 422,
    DuplicatePriceError: 409,
    PriceNotFoundError: 404,
    StoreError: 503,
}

DEFAULT_STATUS_MESSAGES: dict[int, str] = {
    400: "Request could not be processed.",
    404: "Resource not found.",
    409: "Resource already exists.",
    422: "Submitted data is invalid.",
    502: "Upstream price source unavailable.",
    503: "Service temporarily unavailable. Please retry in a moment.",
}


def status_for(error: TrackerError) -> int:
    """Return the HTTP status for a domain error, walking its class hierarchy."""

    for klass in type(error).__mro__:
        status = TRACKER_ERROR_STATUS.get(klass)  # type: ignore[arg-type]
        if status is not None:
            return status
    return 500


def register_error_handlers(app: Flask) -> None:
    """Attach error handlers to the Flask application."""

    @app.errorhandler(APIError)
    def handle_api_error(error: APIError):
        message = error.message or DEFAULT_STATUS_MESSAGES.get(error.status_code, "Request failed.")
        response: dict[str, Any] = {"message": message, "code": error.code}
        if error.payload:
            response.update(error.payload)

        field_errors = _derive_field_errors(error.payload, default_message=message)
        if field_errors and "field_errors" not in response:
            response["field_errors"] = field_errors
        return jsonify(response), error.status_code

    @app.errorhandler(TrackerError)
    def handle_tracker_error(error: TrackerError):
        status = status_for(error)
        if status >= 500:
            logger.error("Store failure while handling request: %s", error.message)
        return jsonify({"message": error.message, "code": error.code}), status

    @app.errorhandler(ProviderError)
    def handle_provider_error(error: ProviderError):
        logger.warning("Price source failure while handling request: %s", error)
        message = str(error) or DEFAULT_STATUS_MESSAGES[502]
        return jsonify({"message": message, "code": "provider_error"}), 502


def _derive_field_errors(
    payload: dict[str, Any],
    *,
    default_message: str | None = None,
) -> dict[str, list[str]]:
    """Translate payload fields into a flat field_errors mapping."""

    if not payload:
        return {}

    if isinstance(payload.get("field_errors"), dict):
        result: dict[str, list[str]] = {}
        for field, messages in payload["field_errors"].items():
            normalized = _normalize_messages(messages)
            if normalized:
                result[str(field)] = normalized
        return result

    field = payload.get("field")
    if field and default_message:
        return {str(field): [default_message]}

    return {}


def _normalize_messages(messages: Any) -> list[str]:
    if messages is None:
        return []
    if isinstance(messages, str):
        return [messages]
    if isinstance(messages, list):
        return [item if isinstance(item, str) else str(item) for item in messages if item is not None]
    return [str(messages)]
