"""Schemas for API requests and responses."""

from __future__ import annotations

from marshmallow import Schema, fields
from marshmallow.validate import Range

from crypto_tracker.services.currency_registry import DEFAULT_PAGE_SIZE


class HealthStatusSchema(Schema):
    status = fields.String(required=True)
    app = fields.String()
    time = fields.DateTime(required=True)


class HealthIngestionSchema(Schema):
    status = fields.String(required=True)
    scheduler_running = fields.Boolean(required=True)
    last_started = fields.DateTime(allow_none=True)
    last_success = fields.DateTime(allow_none=True)
    last_failure = fields.DateTime(allow_none=True)
    last_cancelled = fields.DateTime(allow_none=True)
    last_attempts = fields.Integer(allow_none=True)
    last_saved = fields.Integer(allow_none=True)
    last_skipped = fields.Integer(allow_none=True)


class SymbolRequestSchema(Schema):
    """Body of the add and remove endpoints."""

    symbol = fields.String(load_default=None)


class PriceQueryRequestSchema(Schema):
    symbol = fields.String(load_default=None)
    timestamp = fields.Integer(load_default=None, strict=True)


class CurrencyListQuerySchema(Schema):
    page_size = fields.Integer(load_default=DEFAULT_PAGE_SIZE, validate=Range(min=1, max=1000))
    offset = fields.Integer(load_default=0, validate=Range(min=0))


class HistoryQuerySchema(Schema):
    start = fields.Integer(required=True)
    end = fields.Integer(required=True)


class CurrencySchema(Schema):
    id = fields.String(required=True)
    symbol = fields.String(required=True)
    created_at = fields.DateTime(required=True)


class CurrencyEnvelopeSchema(Schema):
    data = fields.Nested(CurrencySchema, required=True)


class CurrencyListSchema(Schema):
    data = fields.List(fields.Nested(CurrencySchema), required=True)
    page_size = fields.Integer(required=True)
    offset = fields.Integer(required=True)


class MessageSchema(Schema):
    message = fields.String(required=True)


class MessageEnvelopeSchema(Schema):
    data = fields.Nested(MessageSchema, required=True)


class PriceSchema(Schema):
    symbol = fields.String(required=True)
    requested_timestamp = fields.Integer(required=True)
    returned_timestamp = fields.Integer(required=True)
    price = fields.Float(required=True)


class PriceEnvelopeSchema(Schema):
    data = fields.Nested(PriceSchema, required=True)


class SnapshotSchema(Schema):
    timestamp = fields.Integer(required=True)
    price = fields.Float(required=True)


class HistorySchema(Schema):
    symbol = fields.String(required=True)
    start = fields.Integer(required=True)
    end = fields.Integer(required=True)
    data = fields.List(fields.Nested(SnapshotSchema), required=True)


class ErrorMessageSchema(Schema):
    message = fields.String(required=True)
    code = fields.String(required=True)
