"""Routes for tracking currencies and reading their price history."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from crypto_tracker.domain import Currency
from crypto_tracker.errors import ValidationError
from crypto_tracker.schemas import (
    CurrencyEnvelopeSchema,
    CurrencyListQuerySchema,
    CurrencyListSchema,
    ErrorMessageSchema,
    HistoryQuerySchema,
    HistorySchema,
    MessageEnvelopeSchema,
    PriceEnvelopeSchema,
    PriceQueryRequestSchema,
    SymbolRequestSchema,
)
from crypto_tracker.services import CurrencyRegistry, PriceHistory
from crypto_tracker.utils.datetime import to_unix
from crypto_tracker.validation import require_symbol, validate_time_range, validate_timestamp

from . import blp


def _registry() -> CurrencyRegistry:
    return current_app.extensions["currency_registry"]


def _history() -> PriceHistory:
    return current_app.extensions["price_history"]


def _serialize_currency(currency: Currency) -> dict:
    return {
        "id": currency.id,
        "symbol": currency.symbol,
        "created_at": currency.created_at,
    }


@blp.route("")
class CurrencyCollection(MethodView):
    @blp.arguments(CurrencyListQuerySchema, location="query")
    @blp.response(200, CurrencyListSchema())
    @blp.alt_response(503, schema=ErrorMessageSchema, description="Store unavailable")
    def get(self, query):
        currencies = _registry().list_currencies(query["page_size"], query["offset"])
        return {
            "data": [_serialize_currency(item) for item in currencies],
            "page_size": query["page_size"],
            "offset": query["offset"],
        }


@blp.route("/add")
class CurrencyAdd(MethodView):
    @blp.arguments(SymbolRequestSchema)
    @blp.response(201, CurrencyEnvelopeSchema())
    @blp.alt_response(400, schema=ErrorMessageSchema, description="Invalid or unknown symbol")
    @blp.alt_response(409, schema=ErrorMessageSchema, description="Already tracked")
    @blp.alt_response(502, schema=ErrorMessageSchema, description="Price source unavailable")
    def post(self, payload):
        currency = _registry().add_currency(require_symbol(payload.get("symbol")))
        return {"data": _serialize_currency(currency)}


@blp.route("/remove")
class CurrencyRemove(MethodView):
    @blp.arguments(SymbolRequestSchema)
    @blp.response(200, MessageEnvelopeSchema())
    @blp.alt_response(404, schema=ErrorMessageSchema, description="Not tracked")
    def post(self, payload):
        raw = require_symbol(payload.get("symbol"))
        _registry().remove_currency(raw)
        return {"data": {"message": f"removed {raw.strip().upper()}"}}


@blp.route("/price")
class CurrencyPrice(MethodView):
    @blp.arguments(PriceQueryRequestSchema)
    @blp.response(200, PriceEnvelopeSchema())
    @blp.alt_response(400, schema=ErrorMessageSchema, description="Invalid symbol or timestamp")
    @blp.alt_response(404, schema=ErrorMessageSchema, description="Not tracked or no price stored")
    def post(self, payload):
        symbol = require_symbol(payload.get("symbol"))
        timestamp = validate_timestamp(payload.get("timestamp"))
        try:
            snapshot = _history().get_price(symbol, timestamp)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return {
            "data": {
                "symbol": symbol.strip().upper(),
                "requested_timestamp": timestamp,
                "returned_timestamp": to_unix(snapshot.timestamp),
                "price": snapshot.price,
            }
        }


@blp.route("/<string:symbol>/history")
class CurrencyHistory(MethodView):
    @blp.arguments(HistoryQuerySchema, location="query")
    @blp.response(200, HistorySchema())
    @blp.alt_response(404, schema=ErrorMessageSchema, description="Not tracked")
    def get(self, query, symbol: str):
        start, end = validate_time_range(query.get("start"), query.get("end"))
        try:
            snapshots = _history().get_history(symbol, start, end)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        return {
            "symbol": symbol.strip().upper(),
            "start": start,
            "end": end,
            "data": [
                {"timestamp": to_unix(item.timestamp), "price": item.price} for item in snapshots
            ],
        }
