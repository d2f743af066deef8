"""Currency blueprint for tracking symbols and querying prices."""

from __future__ import annotations

from flask_smorest import Blueprint

blp = Blueprint("Currency", __name__, description="Tracked cryptocurrencies and their prices")

from . import routes  # noqa: E402,F401
