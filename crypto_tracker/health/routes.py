"""Route handlers for health checks."""

from __future__ import annotations

from flask import current_app
from flask.views import MethodView

from crypto_tracker.schemas import HealthIngestionSchema, HealthStatusSchema
from crypto_tracker.services.scheduler import INGESTION_STATE_KEY, SCHEDULER_EXT_KEY
from crypto_tracker.utils.datetime import utc_now

from . import blp


@blp.route("")
class HealthStatus(MethodView):
    @blp.response(200, HealthStatusSchema())
    def get(self):
        return {
            "status": "ok",
            "app": current_app.config.get("APP_NAME", "crypto-tracker"),
            "time": utc_now(),
        }


@blp.route("/ingestion")
class HealthIngestion(MethodView):
    @blp.response(200, HealthIngestionSchema())
    def get(self):
        state = current_app.extensions.get(INGESTION_STATE_KEY) or {}
        scheduler = current_app.extensions.get(SCHEDULER_EXT_KEY)
        running = bool(scheduler is not None and scheduler.running)

        if not state.get("last_started"):
            status = "uninitialized"
        elif state.get("last_failure") is not None:
            status = "degraded"
        else:
            status = "ok"

        return {
            "status": status,
            "scheduler_running": running,
            "last_started": state.get("last_started"),
            "last_success": state.get("last_success"),
            "last_failure": state.get("last_failure"),
            "last_cancelled": state.get("last_cancelled"),
            "last_attempts": state.get("last_attempts"),
            "last_saved": state.get("last_saved"),
            "last_skipped": state.get("last_skipped"),
        }
