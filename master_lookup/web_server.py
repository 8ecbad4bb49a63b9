from __future__ import annotations

import logging

from flask import Flask, Response, jsonify, request

from master_lookup.errors import EmptyQueryError, LookupBusyError, StoreOpenError, StoreWriteError
from master_lookup.services import MasterService
from master_lookup.settings import Settings

logger = logging.getLogger(__name__)


def create_app(service: MasterService, settings: Settings) -> Flask:
    app = Flask(__name__, static_folder=None)

    def _error(message: str, status: int):
        return jsonify({"ok": False, "error": message}), status

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True, "app": settings.APP_NAME, "records": service.record_count()})

    @app.get("/api/status")
    def api_status() -> Response:
        return jsonify({"ok": True, "busy": service.busy, "records": service.record_count()})

    @app.post("/api/lookup")
    def api_lookup():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            data = {}
        q = str(data.get("q") or "")
        try:
            result = service.lookup(q)
        except EmptyQueryError as e:
            return _error(str(e), 400)
        except LookupBusyError as e:
            return _error(str(e), 409)
        payload = {"ok": True}
        payload.update(result.to_dict())
        return jsonify(payload)

    @app.post("/api/import")
    def api_import():
        try:
            result = service.startup()
        except LookupBusyError as e:
            return _error(str(e), 409)
        except StoreOpenError as e:
            logger.error("Import aborted: %s", e)
            return _error(str(e), 500)
        return jsonify(result.to_dict())

    @app.post("/api/reset")
    def api_reset():
        try:
            result = service.reload()
        except LookupBusyError as e:
            return _error(str(e), 409)
        except (StoreOpenError, StoreWriteError) as e:
            logger.error("Reload aborted: %s", e)
            return _error(str(e), 500)
        return jsonify(result.to_dict())

    return app
