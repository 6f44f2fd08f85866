"""
Web application module for the Game Stats Tracker.

This module contains the Flask server that exposes the live game session and
the saved game history as JSON API endpoints.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from flask import Flask, Response, jsonify, request

from ..config import Config
from ..errors import CapacityExceeded, InvalidConfiguration, NotFoundError, TimerStateError
from ..models import Side, Stat
from ..services import ServiceFactory, SyncResult
from ..utils import APP_TITLE
from ..utils.constants import TICK_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class WebAppState:
    """State holder for one running web application."""

    def __init__(self, factory: ServiceFactory):
        self.service_factory = factory
        services = factory.create_complete_service_suite()
        self.session = services['session']
        self.sync_engine = services['sync']
        self.analytics_service = services['analytics']


def _error_response(e: Exception) -> Tuple[Response, int]:
    """Map an exception onto an error payload and HTTP status."""
    if isinstance(e, NotFoundError):
        status = 404
    elif isinstance(e, (InvalidConfiguration, CapacityExceeded, TimerStateError, ValueError, IndexError)):
        status = 400
    else:
        logger.exception("Unhandled API error")
        status = 500
    return jsonify({"success": False, "error": str(e)}), status


def _sync_payload(result: SyncResult) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "success": True,
        "synced": result.ok,
        "error": str(result.error) if result.error else None,
    }
    if result.record is not None:
        payload["record"] = result.record.to_json()
    if result.warnings:
        payload["warnings"] = list(result.warnings)
    return payload


def create_app(factory: Optional[ServiceFactory] = None) -> Flask:
    """
    Create and configure the Flask application with API endpoints.

    Args:
        factory: Service factory to build the services from; defaults to one
            built from :class:`Config`

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    app_state = WebAppState(factory or ServiceFactory(Config))
    app.extensions["gamestats"] = app_state

    def _json_body() -> Dict[str, Any]:
        return request.get_json(silent=True) or {}

    def _sync_status() -> Dict[str, Any]:
        engine = app_state.sync_engine
        return {
            "status": engine.status.value,
            "online": engine.online,
            "lastSync": engine.last_sync_ts,
            "lastError": str(engine.last_error) if engine.last_error else None,
            "pending": engine.pending_count(),
            "userPin": engine.scope,
        }

    def _session_payload() -> Dict[str, Any]:
        return {"success": True, "session": app_state.session.state(), "sync": _sync_status()}

    @app.route("/")
    def index():
        return jsonify({
            "app": APP_TITLE,
            "userPin": app_state.sync_engine.scope,
            "tickIntervalSeconds": TICK_INTERVAL_SECONDS,
        })

    # ==================== Live session ==================== #

    @app.route("/api/state", methods=["GET"])
    def get_state():
        try:
            app_state.session.timer.tick()
            return jsonify(_session_payload())
        except Exception as e:
            return _error_response(e)

    @app.route("/api/timer/<action>", methods=["POST"])
    def timer_action(action: str):
        """Start, pause, second-half, reset or configure the half timer."""
        timer = app_state.session.timer
        try:
            if action == "start":
                timer.start()
            elif action == "pause":
                timer.pause()
            elif action == "second-half":
                timer.start_second_half()
            elif action == "reset":
                timer.reset_game()
            elif action == "configure":
                app_state.session.set_half_minutes(_json_body().get("halfMinutes"))
            else:
                return jsonify({"success": False, "error": f"Unknown timer action: {action}"}), 404
            return jsonify(_session_payload())
        except Exception as e:
            return _error_response(e)

    @app.route("/api/player-timer/<action>", methods=["POST"])
    def player_timer_action(action: str):
        session = app_state.session
        handlers = {
            "start": session.start_player_timer,
            "pause": session.pause_player_timer,
            "reset": session.reset_player_timer,
        }
        if action not in handlers:
            return jsonify({"success": False, "error": f"Unknown player timer action: {action}"}), 404
        handlers[action]()
        return jsonify(_session_payload())

    @app.route("/api/goals/<side>", methods=["POST"])
    def add_goal(side: str):
        try:
            goal = app_state.session.add_goal(Side.parse(side))
            payload = _session_payload()
            payload["accepted"] = goal is not None
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    @app.route("/api/goals/<side>/last", methods=["DELETE"])
    def remove_last_goal(side: str):
        try:
            removed = app_state.session.remove_last_goal(Side.parse(side))
            payload = _session_payload()
            payload["removed"] = removed.to_json() if removed else None
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    @app.route("/api/goals/<side>/<int:index>", methods=["PUT"])
    def edit_goal(side: str, index: int):
        try:
            app_state.session.edit_goal(Side.parse(side), index, str(_json_body().get("time", "")))
            return jsonify(_session_payload())
        except Exception as e:
            return _error_response(e)

    @app.route("/api/stats/<stat>/<direction>", methods=["POST"])
    def change_stat(stat: str, direction: str):
        session = app_state.session
        try:
            if direction == "increment":
                value = session.increment_stat(Stat.parse(stat))
            elif direction == "decrement":
                value = session.decrement_stat(Stat.parse(stat))
            else:
                return jsonify({"success": False, "error": f"Unknown direction: {direction}"}), 404
            return jsonify({"success": True, "stat": Stat.parse(stat).value, "value": value,
                            "warnings": session.ledger.validate()})
        except Exception as e:
            return _error_response(e)

    @app.route("/api/game-info", methods=["POST"])
    def set_game_info():
        data = _json_body()
        try:
            app_state.session.set_game_info(
                date=data.get("date"),
                player_name=data.get("playerName"),
                opponent=data.get("opponent"),
                game_type=data.get("gameType"),
                notes=data.get("gameNotes"),
            )
            return jsonify(_session_payload())
        except Exception as e:
            return _error_response(e)

    @app.route("/api/commit", methods=["POST"])
    def commit_game():
        """Save the current game; responds 409 when stat warnings need confirming."""
        try:
            result = app_state.session.commit(force=bool(_json_body().get("force", False)))
            payload = result.to_json()
            payload["success"] = True
            if result.record is None:
                return jsonify(payload), 409
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    # ==================== History ==================== #

    @app.route("/api/history", methods=["GET"])
    def list_history():
        analytics = app_state.analytics_service
        opponent = request.args.get("opponent")
        records = analytics.records(opponent)
        return jsonify({
            "success": True,
            "games": [record.to_json() for record in records],
            "summary": analytics.summary(opponent).to_json(),
            "sync": _sync_status(),
        })

    @app.route("/api/history/filters", methods=["GET"])
    def history_filters():
        analytics = app_state.analytics_service
        return jsonify({
            "success": True,
            "opponents": analytics.unique_opponents(),
            "playerNames": analytics.unique_player_names(),
        })

    @app.route("/api/history/<record_id>", methods=["GET"])
    def get_game(record_id: str):
        record = app_state.sync_engine.get(record_id)
        if record is None:
            return jsonify({"success": False, "error": f"Game {record_id} not found"}), 404
        return jsonify({"success": True, "record": record.to_json()})

    @app.route("/api/history/<record_id>", methods=["PUT"])
    def update_game(record_id: str):
        try:
            return jsonify(_sync_payload(app_state.sync_engine.update(record_id, _json_body())))
        except Exception as e:
            return _error_response(e)

    @app.route("/api/history/<record_id>", methods=["DELETE"])
    def delete_game(record_id: str):
        try:
            return jsonify(_sync_payload(app_state.sync_engine.delete(record_id)))
        except Exception as e:
            return _error_response(e)

    @app.route("/api/history", methods=["DELETE"])
    def clear_history():
        try:
            return jsonify(_sync_payload(app_state.sync_engine.clear_all()))
        except Exception as e:
            return _error_response(e)

    @app.route("/api/history/refresh", methods=["POST"])
    def refresh_history():
        try:
            result = app_state.sync_engine.load()
            payload = _sync_payload(result)
            payload["games"] = [record.to_json() for record in result.records]
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    @app.route("/api/history/sync", methods=["POST"])
    def sync_pending():
        try:
            payload = _sync_payload(app_state.sync_engine.sync_pending())
            payload["sync"] = _sync_status()
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    # ==================== Export ==================== #

    @app.route("/api/export/csv", methods=["GET"])
    def export_csv():
        csv_text = app_state.analytics_service.export_csv(request.args.get("opponent"))
        filename = f"game_stats_{app_state.sync_engine.scope}.csv"
        return Response(
            csv_text,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename={filename}"},
        )

    @app.route("/api/export/backup", methods=["GET"])
    def export_backup():
        return jsonify(app_state.analytics_service.export_backup())

    @app.route("/api/import/backup", methods=["POST"])
    def import_backup():
        try:
            result = app_state.analytics_service.restore_backup(_json_body())
            payload = _sync_payload(result)
            payload["restored"] = len(result.records)
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    # ==================== Network ==================== #

    @app.route("/api/network/<state>", methods=["POST"])
    def set_network(state: str):
        engine = app_state.sync_engine
        try:
            if state == "online":
                payload = _sync_payload(engine.go_online())
            elif state == "offline":
                engine.go_offline()
                payload = {"success": True}
            else:
                return jsonify({"success": False, "error": f"Unknown network state: {state}"}), 404
            payload["sync"] = _sync_status()
            return jsonify(payload)
        except Exception as e:
            return _error_response(e)

    return app


def run_web_app(host: str = Config.HOST, port: int = Config.PORT) -> None:
    """
    Run the web application.

    Args:
        host: Host address to bind to (default: localhost only)
        port: Port number to listen on
    """
    app = create_app()
    logger.info("Starting %s on %s:%d", APP_TITLE, host, port)
    app.run(host=host, port=port, debug=False)
