"""
Webhook Server — Flask app receiving GitHub post-receive hooks.

The app answers every allowed POST with ``Ok, thanks!`` and hands the
referenced mirrors to the update dispatcher, which updates them in the
background one pass at a time.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from flask import Flask, request

from ..config.models import GlobalConfig
from ..mirror.dispatcher import UpdateDispatcher
from .ip_filter import check_remote_ip
from .routes_webhook import webhook_bp

logger = logging.getLogger(__name__)


def create_app(
    config_provider: Callable[[], GlobalConfig],
    dispatcher: Optional[UpdateDispatcher] = None,
) -> Flask:
    """Create the Flask application."""
    app = Flask(__name__)

    app.config["CONFIG_PROVIDER"] = config_provider
    app.config["DISPATCHER"] = dispatcher or UpdateDispatcher(config_provider)

    # Webhook payloads are small; GitHub caps them at 25 MB
    app.config["MAX_CONTENT_LENGTH"] = 25 * 1024 * 1024

    # ── Request Hooks ─────────────────────────────────────────────

    @app.before_request
    def log_request_start():
        """Record request start time."""
        request._start_time = time.time()

    # Runs before routing, so rejected clients never reach a view
    app.before_request(check_remote_ip)

    app.register_blueprint(webhook_bp)

    @app.after_request
    def log_request_end(response):
        """Log request with duration."""
        duration_ms = 0
        if hasattr(request, "_start_time"):
            duration_ms = int((time.time() - request._start_time) * 1000)
        logger.info(
            f"{request.method} {request.path} from {request.remote_addr} "
            f"→ {response.status_code} ({duration_ms}ms)"
        )
        return response

    return app


def run_server(
    config_provider: Callable[[], GlobalConfig],
    host: str = "0.0.0.0",
    port: int = 8080,
    debug: bool = False,
) -> None:
    """
    Run the webhook server until interrupted.

    Args:
        config_provider: Called for every request and every update pass
        host: Bind address
        port: Port to listen on
        debug: Enable Flask debug mode
    """
    dispatcher = UpdateDispatcher(config_provider)
    dispatcher.start()

    app = create_app(config_provider, dispatcher)

    print(f"""
╔══════════════════════════════════════════════════════════════╗
║                   GITHUB MIRROR WEBHOOK SERVER               ║
╠══════════════════════════════════════════════════════════════╣
║  Listening on {f"http://{host}:{port}":<47}║
║  Press Ctrl+C to stop                                        ║
╚══════════════════════════════════════════════════════════════╝
""")

    logger.info(f"Webhook server starting on {host}:{port}")

    # No reloader: it would fork a second dispatcher worker
    app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)

    logger.info("Webhook server stopped")
