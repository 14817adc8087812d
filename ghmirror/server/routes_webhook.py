"""
Webhook API — GitHub post-receive hook endpoint.

Blueprint: webhook_bp
Routes: POST / and POST /<any path>

GitHub posts ``application/x-www-form-urlencoded`` bodies with a
``payload`` field holding the JSON event (``application/json`` deliveries
are accepted as well). The sender always gets ``200 Ok, thanks!``; bad
payloads and unknown repositories are only logged. Resolving and
queueing the update happens once the response has been sent.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from flask import Blueprint, Request, current_app, g, request
from werkzeug.exceptions import RequestEntityTooLarge

from ..config.models import GlobalConfig
from ..mirror.dispatcher import UpdateDispatcher
from ..mirror.resolver import resolve_mirrors

logger = logging.getLogger(__name__)

webhook_bp = Blueprint("webhook", __name__)

RESPONSE_BODY = "Ok, thanks!"


def _decode(req: Request) -> Any:
    if req.is_json:
        return req.get_json(silent=True)

    raw = req.form.get("payload")
    if raw is None:
        logger.warning("Webhook request without payload field")
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        logger.warning(f"Webhook payload is not valid JSON: {e}")
        return None


def extract_payload(req: Request) -> Optional[Dict[str, Any]]:
    """Decode the webhook JSON document, or None if there is none."""
    try:
        data = _decode(req)
    except RequestEntityTooLarge:
        logger.warning(f"Webhook body exceeds {req.max_content_length} bytes, ignoring it")
        return None

    if data is None:
        return None
    if not isinstance(data, dict):
        logger.warning("Webhook payload is not a JSON object")
        return None
    return data


def handle_payload(
    payload: Optional[Dict[str, Any]],
    config: GlobalConfig,
    dispatcher: UpdateDispatcher,
) -> None:
    """Resolve the reported repository and queue its mirrors."""
    if payload is None:
        return

    repository = payload.get("repository")
    if not isinstance(repository, dict):
        logger.warning("Webhook payload has no repository object")
        return

    repo_name = repository.get("name")
    repo_url = repository.get("url")
    logger.info(
        f"Webhook request received for github repo: {repo_name} with url: {repo_url}"
    )

    mirror_names = resolve_mirrors(repo_url if isinstance(repo_url, str) else None, config)
    if mirror_names:
        dispatcher.dispatch(mirror_names)
    else:
        logger.info(
            f"No mirror is configured for github repo: {repo_name} with url: {repo_url}"
        )


@webhook_bp.route("/", defaults={"path": ""}, methods=["POST"])
@webhook_bp.route("/<path:path>", methods=["POST"])
def receive_webhook(path: str):
    """Acknowledge the delivery, then resolve and dispatch after closing."""
    payload = extract_payload(request)
    config = g.mirror_config
    dispatcher = current_app.config["DISPATCHER"]

    def _after_response():
        try:
            handle_payload(payload, config, dispatcher)
        except Exception:
            logger.exception("Failed to handle webhook payload")

    response = current_app.response_class(RESPONSE_BODY, status=200, mimetype="text/plain")
    response.call_on_close(_after_response)
    return response
