"""
IP Filter — Restrict webhook requests to configured source networks.

Registered as an app-level ``before_request`` hook so a rejected request
never reaches body parsing. With no ``ipAddressRestrictions`` configured
every address is allowed.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Iterable, Optional

from flask import Response, current_app, g, request

from ..errors import ConfigurationError

logger = logging.getLogger(__name__)


def is_remote_ip_allowed(remote_ip: Optional[str], restrictions: Iterable[str]) -> bool:
    """True if ``remote_ip`` lies in one of the ``restrictions`` CIDRs."""
    networks = list(restrictions or [])
    if not networks:
        return True

    try:
        addr = ipaddress.ip_address((remote_ip or "").strip())
    except ValueError:
        return False

    # IPv4 clients on a dual-stack socket show up as ::ffff:a.b.c.d
    if addr.version == 6 and addr.ipv4_mapped is not None:
        addr = addr.ipv4_mapped

    for cidr in networks:
        network = ipaddress.ip_network(cidr, strict=False)
        if addr.version == network.version and addr in network:
            return True
    return False


def drop_connection() -> Response:
    """
    Close the client connection without answering.

    The Werkzeug server exposes the client socket in the WSGI environ;
    shutting it down makes the response write fail, which the server
    treats as a dropped connection. Other servers get an empty 403.
    """
    sock = request.environ.get("werkzeug.socket")
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass
    return current_app.response_class(b"", status=403)


def check_remote_ip() -> Optional[Response]:
    """``before_request`` hook: load the config, enforce the allowlist."""
    provider = current_app.config["CONFIG_PROVIDER"]
    try:
        config = provider()
    except ConfigurationError as e:
        logger.error(f"Cannot load configuration, dropping request: {e}")
        return drop_connection()

    g.mirror_config = config

    remote_ip = request.remote_addr
    if not is_remote_ip_allowed(remote_ip, config.ip_address_restrictions):
        logger.warning(f"Http-request from {remote_ip} is not allowed!")
        return drop_connection()

    return None
