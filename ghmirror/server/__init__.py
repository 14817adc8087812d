"""
Webhook Server — HTTP endpoint for GitHub post-receive hooks.

Usage:
    ghmirror --config mirrors.json --server --port 8080
"""

from .app import create_app, run_server

__all__ = ["create_app", "run_server"]
