"""
Run the mirror tool directly.

Usage:
    python -m ghmirror -c mirrors.json [MIRROR_NAME]...
    python -m ghmirror -c mirrors.json --server --port 8080
"""

from .main import cli

if __name__ == "__main__":
    cli(prog_name="ghmirror")
