"""
GitHub Mirror — Local bare mirrors of GitHub repositories, kept in sync
by batch runs or by GitHub post-receive webhooks.
"""

__version__ = "1.0.0"
