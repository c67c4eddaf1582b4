"""Flask service exposing the pattern and playlist catalog."""

from .app import create_app  # noqa: F401

__all__ = ["create_app"]
