"""Application wiring."""

from .bootstrap import AppContainer, bootstrap_schema

__all__ = ["AppContainer", "bootstrap_schema"]
