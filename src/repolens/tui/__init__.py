"""Textual dashboard for repolens."""

from .app import RepoLensApp

__all__ = ["RepoLensApp"]
