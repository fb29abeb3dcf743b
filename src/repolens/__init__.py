"""repolens - browse a GitHub account's repositories from one dashboard."""

__version__ = "0.1.0"
