"""Editing state machine for a plain-text/Markdown editor."""

__all__ = [
    "app",
    "editor",
    "errors",
    "services",
    "utils",
]

__version__ = "0.1.0"
