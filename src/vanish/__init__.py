"""Vanish: ephemeral end-to-end encrypted chat sessions and call signaling."""

__version__ = "0.1.0"
