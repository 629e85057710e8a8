"""Core configuration for the Vanish service."""
