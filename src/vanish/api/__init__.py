"""HTTP and WebSocket API for the Vanish service."""
