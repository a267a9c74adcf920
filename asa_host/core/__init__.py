"""Container runtime access and server operations."""
