"""ASGI server-side plumbing."""
