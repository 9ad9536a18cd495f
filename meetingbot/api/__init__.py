"""Chat webhook server."""
