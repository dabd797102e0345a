"""HTTP API for the translation engine."""
