"""Observability: logging, request correlation, metrics."""
