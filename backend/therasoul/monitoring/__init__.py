"""Observability helpers (Prometheus)."""
