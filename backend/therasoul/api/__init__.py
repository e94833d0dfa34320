"""HTTP API support package."""
