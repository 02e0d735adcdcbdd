"""Observability — logging setup, deployment metrics and health."""
