"""Outbound services: transcript retrieval and identity diagnostics."""
