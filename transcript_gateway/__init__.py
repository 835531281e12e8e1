"""Authenticated, rate limited transcript gateway."""
