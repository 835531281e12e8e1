"""HTTP endpoints of the transcript gateway."""
