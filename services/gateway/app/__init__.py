"""Edge gateway: request ids, rate limiting, token checks and proxying."""
