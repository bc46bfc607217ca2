"""Project layout discovery and environment validation."""
