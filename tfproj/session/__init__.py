"""Session state and persistence."""
