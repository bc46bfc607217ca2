"""Core tfproj operations."""
