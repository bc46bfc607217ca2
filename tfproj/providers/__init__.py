"""Adapters for the external tools tfproj drives."""
