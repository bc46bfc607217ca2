"""tfproj - helpers for multi-environment Terraform projects."""

__version__ = "0.4.0"
