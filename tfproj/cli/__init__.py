"""tfproj command line interface."""
