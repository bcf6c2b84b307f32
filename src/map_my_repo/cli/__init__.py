"""Command line interface for map-my-repo."""
