"""Command line interface for photosync."""
