"""Command-line entrypoint for windblog helpers."""
