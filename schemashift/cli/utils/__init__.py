"""CLI output utilities."""
