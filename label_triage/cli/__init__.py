"""Command-line interface for label-triage."""
