"""Command-line interface for Combat Metrics."""
