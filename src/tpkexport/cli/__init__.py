"""Command-line interface for tpkexport."""
