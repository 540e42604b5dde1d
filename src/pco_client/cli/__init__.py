"""Command-line interface for the PCO client."""
