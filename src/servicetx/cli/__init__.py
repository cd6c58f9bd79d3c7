"""Command line entry point: ``servicetx`` (see servicetx.cli.main)."""
