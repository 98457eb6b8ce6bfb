"""CLI command groups, imported on demand by ``cli.app``."""
