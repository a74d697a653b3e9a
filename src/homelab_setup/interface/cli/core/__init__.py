"""CLI core: entry point, error handling, theme."""
