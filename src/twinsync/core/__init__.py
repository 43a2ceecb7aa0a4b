"""Core business logic for twinsync, independent of the CLI."""
