"""Core runtime helpers shared by the engine and the CLI."""
