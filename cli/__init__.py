"""AetherScribe command-line interface."""
