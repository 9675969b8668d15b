"""AetherScribe — ask questions about a web page, get cited answers."""

__version__ = "0.3.0"
