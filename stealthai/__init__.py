"""stealthai — rewrite the selected text in any app with an AI instruction."""

__version__ = "0.1.0"
