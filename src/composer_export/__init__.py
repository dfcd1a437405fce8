"""Export Cursor composer conversations to Markdown."""

__version__ = "0.1.0"
