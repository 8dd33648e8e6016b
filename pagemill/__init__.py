"""Compile a content tree of markdown documents into page maps and page modules."""

__version__ = "1.0.0"
