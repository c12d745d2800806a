"""Container-backed development sessions for cloned GitHub repositories."""

__version__ = "0.1.0"
