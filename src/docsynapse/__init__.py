"""DocSynapse - local knowledge assistant with semantic search over your files."""

__version__ = "0.1.0"
