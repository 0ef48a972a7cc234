"""Recipe document ingestion and gluten-free conversion."""

__version__ = "0.1.0"
