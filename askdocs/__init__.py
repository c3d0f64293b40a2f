"""askdocs: retrieval-augmented question answering over text documents."""

__version__ = "0.1.0"
