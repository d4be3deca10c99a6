"""qaserve - multi-backend question answering pipeline and server."""

__version__ = "0.1.0"
