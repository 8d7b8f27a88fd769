"""Read, edit and write PDF documents at the object level."""

__version__ = "0.1.0"

__all__ = ["document", "object_stream", "objects", "parser", "reader", "writer", "xobject", "xref"]