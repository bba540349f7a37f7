"""Linux keyboard remapping daemon driven by JSON profiles with layers, tap sequences and macros."""

__version__ = "0.1.0"