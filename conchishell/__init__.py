"""An interactive shell with pipes, redirections, here-documents and builtins."""

__version__ = "0.1.0"
__all__ = ["__version__"]