"""Julia version management library and launcher: install, select and start Julia by channel."""

__version__ = "1.11.0"
__all__ = ["__version__"]