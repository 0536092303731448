"""inlineref: a text input that embeds resource references as atomic tokens."""

__all__ = ["__version__"]

__version__ = "0.1.0"
