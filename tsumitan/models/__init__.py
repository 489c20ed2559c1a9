"""ORM model exports."""

from tsumitan.models.word import Word

__all__ = ["Word"]
