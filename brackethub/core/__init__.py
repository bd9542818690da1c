"""Core module for the brackethub application."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
