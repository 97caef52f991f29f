"""Utility functions for common operations."""

from .corpus_io import load_corpus_from_json, save_corpus_to_json

__all__ = [
    "load_corpus_from_json",
    "save_corpus_to_json",
]
