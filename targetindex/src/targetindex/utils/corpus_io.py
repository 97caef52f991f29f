"""Utilities for loading and saving a corpus from/to JSON files."""

from pathlib import Path
from pydantic import TypeAdapter, ValidationError
from targetindex.model.corpus import Corpus
from targetindex.errors import CorpusLoadError


def load_corpus_from_json(corpus_path: Path) -> Corpus:
    """
    Load a Corpus from a JSON file.

    Args:
        corpus_path: Path to the JSON file

    Returns:
        Loaded Corpus instance

    Raises:
        CorpusLoadError: If the file is missing, empty or not a valid corpus
    """
    corpus_path = Path(corpus_path)
    if not corpus_path.exists():
        raise CorpusLoadError(f"Corpus file not found: {corpus_path}")

    file_content = corpus_path.read_text(encoding="utf-8").strip()
    if not file_content:
        raise CorpusLoadError(
            f"Corpus file is empty: {corpus_path}. "
            f"The file exists but contains no JSON data."
        )

    try:
        return TypeAdapter(Corpus).validate_json(file_content)
    except ValidationError as e:
        raise CorpusLoadError(f"Failed to load corpus from {corpus_path}: {e}") from e


def save_corpus_to_json(corpus: Corpus, corpus_path: Path) -> None:
    """
    Save a Corpus to a JSON file.

    Args:
        corpus: Corpus instance to save
        corpus_path: Path where to save the JSON file

    Note:
        Creates parent directories if they don't exist.
    """
    corpus_path = Path(corpus_path)
    corpus_path.parent.mkdir(parents=True, exist_ok=True)
    corpus_path.write_text(corpus.model_dump_json(indent=2), encoding="utf-8")
