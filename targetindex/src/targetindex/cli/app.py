"""Typer CLI application."""

from pathlib import Path
from typing import Optional

import typer

from targetindex.config.logging import setup_logging
from targetindex.catalog.repository import InMemoryRepository
from targetindex.indexing.indexer import TargetIndexer
from targetindex.model.association import OwnerKind
from targetindex.model.options import IndexerOptions
from targetindex.query import find_target_owners, owner_name
from targetindex.utils.corpus_io import load_corpus_from_json, save_corpus_to_json
from targetindex.errors import CorpusLoadError

app = typer.Typer(help="targetindex: index the indirect access of entitlements and roles")


def _load_repository(corpus_json: Path) -> InMemoryRepository:
    try:
        corpus = load_corpus_from_json(corpus_json)
    except CorpusLoadError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    return InMemoryRepository.from_corpus(corpus)


@app.command()
def index(
    corpus_json: Path,
    out: Optional[Path] = typer.Option(None, help="Where to write the indexed corpus (default: in place)"),
    index_entitlements: bool = typer.Option(False, help="Index entitlement nodes"),
    index_role_targets: bool = typer.Option(False, help="Copy node targets onto roles"),
    index_role_entitlements: bool = typer.Option(False, help="Index role entitlements"),
    index_role_permissions: bool = typer.Option(False, help="Index role permissions"),
    index_unstructured_targets: bool = typer.Option(False, help="Include unstructured targets"),
    index_classifications: bool = typer.Option(False, help="Carry classifications on associations"),
    promote_classifications: bool = typer.Option(False, help="Promote classifications to owners"),
    applications: Optional[str] = typer.Option(None, help="Comma separated application names"),
    roles: Optional[str] = typer.Option(None, help="Comma separated role names"),
    full_reset: bool = typer.Option(False, help="Delete existing associations first"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every reconciled record"),
):
    """
    Index a corpus and write the updated associations.

    Args:
        corpus_json: Path to the corpus JSON file
        out: Output path for the indexed corpus
    """
    setup_logging(verbose=verbose)

    typer.echo(f"Loading corpus from {corpus_json}")
    repository = _load_repository(corpus_json)

    options = IndexerOptions(
        index_entitlements=index_entitlements,
        index_role_targets=index_role_targets,
        index_role_entitlements=index_role_entitlements,
        index_role_permissions=index_role_permissions,
        index_unstructured_targets=index_unstructured_targets,
        index_classifications=index_classifications,
        promote_classifications=promote_classifications,
        applications=applications,
        roles=roles,
        full_reset=full_reset,
    )

    typer.echo("Indexing...")
    result = TargetIndexer(repository, options).run()

    # committed work is kept even when the run failed part way
    out_path = Path(out) if out is not None else Path(corpus_json)
    typer.echo(f"Writing corpus to {out_path}")
    save_corpus_to_json(repository.to_corpus(), out_path)

    for name, value in result.to_arguments().items():
        typer.echo(f"  {name}: {value}")
    if result.terminated:
        typer.echo("Indexing was terminated")

    if not result.success:
        for error in result.errors:
            typer.echo(f"Error: {error}", err=True)
        raise typer.Exit(1)

    typer.echo(f"✓ Complete! Corpus written to {out_path}")


@app.command()
def query(
    corpus_json: Path,
    target: str,
    kind: Optional[str] = typer.Option(None, help="Target kind: attribute name, P or TP"),
    application: Optional[str] = typer.Option(None, help="Application name"),
    owner_kind: Optional[str] = typer.Option(None, help="Owner kind: role or node"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """
    List the owners that grant access to a target.

    Args:
        corpus_json: Path to an indexed corpus JSON file
        target: Target name
    """
    setup_logging(verbose=verbose)

    kinds = {"role": OwnerKind.ROLE, "node": OwnerKind.NODE}
    if owner_kind is not None and owner_kind.lower() not in kinds:
        typer.echo(f"Error: unknown owner kind {owner_kind}, use role or node", err=True)
        raise typer.Exit(2)

    repository = _load_repository(corpus_json)
    assocs = find_target_owners(
        repository,
        target,
        target_kind=kind,
        application=application,
        owner_kind=kinds[owner_kind.lower()] if owner_kind is not None else None,
    )

    if not assocs:
        typer.echo(f"No owners grant {target}")
        return

    typer.echo(f"{len(assocs)} owner(s) grant {target}:")
    for assoc in assocs:
        label = "role" if assoc.owner_kind == OwnerKind.ROLE else "node"
        rights = f" [{assoc.rights}]" if assoc.rights else ""
        typer.echo(
            f"  {label} {owner_name(repository, assoc)}: "
            f"{assoc.application}/{assoc.target_kind}{rights} via {assoc.hierarchy}"
        )


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
