"""Command line interface for jsonlsearch."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from jsonlsearch.config import AppConfig
from jsonlsearch.embedding.encoder import EmbeddingClient, EmbeddingConfig
from jsonlsearch.errors import JsonlSearchError
from jsonlsearch.expansion.expander import QueryExpander, WordNetSynonyms, WordVectorNeighbors
from jsonlsearch.index.indexer import IndexBuilder
from jsonlsearch.index.search import HybridSearcher
from jsonlsearch.index.storage import IndexStore
from jsonlsearch.ingestion.analyzer import analyze_database
from jsonlsearch.utils.text import TextNormalizer

console = Console()
app = typer.Typer(help="jsonlsearch - hybrid semantic search for JSONL databases")

SNIPPET_CHARS = 200


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=1)


def _build_embedder(config: AppConfig) -> EmbeddingClient:
    return EmbeddingClient.from_config(
        EmbeddingConfig(model_name=config.model_name, provider=config.provider, api_key=config.api_key)
    )


def _snippet(text: str) -> str:
    text = text.replace("\n", " ")
    if len(text) > SNIPPET_CHARS:
        return text[:SNIPPET_CHARS] + "..."
    return text


@app.command()
def analyze(
    file: Path = typer.Argument(..., help="Path to JSONL file"),
    fields: Optional[str] = typer.Option(None, "--fields", "-f", help="Fields to analyze (comma-separated)"),
    sample: Optional[int] = typer.Option(None, "--sample", "-s", help="Number of entries to sample"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Analyze a JSONL database and show statistics."""
    _setup_logging(verbose)
    try:
        stats = analyze_database(
            file,
            fields=fields.split(",") if fields else None,
            sample_size=sample,
        )
    except JsonlSearchError as exc:
        _fail(f"Analysis failed: {exc}")

    console.print(f"[bold]Total entries:[/bold] {stats.total_entries}")
    console.print(f"[bold]File size:[/bold] {stats.file_size}")
    if stats.malformed_lines:
        console.print(f"[yellow]Unparseable lines: {stats.malformed_lines}[/yellow]")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Field")
    table.add_column("Type")
    table.add_column("Coverage")
    table.add_column("Avg length")
    table.add_column("Unique values")
    for name, field_stats in stats.fields.items():
        unique = field_stats.unique_values
        table.add_row(
            name,
            field_stats.type,
            f"{field_stats.coverage(stats.total_entries)}%",
            str(field_stats.average_length),
            str(unique) if unique else "-",
        )
    console.print(table)


@app.command()
def index(
    file: Path = typer.Argument(..., help="Path to JSONL file"),
    output: Path = typer.Option(AppConfig().index_dir, "--output", "-o", help="Output directory for index"),
    content_field: str = typer.Option(AppConfig().content_field, "--content-field", "-c", help="Field containing main content"),
    title_field: str = typer.Option(AppConfig().title_field, "--title-field", "-t", help="Field containing title"),
    model: str = typer.Option(AppConfig().model_name, "--model", "-m", help="Embedding model to use"),
    provider: str = typer.Option(AppConfig().provider, help="Embedding provider: huggingface or local"),
    title_boost: bool = typer.Option(True, "--title-boost/--no-title-boost", help="Boost title relevance"),
    similarity_backend: str = typer.Option(AppConfig().similarity_backend, help="Vector similarity backend: exact or faiss"),
    hf_api_key: Optional[str] = typer.Option(None, "--hf-api-key", envvar="HF_API_KEY", help="Hugging Face API key"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build a search index for a JSONL database."""
    _setup_logging(verbose)
    config = AppConfig(
        index_dir=output,
        model_name=model,
        provider=provider,
        content_field=content_field,
        title_field=title_field,
        title_boost=title_boost,
        api_key=hf_api_key,
        similarity_backend=similarity_backend,
    )
    resolved_dir = config.resolve_index_dir(Path.cwd())

    if not file.is_file():
        _fail(f"File not found: {file}")

    try:
        builder = IndexBuilder(
            _build_embedder(config),
            TextNormalizer(),
            content_field=config.content_field,
            title_field=config.title_field,
            title_boost=config.title_boost,
            model_name=config.model_name,
            similarity_backend=config.similarity_backend,
        )
        console.print(f"Indexing into [bold]{resolved_dir}[/bold]...")
        stats = builder.build(file, resolved_dir)
    except JsonlSearchError as exc:
        _fail(f"Indexing failed: {exc}")

    console.print(
        f"Indexed: {stats.indexed}, skipped: {stats.skipped}, "
        f"embedding failures: {stats.embedding_failures}"
    )
    console.print(f"[green]Index built successfully at {stats.index_dir}[/green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query"),
    index_dir: Path = typer.Option(AppConfig().index_dir, "--index", "-i", help="Index directory"),
    limit: int = typer.Option(AppConfig().limit, "--limit", "-n", min=0, help="Maximum number of results"),
    threshold: float = typer.Option(AppConfig().threshold, "--threshold", "-t", min=0.0, max=1.0, help="Relevance threshold (0-1)"),
    semantic_weight: float = typer.Option(AppConfig().semantic_weight, min=0.0, max=1.0, help="Weight for semantic similarity (0-1)"),
    title_weight: float = typer.Option(AppConfig().title_weight, min=0.0, max=1.0, help="Weight for title relevance (0-1)"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Embedding model (defaults to the one used for indexing)"),
    provider: str = typer.Option(AppConfig().provider, help="Embedding provider: huggingface or local"),
    word_vectors: Optional[Path] = typer.Option(None, exists=True, dir_okay=False, help="word2vec text file used for query expansion"),
    expansion: bool = typer.Option(True, "--expansion/--no-expansion", help="Expand the query with synonyms"),
    hf_api_key: Optional[str] = typer.Option(None, "--hf-api-key", envvar="HF_API_KEY", help="Hugging Face API key"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search the indexed JSONL database."""
    _setup_logging(verbose)
    config = AppConfig(index_dir=index_dir, provider=provider, api_key=hf_api_key)
    resolved_dir = config.resolve_index_dir(Path.cwd())

    try:
        loaded = IndexStore(resolved_dir).load()
        config.model_name = model or loaded.metadata.model
        expander = QueryExpander()
        if expansion:
            expander = QueryExpander(
                WordNetSynonyms(),
                WordVectorNeighbors.from_file(word_vectors) if word_vectors else None,
            )
        searcher = HybridSearcher(_build_embedder(config), TextNormalizer(), expander)
        results = searcher.search(
            query,
            loaded,
            limit=limit,
            threshold=threshold,
            semantic_weight=semantic_weight,
            title_weight=title_weight,
        )
    except JsonlSearchError as exc:
        _fail(f"Search failed: {exc}")

    if not results:
        console.print("[yellow]No results found matching your query.[/yellow]")
        return

    console.print(f"Found {len(results)} results")
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#")
    table.add_column("Title")
    table.add_column("Score")
    table.add_column("Relevance")
    table.add_column("Snippet")
    for rank, result in enumerate(results, start=1):
        table.add_row(
            str(rank),
            result.title or "Untitled",
            f"{result.score:.4f}",
            f"{result.relevance * 100:.2f}%",
            _snippet(result.content),
        )
    console.print(table)
