"""Tests for CLI commands."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from conftest import FakeProvider, StaticSynonyms
from jsonlsearch.cli import _setup_logging, _snippet, app
from jsonlsearch.embedding.encoder import EmbeddingClient
from jsonlsearch.errors import CorpusUnavailable
from jsonlsearch.index.indexer import IndexBuilder
from jsonlsearch.utils.text import TextNormalizer

runner = CliRunner()


@pytest.fixture
def cli_stack(normalizer: TextNormalizer):
    """Swap the real model and NLTK resources for deterministic fakes."""
    with patch("jsonlsearch.cli._build_embedder", return_value=EmbeddingClient(FakeProvider())) as build_embedder, \
            patch("jsonlsearch.cli.TextNormalizer", return_value=normalizer), \
            patch("jsonlsearch.cli.WordNetSynonyms", return_value=StaticSynonyms({"feline": [["cat"]]})) as synonyms:
        yield build_embedder, synonyms


@pytest.fixture
def built_index(embedder: EmbeddingClient, normalizer: TextNormalizer, animals_jsonl: Path, tmp_path: Path) -> Path:
    index_dir = tmp_path / "index"
    IndexBuilder(embedder, normalizer, model_name="all-minilm").build(animals_jsonl, index_dir)
    return index_dir


class TestSetupLogging:
    """Tests for _setup_logging helper."""

    def test_setup_logging_verbose(self) -> None:
        """Verbose mode sets DEBUG level."""
        with patch("jsonlsearch.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=True)
            mock_config.assert_called_once()
            assert mock_config.call_args[1]["level"] == logging.DEBUG

    def test_setup_logging_normal(self) -> None:
        """Normal mode sets INFO level."""
        with patch("jsonlsearch.cli.logging.basicConfig") as mock_config:
            _setup_logging(verbose=False)
            assert mock_config.call_args[1]["level"] == logging.INFO


class TestSnippet:
    """Tests for _snippet helper."""

    def test_short_text(self) -> None:
        assert _snippet("line one\nline two") == "line one line two"

    def test_long_text_truncated(self) -> None:
        snippet = _snippet("x" * 250)

        assert snippet == "x" * 200 + "..."


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_analyze(self, animals_jsonl: Path) -> None:
        result = runner.invoke(app, ["analyze", str(animals_jsonl)])

        assert result.exit_code == 0
        assert "Total entries: 3" in result.output
        assert "title" in result.output
        assert "100%" in result.output

    def test_analyze_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["analyze", str(tmp_path / "missing.jsonl")])

        assert result.exit_code == 1
        assert "File not found" in result.output


class TestIndexCommand:
    """Tests for the index command."""

    def test_index(self, cli_stack, animals_jsonl: Path, tmp_path: Path) -> None:
        index_dir = tmp_path / "out"

        result = runner.invoke(app, ["index", str(animals_jsonl), "--output", str(index_dir), "--model", "all-minilm"])

        assert result.exit_code == 0, result.output
        assert "Indexed: 3" in result.output
        assert "Index built successfully" in result.output
        assert (index_dir / "index.db").is_file()
        assert (index_dir / "keywords.json").is_file()
        build_embedder, _ = cli_stack
        assert build_embedder.call_args[0][0].model_name == "all-minilm"

    def test_index_missing_file(self, cli_stack, tmp_path: Path) -> None:
        result = runner.invoke(app, ["index", str(tmp_path / "missing.jsonl"), "--output", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "File not found" in result.output
        assert not (tmp_path / "out").exists()

    def test_index_missing_corpus(self, cli_stack, animals_jsonl: Path, tmp_path: Path) -> None:
        """An unavailable NLTK corpus ends with a message naming it, not a traceback."""
        with patch("jsonlsearch.cli.TextNormalizer", side_effect=CorpusUnavailable("stopwords")):
            result = runner.invoke(app, ["index", str(animals_jsonl), "--output", str(tmp_path / "out")])

        assert result.exit_code == 1
        assert "stopwords" in result.output
        assert not isinstance(result.exception, CorpusUnavailable)

    def test_index_invalid_utf8_line(self, cli_stack, tmp_path: Path) -> None:
        source = tmp_path / "bytes.jsonl"
        source.write_bytes(b'{"content": "alpha"}\n{"content": "\xff"}\n{"content": "omega"}\n')

        result = runner.invoke(app, ["index", str(source), "--output", str(tmp_path / "out")])

        assert result.exit_code == 0, result.output
        assert "Indexed: 2, skipped: 1" in result.output

    def test_index_unknown_model(self, animals_jsonl: Path, tmp_path: Path, normalizer: TextNormalizer) -> None:
        with patch("jsonlsearch.cli.TextNormalizer", return_value=normalizer):
            result = runner.invoke(app, ["index", str(animals_jsonl), "--output", str(tmp_path / "out"), "--model", "nope"])

        assert result.exit_code == 1
        assert "Failed to initialize embedding model" in result.output


class TestSearchCommand:
    """Tests for the search command."""

    def test_search(self, cli_stack, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "feline pet", "--index", str(built_index), "--threshold", "0"])

        assert result.exit_code == 0, result.output
        assert "Found 3 results" in result.output
        assert "Cats" in result.output
        build_embedder, synonyms = cli_stack
        assert build_embedder.call_args[0][0].model_name == "all-minilm"
        synonyms.assert_called_once()

    def test_search_no_results(self, cli_stack, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "feline pet", "--index", str(built_index), "--threshold", "1"])

        assert result.exit_code == 0
        assert "No results found matching your query." in result.output

    def test_search_without_expansion(self, cli_stack, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "cats", "--index", str(built_index), "--no-expansion"])

        assert result.exit_code == 0
        _, synonyms = cli_stack
        synonyms.assert_not_called()

    def test_search_missing_index(self, cli_stack, tmp_path: Path) -> None:
        result = runner.invoke(app, ["search", "cats", "--index", str(tmp_path / "nowhere")])

        assert result.exit_code == 1
        assert "Index not found" in result.output

    def test_search_rejects_bad_threshold(self, cli_stack, built_index: Path) -> None:
        result = runner.invoke(app, ["search", "cats", "--index", str(built_index), "--threshold", "1.5"])

        assert result.exit_code != 0
