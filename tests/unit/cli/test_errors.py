"""Tests for askai rich error messages."""

from __future__ import annotations

from askai.cli.errors import (
    err_archive_failed,
    err_archive_unreadable,
    err_config,
    err_empty_question,
    err_no_api_key,
    err_store_unreachable,
    err_stream_failed,
    err_vault,
    warn_not_indexed,
)


def test_err_no_api_key_known_provider():
    msg = err_no_api_key("openai")
    assert "OPENAI_API_KEY" in msg
    assert "ollama/" in msg


def test_err_no_api_key_unknown_provider():
    assert "TOGETHER_API_KEY" in err_no_api_key("together")


def test_err_no_api_key_uses_client_env_names():
    assert "GROQ_API_KEY" in err_no_api_key("groq")
    assert "OPENAI_API_KEY" in err_no_api_key("OpenAI")


def test_err_store_unreachable_names_endpoint_and_fallback():
    msg = err_store_unreachable("localhost:6334", "connection refused")
    assert "localhost:6334" in msg
    assert "connection refused" in msg
    assert "--no-save" in msg


def test_err_stream_failed_names_server():
    msg = err_stream_failed("model not found", "http://localhost:11434")
    assert "model not found" in msg
    assert "http://localhost:11434" in msg


def test_archive_failure_does_not_suggest_reindex():
    msg = err_archive_failed("disk full")
    assert "disk full" in msg
    assert "not written to the vault" in msg
    assert "reindex" not in msg


def test_not_indexed_warning_points_to_reindex():
    msg = warn_not_indexed("store down")
    assert "Saved to vault, not indexed: store down" in msg
    assert "askai index reindex" in msg


def test_remaining_messages_carry_detail():
    assert "bad yaml" in err_config("bad yaml")
    assert "ASKAI_VAULT" in err_vault("not writable")
    assert "que_ans.json" in err_archive_unreadable("parse error")
    assert "askai ask" in err_empty_question()
