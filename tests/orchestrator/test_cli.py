"""Tests for the terminal chat's command line."""

from main import build_parser
from settings import settings


def test_model_defaults_to_configured_model(monkeypatch):
    monkeypatch.setattr(settings, "default_model", "anthropic/claude-3-haiku")

    args = build_parser().parse_args([])

    assert args.model == "anthropic/claude-3-haiku"


def test_model_flag_overrides_default():
    args = build_parser().parse_args(["--model", "openai/gpt-4o", "--user", "ada"])

    assert args.model == "openai/gpt-4o"
    assert args.user == "ada"
