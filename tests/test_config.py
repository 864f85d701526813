"""Tests for environment resolution and run configuration."""

import io
from pathlib import Path

import pytest

from update_advisor.cli import build_parser
from update_advisor.config import (
    DEFAULT_CACHE_TTL,
    build_config,
    resolve_environment,
    suggest_environments,
    supports_color,
)
from update_advisor.errors import UsageError
from update_advisor.models import Verbosity

AVAILABLE = ["base", "ml", "ml-gpu", "webdev", "data"]


class FakeTTY(io.StringIO):
    def isatty(self):
        return True


def test_active_environment_is_used():
    assert resolve_environment(None, {"CONDA_DEFAULT_ENV": "ml"}, AVAILABLE) == "ml"


@pytest.mark.parametrize("environ", [{}, {"CONDA_DEFAULT_ENV": ""}, {"CONDA_DEFAULT_ENV": "base"}])
def test_no_usable_active_environment(environ):
    with pytest.raises(UsageError, match="--name"):
        resolve_environment(None, environ, AVAILABLE)


def test_base_is_refused_by_name():
    with pytest.raises(UsageError, match="base"):
        resolve_environment("base", {}, AVAILABLE)


def test_unknown_environment_lists_alternatives():
    with pytest.raises(UsageError) as excinfo:
        resolve_environment("webdevelop", {}, AVAILABLE)
    error = excinfo.value
    assert "webdevelop" in str(error)
    assert error.suggestions == ["webdev"]
    assert "base" not in error.alternatives
    assert error.alternatives == ["ml", "ml-gpu", "webdev", "data"]


def test_suggestions_are_capped():
    available = ["ml-a", "ml-b", "ml-c", "ml-d"]
    assert suggest_environments("ml-x", available) == ["ml-a", "ml-b", "ml-c"]
    assert suggest_environments("", available) == []


def test_supports_color():
    assert supports_color({}, FakeTTY())
    assert not supports_color({}, io.StringIO())
    assert not supports_color({"NO_COLOR": "1"}, FakeTTY())
    assert not supports_color({"CI": "true"}, FakeTTY())
    assert not supports_color({"GITHUB_ACTIONS": "true"}, FakeTTY())


def test_build_config_defaults(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    args = build_parser().parse_args([])
    config = build_config(args, environ={"CONDA_DEFAULT_ENV": "ml"}, available=AVAILABLE)

    assert config.env_name == "ml"
    assert config.verbosity is Verbosity.DEFAULT
    assert config.include_conda and config.include_pip
    assert config.interactive
    assert config.cache_ttl == DEFAULT_CACHE_TTL
    assert config.tools_dir == tmp_path


def test_build_config_flags(tmp_path: Path):
    args = build_parser().parse_args(
        ["--name", "ml-gpu", "--summary", "--pip-only", "--yes", "--cache-ttl", "60", "--batch"]
    )
    environ = {"UPDATE_ADVISOR_TOOLS_DIR": str(tmp_path), "NO_COLOR": "1"}
    config = build_config(args, environ=environ, available=AVAILABLE)

    assert config.env_name == "ml-gpu"
    assert config.verbosity is Verbosity.SUMMARY
    assert not config.include_conda and config.include_pip
    assert config.non_interactive and config.batch
    assert config.cache_ttl == 60
    assert config.tools_dir == tmp_path
    assert not config.use_color


def test_build_config_rejects_bad_ttl():
    args = build_parser().parse_args(["--cache-ttl", "0"])
    with pytest.raises(UsageError, match="cache-ttl"):
        build_config(args, environ={"CONDA_DEFAULT_ENV": "ml"}, available=AVAILABLE)
