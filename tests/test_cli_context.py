"""Tests for the CLI context management module."""

import time

import pytest
import typer

from modelmatch.api.token import AccessToken
from modelmatch.errors import AuthenticationError, ClientError, ResolutionError
from cli.context import (
    EXIT_ERROR,
    EXIT_INTERRUPTED,
    CliContext,
    _get_context_path,
    get_access_token,
    handle_errors,
    invalidate_token,
    load_context,
    require_tenant,
    save_context,
)


@pytest.fixture
def temp_context_dir(tmp_path, monkeypatch):
    """Override the config directory to use a temporary path."""
    context_dir = tmp_path / ".modelmatch"
    monkeypatch.setattr("cli.context.settings.cli_config_dir", context_dir)
    monkeypatch.setattr("cli.context.settings.access_token", "")
    return context_dir


def _fresh(value: str = "cached-tok") -> AccessToken:
    return AccessToken(value=value, expires_at=time.time() + 3600)


def test_load_default_context(temp_context_dir):
    """Should return defaults when no file exists."""
    ctx = load_context()
    assert isinstance(ctx, CliContext)
    assert ctx.tokens == {}


def test_save_and_load_roundtrip(temp_context_dir):
    """Should save context to disk (creating the directory) and load it back."""
    ctx = CliContext()
    ctx.store_token("acme", AccessToken(value="abc", expires_at=123.0))

    save_context(ctx)

    assert _get_context_path().parent == temp_context_dir
    loaded = load_context()
    assert loaded.cached_token("acme") == AccessToken(value="abc", expires_at=123.0)
    assert loaded.cached_token("other") is None


def test_load_corrupt_context(temp_context_dir):
    """Should return defaults if the file is corrupt JSON."""
    temp_context_dir.mkdir()
    (temp_context_dir / "context.json").write_text("{invalid-json", encoding="utf-8")

    assert load_context().tokens == {}


def test_malformed_token_entry_is_ignored():
    ctx = CliContext(tokens={"acme": {"token": "abc"}})
    assert ctx.cached_token("acme") is None


class TestAccessToken:
    def test_static_token_wins(self, temp_context_dir, monkeypatch):
        monkeypatch.setattr("cli.context.settings.access_token", "static")
        assert get_access_token("acme") == "static"

    def test_valid_cached_token_is_reused(self, temp_context_dir, monkeypatch):
        ctx = CliContext()
        ctx.store_token("acme", _fresh())
        save_context(ctx)

        def fail():
            raise AssertionError("must not request a token")

        monkeypatch.setattr("cli.context.request_token", fail)
        assert get_access_token("acme") == "cached-tok"

    def test_expired_token_is_replaced_and_cached(self, temp_context_dir, monkeypatch):
        ctx = CliContext()
        ctx.store_token("acme", AccessToken(value="old", expires_at=time.time() - 1))
        save_context(ctx)
        monkeypatch.setattr("cli.context.request_token", lambda: _fresh("new-tok"))

        assert get_access_token("acme") == "new-tok"
        assert load_context().cached_token("acme").value == "new-tok"

    def test_invalidate(self, temp_context_dir):
        ctx = CliContext()
        ctx.store_token("acme", _fresh())
        save_context(ctx)

        assert invalidate_token("acme") is True
        assert invalidate_token("acme") is False
        assert load_context().tokens == {}

    def test_require_tenant(self, monkeypatch):
        monkeypatch.setattr("cli.context.settings.tenant", "")
        with pytest.raises(ClientError):
            require_tenant()
        monkeypatch.setattr("cli.context.settings.tenant", "acme")
        assert require_tenant() == "acme"


class TestHandleErrors:
    def test_library_error_exits_1(self):
        @handle_errors
        def command():
            raise ResolutionError("r", "HTTP 503")

        with pytest.raises(typer.Exit) as excinfo:
            command()
        assert excinfo.value.exit_code == EXIT_ERROR

    def test_authentication_error_exits_1(self):
        @handle_errors
        def command():
            raise AuthenticationError("no credentials")

        with pytest.raises(typer.Exit) as excinfo:
            command()
        assert excinfo.value.exit_code == EXIT_ERROR

    def test_interrupt_exits_130(self):
        @handle_errors
        def command():
            raise KeyboardInterrupt

        with pytest.raises(typer.Exit) as excinfo:
            command()
        assert excinfo.value.exit_code == EXIT_INTERRUPTED

    def test_interrupt_names_the_request_timeout(self, monkeypatch, capsys):
        monkeypatch.setattr("cli.context.settings.request_timeout", 30.0)

        @handle_errors
        def command():
            raise KeyboardInterrupt

        with pytest.raises(typer.Exit):
            command()
        err = capsys.readouterr().err
        assert "no output written" in err
        assert "up to 30s" in err
        assert "MODELMATCH_REQUEST_TIMEOUT" in err

    def test_other_errors_propagate(self):
        @handle_errors
        def command():
            raise RuntimeError("bug")

        with pytest.raises(RuntimeError):
            command()
