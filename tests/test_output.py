"""Tests for the diagnostics output system.

Covers:
- NO_COLOR / TERM=dumb color disabling
- Quiet mode suppression rules
- Verbose mode debug output
- Payload redaction
- Global instance management
"""

from __future__ import annotations

import pytest

from idxauth.output import (
    REDACTED,
    OutputManager,
    _should_disable_color,
    get_output,
    redact_payload,
    reset_output,
    set_output,
)


@pytest.fixture(autouse=True)
def _reset_global_output():
    reset_output()
    yield
    reset_output()


class TestColorDetection:
    def test_no_color_env(self, monkeypatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_color_allowed(self, monkeypatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestLevels:
    def test_info_shown_by_default(self, capsys) -> None:
        OutputManager(no_color=True).info("hello")
        captured = capsys.readouterr()
        assert captured.err == "hello\n"
        assert captured.out == ""

    def test_quiet_suppresses_info_and_success(self, capsys) -> None:
        output = OutputManager(no_color=True, quiet=True)
        output.info("hello")
        output.success("done")
        assert capsys.readouterr().err == ""

    def test_quiet_keeps_warnings(self, capsys) -> None:
        OutputManager(no_color=True, quiet=True).warning("careful")
        assert "Warning: careful" in capsys.readouterr().err

    def test_debug_only_when_verbose(self, capsys) -> None:
        OutputManager(no_color=True).debug("hidden")
        assert capsys.readouterr().err == ""
        OutputManager(no_color=True, verbose=True).debug("shown")
        assert "[debug] shown" in capsys.readouterr().err

    def test_flags(self) -> None:
        output = OutputManager(quiet=True, verbose=True)
        assert output.is_quiet is True
        assert output.is_verbose is True


class TestRedaction:
    def test_nested_secrets(self) -> None:
        payload = {
            "identifier": "jane",
            "credentials": {"passcode": "hunter2"},
            "authenticator": {"id": "id-phone", "phoneNumber": "555"},
        }
        assert redact_payload(payload) == {
            "identifier": "jane",
            "credentials": {"passcode": REDACTED},
            "authenticator": {"id": "id-phone", "phoneNumber": "555"},
        }

    def test_lists_and_token_fields(self) -> None:
        payload = [{"code_verifier": "v", "client_id": "c"}, {"access_token": "t"}]
        assert redact_payload(payload) == [
            {"code_verifier": REDACTED, "client_id": "c"},
            {"access_token": REDACTED},
        ]

    def test_does_not_mutate_input(self) -> None:
        payload = {"password": "p"}
        redact_payload(payload)
        assert payload == {"password": "p"}

    def test_none_left_alone(self) -> None:
        assert redact_payload({"password": None}) == {"password": None}


class TestGlobalInstance:
    def test_default_is_quiet(self) -> None:
        assert get_output().is_quiet is True

    def test_lazy_singleton(self) -> None:
        assert get_output() is get_output()

    def test_set_and_reset(self) -> None:
        custom = OutputManager(verbose=True)
        set_output(custom)
        assert get_output() is custom
        reset_output()
        assert get_output() is not custom
