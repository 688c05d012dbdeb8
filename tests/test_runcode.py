"""Tests for whisker.runcode — the live code control."""

from __future__ import annotations

from typing import Any

import pytest

from whisker._errors import ConfigError
from whisker.client import CLIENT_MARKER
from whisker.dom import DomEffect
from whisker.observability.events import CodeEvaluated
from whisker.observability.log import EventLog
from whisker.runcode import (
    DEFAULT_ID,
    ERROR_TITLE,
    PLACEHOLDER,
    control_ids,
    error_message,
    evaluate,
    runcode_server,
    runcode_ui,
)
from whisker.session import Session, session_context

# Module-level name the default-scope test reads back
runcode_marker = "unset"


def _run(session: Session, code: str, *, id: str = DEFAULT_ID, clicks: int = 1) -> list[DomEffect]:
    """Simulate typing *code* and clicking Run; return the queued effects."""
    ids = control_ids(id)
    session.set_inputs({ids["expr"]: code, ids["run"]: clicks}, events={ids["run"]})
    return session.drain()


# ---------------------------------------------------------------------------
# evaluate
# ---------------------------------------------------------------------------


class TestEvaluate:
    """evaluate — statements plus a trailing expression."""

    def test_assignment_persists_in_scope(self) -> None:
        scope: dict[str, Any] = {}
        evaluate("x = 1", scope)
        assert evaluate("x + 1", scope) == 2

    def test_statements_return_none(self) -> None:
        assert evaluate("y = 5", {}) is None

    def test_semicolon_separated(self) -> None:
        scope: dict[str, Any] = {}
        assert evaluate("a = 2; b = 3; a * b", scope) == 6

    def test_multiline(self) -> None:
        scope: dict[str, Any] = {}
        source = "def double(n):\n    return n * 2\n\ndouble(21)"
        assert evaluate(source, scope) == 42
        assert callable(scope["double"])

    def test_empty_source(self) -> None:
        assert evaluate("", {}) is None

    def test_syntax_error_raises(self) -> None:
        with pytest.raises(SyntaxError):
            evaluate("1 +", {})

    def test_runtime_error_propagates(self) -> None:
        with pytest.raises(ZeroDivisionError):
            evaluate("1 / 0", {})


class TestErrorMessage:
    """error_message — one-line error text."""

    def test_name_error(self) -> None:
        try:
            evaluate("undefined_name", {})
        except NameError as exc:
            message = error_message(exc)
        assert message.startswith("NameError:")
        assert "undefined_name" in message

    def test_syntax_error(self) -> None:
        try:
            evaluate("1 +", {})
        except SyntaxError as exc:
            message = error_message(exc)
        assert message.startswith("SyntaxError:")
        assert "\n" not in message

    def test_notes_left_out(self) -> None:
        exc = ValueError("bad value")
        exc.add_note("while loading settings")
        assert error_message(exc) == "ValueError: bad value"

    def test_bare_exception_type(self) -> None:
        assert error_message(SystemExit()) == "SystemExit"


# ---------------------------------------------------------------------------
# runcode_server
# ---------------------------------------------------------------------------


class TestRuncodeServer:
    """runcode_server — reacting to Run clicks."""

    def test_successful_run_only_hides_error(self, session: Session) -> None:
        scope: dict[str, Any] = {}
        runcode_server(session, scope)

        effects = _run(session, "x = 1")

        assert [(e.op, e.target) for e in effects] == [("hide", "runcode_error")]
        assert scope["x"] == 1

    def test_state_persists_between_runs(self, session: Session) -> None:
        scope: dict[str, Any] = {}
        runcode_server(session, scope)

        _run(session, "x = 1", clicks=1)
        _run(session, "x = x + 1", clicks=2)

        assert scope["x"] == 2

    def test_syntax_error_shows_message(self, session: Session) -> None:
        runcode_server(session, {})

        effects = _run(session, "1 +")

        assert [(e.op, e.target) for e in effects] == [
            ("hide", "runcode_error"),
            ("html", "runcode_errorMsg"),
            ("show", "runcode_error"),
        ]
        assert effects[1].args["html"]
        assert effects[2].args["anim"] is True
        assert effects[2].args["animType"] == "fade"

    def test_runtime_error_message_text(self, session: Session) -> None:
        runcode_server(session, {})

        effects = _run(session, "missing_name + 1")

        message = effects[1].args["html"]
        assert "NameError" in message
        assert "missing_name" in message

    def test_error_message_is_escaped(self, session: Session) -> None:
        runcode_server(session, {})

        effects = _run(session, "raise ValueError('<b>bad</b>')")

        message = effects[1].args["html"]
        assert "<b>" not in message
        assert "&lt;b&gt;bad&lt;/b&gt;" in message

    def test_success_after_error_hides_again(self, session: Session) -> None:
        runcode_server(session, {})
        _run(session, "1 +", clicks=1)

        effects = _run(session, "ok = True", clicks=2)

        assert [e.op for e in effects] == ["hide"]

    def test_same_code_runs_on_every_click(self, session: Session) -> None:
        scope: dict[str, Any] = {"n": 0}
        runcode_server(session, scope)

        for clicks in (1, 2, 3):
            _run(session, "n += 1", clicks=clicks)

        assert scope["n"] == 3

    def test_errors_never_reach_the_app(self, session: Session) -> None:
        runcode_server(session, {})
        _run(session, "raise SystemError('boom')")
        assert session.closed is False

    @pytest.mark.parametrize("code", ["exit()", "import sys; sys.exit(3)", "raise SystemExit"])
    def test_exit_is_shown_as_error(self, session: Session, code: str) -> None:
        runcode_server(session, {})

        effects = _run(session, code)

        assert [e.op for e in effects] == ["hide", "html", "show"]
        assert effects[1].args["html"].startswith("SystemExit")

    def test_empty_input_is_a_no_op(self, session: Session) -> None:
        runcode_server(session, {})
        ids = control_ids()
        session.set_inputs({ids["run"]: 1}, events={ids["run"]})

        effects = session.drain()
        assert [e.op for e in effects] == ["hide"]

    def test_trailing_expression_value_discarded(self, session: Session) -> None:
        runcode_server(session, {})
        effects = _run(session, "1 + 1")
        assert [e.op for e in effects] == ["hide"]

    def test_code_can_use_dom_helpers(self, session: Session) -> None:
        from whisker import dom

        runcode_server(session, {"dom": dom})
        effects = _run(session, "dom.alert('Hello!')")

        assert [e.op for e in effects] == ["hide", "alert"]
        assert effects[1].args == {"text": "Hello!"}

    def test_records_evaluations(self, session: Session, event_log: EventLog) -> None:
        runcode_server(session, {})
        _run(session, "1 +", clicks=1)
        _run(session, "2", clicks=2)

        latest, first = event_log.query(event_type=CodeEvaluated)
        assert first.ok is False
        assert first.error.startswith("SyntaxError")
        assert latest.ok is True
        assert latest.error == ""
        assert latest.control_id == "runcode"

    def test_registered_twice_both_react(self, session: Session) -> None:
        scope: dict[str, Any] = {"n": 0}
        runcode_server(session, scope)
        runcode_server(session, scope)

        effects = _run(session, "n += 1")

        assert scope["n"] == 2
        assert [e.op for e in effects] == ["hide", "hide"]

    def test_distinct_ids_are_independent(self, session: Session) -> None:
        first: dict[str, Any] = {}
        second: dict[str, Any] = {}
        runcode_server(session, first, id="left")
        runcode_server(session, second, id="right")

        effects = _run(session, "value = 'L'", id="left")

        assert first["value"] == "L"
        assert "value" not in second
        assert [e.target for e in effects] == ["left_error"]

    def test_default_scope_is_caller_globals(self, session: Session) -> None:
        runcode_server(session)
        _run(session, "runcode_marker = 'set'")

        assert globals()["runcode_marker"] == "set"

    def test_uses_current_session(self, session: Session) -> None:
        with session_context(session):
            observer = runcode_server(scope={})
        assert observer.session is session
        assert observer.name == "runcode_run"


# ---------------------------------------------------------------------------
# runcode_ui
# ---------------------------------------------------------------------------


class TestRuncodeUI:
    """runcode_ui — HTML for the control."""

    def test_text_input(self) -> None:
        markup = runcode_ui(code="x = 1")

        assert '<input id="runcode_expr" type="text"' in markup
        assert 'value="x = 1"' in markup
        assert f'placeholder="{PLACEHOLDER}"' in markup
        assert "data-whisker-input" in markup

    def test_run_button(self) -> None:
        markup = runcode_ui()
        assert '<button id="runcode_run"' in markup
        assert "data-whisker-action" in markup
        assert ">Run</button>" in markup

    def test_error_region_starts_hidden(self) -> None:
        markup = runcode_ui()

        assert 'id="runcode_error"' in markup
        assert 'id="runcode_errorMsg"' in markup
        assert ERROR_TITLE in markup
        assert "display: none; color: red; font-weight: bold;" in markup

    def test_code_is_escaped(self) -> None:
        markup = runcode_ui(code='dom.html("x", "<b>hi</b>")')

        assert "<b>hi</b>" not in markup
        assert "&lt;b&gt;hi&lt;/b&gt;" in markup
        assert "&quot;x&quot;" in markup

    def test_textarea(self) -> None:
        markup = runcode_ui(code="a = 1\nb = 2", type="textarea", width="400px", height="6em")

        assert '<textarea id="runcode_expr"' in markup
        assert "a = 1\nb = 2</textarea>" in markup
        assert "width: 400px; height: 6em;" in markup

    def test_width_on_text_input(self) -> None:
        markup = runcode_ui(width="50%")
        assert 'style="width: 50%;"' in markup

    def test_ace_editor(self) -> None:
        markup = runcode_ui(code="print(1)", type="ace")

        assert "ace.js" in markup
        assert "ace.edit('runcode_expr_editor')" in markup
        assert "ace/mode/python" in markup
        assert "Whisker.fire('runcode_run')" in markup
        # The backing textarea carries the value to the server
        assert '<textarea id="runcode_expr" data-whisker-input style="display: none;">' in markup

    def test_ace_default_size(self) -> None:
        markup = runcode_ui(type="ace")
        assert "width: 100%; height: 200px;" in markup

    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ConfigError, match="type must be one of"):
            runcode_ui(type="vim")  # type: ignore[arg-type]

    def test_custom_id_namespaces_elements(self) -> None:
        markup = runcode_ui(id="scratch")

        assert 'data-runcode="scratch"' in markup
        assert 'id="scratch_expr"' in markup
        assert 'id="scratch_run"' in markup
        assert 'id="scratch_error"' in markup
        assert 'id="scratch_errorMsg"' in markup
        assert "runcode_expr" not in markup

    @pytest.mark.parametrize("bad_id", ["", "9lives", "a\"b", "x');alert(1);('", "has space", "<tag>"])
    def test_unsafe_id_rejected(self, bad_id: str) -> None:
        with pytest.raises(ConfigError, match="id must match"):
            runcode_ui(id=bad_id)

    def test_unsafe_id_rejected_by_server(self, session: Session) -> None:
        with pytest.raises(ConfigError):
            runcode_server(session, {}, id="a\"b")
        assert session.observer_count() == 0

    def test_client_script_only_when_requested(self) -> None:
        assert CLIENT_MARKER not in runcode_ui()
        assert CLIENT_MARKER in runcode_ui(include_whisker=True)

    def test_control_ids(self) -> None:
        assert control_ids("abc") == {
            "expr": "abc_expr",
            "run": "abc_run",
            "error": "abc_error",
            "error_msg": "abc_errorMsg",
        }
