"""Run arbitrary Python code live from a page.

While developing an app it is often handy to poke at server state on
demand. ``runcode_ui()`` renders an input and a *Run* button; the matching
``runcode_server()`` evaluates whatever was typed, in the caller's module
namespace, each time the button is clicked::

    @app.route("/")
    def index():
        return Response(body=page(runcode_ui(code="dom.alert('Hello!')")))

    @whisker.on_session
    def session_started(session):
        runcode_server()

Errors (syntax or runtime) are caught and shown below the input; they never
reach the application. The error region is hidden again before every run.

**Never include this in an app other people can reach**: it executes any
code it is given, with the server's privileges.

Every element id derives from ``id``, so two controls with different ids are
independent. Two controls sharing an id react to the same clicks.
"""

from __future__ import annotations

import ast
import html
import inspect
import re
import time
import traceback
from typing import TYPE_CHECKING, Any

from whisker import dom
from whisker._errors import ConfigError
from whisker.client import use_whisker
from whisker.observability.events import CodeEvaluated, now_ns
from whisker.session import resolve_session

if TYPE_CHECKING:
    from whisker._types import EditorKind
    from whisker.config import WhiskerConfig
    from whisker.session import Observer, Session

DEFAULT_ID = "runcode"
PLACEHOLDER = "Enter Python code"
ERROR_TITLE = "Oops, that resulted in an error! Try again."

# Filename shown in tracebacks of submitted code
SOURCE_NAME = "<runcode>"

_EDITOR_KINDS = ("text", "textarea", "ace")

# Control ids end up in element ids, attributes and JS string literals
_ID_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9_-]*")

_ACE_CDN = "https://cdnjs.cloudflare.com/ajax/libs/ace/1.32.6/ace.js"
_ACE_RUN_KEYS = "F8|F9|F2|Ctrl-R"


def control_ids(id: str = DEFAULT_ID) -> dict[str, str]:
    """Element ids used by the runcode control named *id*.

    Raises:
        ConfigError: If *id* is not a letter followed by letters, digits,
            underscores or hyphens.

    """
    if not isinstance(id, str) or not _ID_PATTERN.fullmatch(id):
        msg = f"id must match {_ID_PATTERN.pattern!r}, got {id!r}"
        raise ConfigError(msg)
    return {
        "expr": f"{id}_expr",
        "run": f"{id}_run",
        "error": f"{id}_error",
        "error_msg": f"{id}_errorMsg",
    }


# ---------------------------------------------------------------------------
# UI
# ---------------------------------------------------------------------------


def _style(width: str | None, height: str | None = None) -> str:
    rules = []
    if width:
        rules.append(f"width: {width};")
    if height:
        rules.append(f"height: {height};")
    if not rules:
        return ""
    return f' style="{html.escape(" ".join(rules))}"'


def _text_input(expr_id: str, code: str, width: str | None) -> str:
    return (
        f'<input id="{expr_id}" type="text" class="form-control" data-whisker-input'
        f' value="{html.escape(code)}" placeholder="{PLACEHOLDER}"{_style(width)}>'
    )


def _textarea_input(expr_id: str, code: str, width: str | None, height: str | None) -> str:
    return (
        f'<textarea id="{expr_id}" class="form-control" data-whisker-input'
        f' placeholder="{PLACEHOLDER}"{_style(width, height)}>'
        f"{html.escape(code)}</textarea>"
    )


def _ace_input(
    expr_id: str, run_id: str, code: str, width: str | None, height: str | None,
) -> str:
    editor_id = f"{expr_id}_editor"
    style = _style(width or "100%", height or "200px")
    return (
        f'<textarea id="{expr_id}" data-whisker-input style="display: none;">'
        f"{html.escape(code)}</textarea>\n"
        f'<div id="{editor_id}"{style}></div>\n'
        f'<script src="{_ACE_CDN}"></script>\n'
        "<script>\n"
        "(function() {\n"
        f"  var area = document.getElementById('{expr_id}');\n"
        f"  var editor = ace.edit('{editor_id}');\n"
        "  editor.setTheme('ace/theme/github');\n"
        "  editor.session.setMode('ace/mode/python');\n"
        "  editor.setKeyboardHandler('ace/keyboard/vim');\n"
        "  editor.setFontSize(16);\n"
        "  editor.setValue(area.value, 1);\n"
        "  editor.session.on('change', function() { area.value = editor.getValue(); });\n"
        "  editor.commands.addCommand({\n"
        "    name: 'runKey',\n"
        f"    bindKey: {{win: '{_ACE_RUN_KEYS}', mac: '{_ACE_RUN_KEYS}'}},\n"
        f"    exec: function() {{ if (window.Whisker) Whisker.fire('{run_id}'); }}\n"
        "  });\n"
        "})();\n"
        "</script>"
    )


def runcode_ui(
    code: str = "",
    type: EditorKind = "text",
    width: str | None = None,
    height: str | None = None,
    include_whisker: bool = False,
    *,
    id: str = DEFAULT_ID,
    config: WhiskerConfig | None = None,
) -> str:
    """Render the runcode control as an HTML fragment.

    Args:
        code: Initial code shown in the input.
        type: ``"text"`` (single line, the default), ``"textarea"`` for
            multi-line code, or ``"ace"`` for an Ace editor. Several
            statements fit on one line when separated by semicolons.
        width: CSS width of the input.
        height: CSS height of the input (``textarea`` and ``ace`` only).
        include_whisker: Prepend the client script. Only needed when the
            page does not already get it from the whisker middleware.
        id: Control id; all element ids derive from it.
        config: Bridge configuration for the included client script.

    Raises:
        ConfigError: If *type* is not a known editor kind, or *id* is not a
            valid control id.

    """
    if type not in _EDITOR_KINDS:
        msg = f"type must be one of {_EDITOR_KINDS}, got {type!r}"
        raise ConfigError(msg)

    ids = control_ids(id)
    if type == "text":
        editor = _text_input(ids["expr"], code, width)
    elif type == "textarea":
        editor = _textarea_input(ids["expr"], code, width, height)
    else:
        editor = _ace_input(ids["expr"], ids["run"], code, width, height)

    parts = [
        use_whisker(config) if include_whisker else "",
        f'<div class="whisker-runcode" data-runcode="{id}">',
        editor,
        f'<button id="{ids["run"]}" type="button" class="btn btn-success"'
        " data-whisker-action>Run</button>",
        f'<div id="{ids["error"]}" class="whisker-hidden"'
        ' style="display: none; color: red; font-weight: bold;">',
        f"<div>{ERROR_TITLE}</div>",
        "<div>Error: <br>",
        f'<i><span id="{ids["error_msg"]}" style="margin-left: 10px;"></span></i>',
        "</div>",
        "</div>",
        "</div>",
    ]
    return "\n".join(p for p in parts if p)


# ---------------------------------------------------------------------------
# Evaluation
# ---------------------------------------------------------------------------


def evaluate(source: str, scope: dict[str, Any]) -> Any:
    """Execute *source* in *scope* and return the value of a trailing expression.

    Statements run with *scope* as their globals, so assignments persist
    between calls that share a scope. Returns None when the last statement
    is not an expression.

    Raises:
        SyntaxError: If *source* does not parse.
        Exception: Whatever the executed code raises.

    """
    tree = ast.parse(source, filename=SOURCE_NAME, mode="exec")
    tail: ast.Expression | None = None
    if tree.body and isinstance(tree.body[-1], ast.Expr):
        tail = ast.Expression(body=tree.body.pop().value)

    exec(compile(tree, SOURCE_NAME, "exec"), scope)  # noqa: S102
    if tail is None:
        return None
    return eval(compile(tail, SOURCE_NAME, "eval"), scope)  # noqa: S307


def error_message(exc: BaseException) -> str:
    """One-line, human-readable description of *exc*.

    Notes attached with ``add_note()`` are left out; they would otherwise
    follow, and replace, the ``Type: message`` line.
    """
    te = traceback.TracebackException.from_exception(exc)
    te.__notes__ = None
    lines = list(te.format_exception_only())
    return lines[-1].strip() if lines else type(exc).__name__


def runcode_server(
    session: Session | None = None,
    scope: dict[str, Any] | None = None,
    *,
    id: str = DEFAULT_ID,
) -> Observer:
    """Evaluate the control's code every time its *Run* button is clicked.

    Args:
        session: Target session (the current session when omitted).
        scope: Namespace the code runs in. Defaults to the calling
            module's globals, so names the code defines become visible
            to the surrounding module.
        id: Control id matching the ``runcode_ui()`` call.

    Returns:
        The observer on the control's run button.

    """
    target = resolve_session(session)
    if scope is None:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        scope = caller.f_globals if caller is not None else {}
        del frame, caller
    namespace = scope
    ids = control_ids(id)

    def _run(_clicks: object) -> None:
        dom.hide(ids["error"], session=target)

        source = target.input.get(ids["expr"]) or ""
        t0 = time.perf_counter()
        try:
            evaluate(str(source), namespace)
        except (Exception, SystemExit) as exc:
            message = error_message(exc)
            dom.html(ids["error_msg"], html.escape(message), session=target)
            dom.show(ids["error"], anim=True, anim_type="fade", session=target)
            ok = False
        else:
            message = ""
            ok = True

        target.record(CodeEvaluated(
            session_id=target.id,
            control_id=id,
            ok=ok,
            error=message,
            duration_ms=(time.perf_counter() - t0) * 1000,
            timestamp_ns=now_ns(),
        ))

    return target.observe_event(ids["run"], _run)
