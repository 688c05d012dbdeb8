"""Demo application — a Chirp app with log forwarding and a runcode control.

``whisker demo`` serves a single page with a counter, a button that logs to
the browser console, and a runcode control. Each browser session gets its
own namespace holding ``counter`` and the ``dom`` helpers, so typing::

    counter += 1; dom.html("counter", counter)

and pressing *Run* updates the page from the server.
"""

import time
from pathlib import Path
from typing import Any

from chirp import App, AppConfig, Request, Response

from whisker import dom
from whisker.bridge import Whisker
from whisker.config import WhiskerConfig
from whisker.config_loader import load_config
from whisker.runcode import runcode_server, runcode_ui
from whisker.session import Session
from whisker.showlog import show_log

_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>Whisker demo</title>
<style>
body{{font-family:system-ui,sans-serif;max-width:720px;margin:2rem auto;padding:0 1rem}}
.whisker-runcode input,.whisker-runcode textarea{{width:100%;margin-bottom:0.5rem}}
</style>
</head>
<body>
<h1>Whisker demo</h1>
<p>Counter: <strong id="counter">0</strong></p>
<p><button type="button" onclick="console.log({{clicked: new Date().toISOString()}})">
Log to server console</button></p>
<h2>Run code</h2>
<p>Try <code>counter += 1; dom.html("counter", counter)</code></p>
{runcode}
</body>
</html>
"""

_STARTER_CODE = 'counter += 1; dom.html("counter", counter)'


def render_page(editor: str = "text") -> str:
    """Render the demo page HTML."""
    return _PAGE.format(runcode=runcode_ui(code=_STARTER_CODE, type=editor))


def session_namespace(session: Session) -> dict[str, Any]:
    """Fresh namespace for code submitted from one browser session."""
    return {"__name__": "whisker_demo", "dom": dom, "session": session, "counter": 0}


def create_app(config: WhiskerConfig, *, editor: str = "text") -> tuple[App, Whisker]:
    """Build the demo Chirp app and its whisker bridge.

    Raises:
        ConfigError: If *editor* is not a known editor kind.

    """
    page = render_page(editor)

    app = App(config=AppConfig(host=config.host, port=config.port))
    whisker = Whisker(app, config)

    @app.route("/", name="whisker:demo")
    async def index(request: Request) -> Response:
        return Response(body=page, content_type="text/html; charset=utf-8")

    @whisker.on_session
    def session_started(session: Session) -> None:
        show_log(session, label=config.log_label)
        runcode_server(session, scope=session_namespace(session))

    return app, whisker


def demo(root: str | Path = ".", *, editor: str = "text", **kwargs: object) -> None:
    """Run the demo server.

    Args:
        root: Directory searched for whisker.yaml / whisker.toml.
        editor: Editor kind for the runcode control.
        **kwargs: Override WhiskerConfig fields.

    """
    from whisker.banner import print_banner

    t0 = time.perf_counter()
    config = load_config(Path(root), **kwargs)
    app, _whisker = create_app(config, editor=editor)
    load_ms = (time.perf_counter() - t0) * 1000

    print_banner(config, editor=editor, load_ms=load_ms)
    app.run(host=config.host, port=config.port)
