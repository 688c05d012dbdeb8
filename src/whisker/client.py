"""Browser client — the script that connects a page to its whisker session.

The script:
1. Generates a session id and opens an EventSource on the events endpoint
2. Posts ``data-whisker-input`` values on change, and all values on load
3. Posts a click counter plus every input value when a ``data-whisker-action``
   element is clicked, flagged as an event so it always fires
4. Applies ``whisker:call`` effects (hide, show, toggle, html, alert, log)
5. With ``showLog`` on, forwards ``console.log`` calls to the server; values
   that ``JSON.stringify`` rejects (cyclic objects) are silently skipped

The script guards against double inclusion, so it is safe to both inject it
with the middleware and include it via ``runcode_ui(include_whisker=True)``.
"""

from __future__ import annotations

import json
from dataclasses import replace
from typing import TYPE_CHECKING

from whisker.config import WhiskerConfig

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from chirp.http.request import Request
    from chirp.http.response import Response, SSEResponse, StreamingResponse
    from chirp.middleware.protocol import Next

    type AnyResponse = Response | StreamingResponse | SSEResponse


# Input name carrying forwarded console.log messages
SHOW_LOG_INPUT = "whisker-showLog"

# Attribute marking the script tag, used to detect existing inclusion
CLIENT_MARKER = "data-whisker-client"

_CLIENT_SCRIPT = """\
<script data-whisker-client>
(function() {
  if (window.Whisker) return;
  var cfg = __WHISKER_CONFIG__;
  var sid = (window.crypto && crypto.randomUUID) ? crypto.randomUUID()
    : Date.now().toString(16) + '-' + Math.random().toString(16).slice(2);
  var counts = {};
  var _log = console.log;

  function post(inputs, events) {
    return fetch(cfg.prefix + '/input', {
      method: 'POST',
      headers: {'Content-Type': 'application/json'},
      body: JSON.stringify({session: sid, inputs: inputs, events: events || []})
    }).catch(function() {});
  }
  function valueOf(el) {
    if (el.type === 'checkbox') return el.checked;
    if (el.type === 'number') return el.value === '' ? null : Number(el.value);
    return el.value;
  }
  function collect() {
    var out = {};
    document.querySelectorAll('[data-whisker-input]').forEach(function(el) {
      if (el.id) out[el.id] = valueOf(el);
    });
    return out;
  }
  function fire(id) {
    counts[id] = (counts[id] || 0) + 1;
    var values = collect();
    values[id] = counts[id];
    return post(values, [id]);
  }
  function bind(root) {
    root.querySelectorAll('[data-whisker-input]').forEach(function(el) {
      if (el._whisker) return;
      el._whisker = true;
      el.addEventListener('change', function() {
        var v = {};
        v[el.id] = valueOf(el);
        post(v);
      });
    });
    root.querySelectorAll('[data-whisker-action]').forEach(function(el) {
      if (el._whisker) return;
      el._whisker = true;
      el.addEventListener('click', function() { fire(el.id); });
    });
  }
  function isHidden(el) {
    return el.style.display === 'none' || getComputedStyle(el).display === 'none';
  }
  function display(el, visible, d) {
    var ms = (d.time || 0.5) * 1000;
    var fade = d.animType === 'fade';
    if (!d.anim) {
      el.style.display = visible ? '' : 'none';
      el.style.opacity = '';
      el.style.maxHeight = '';
      return;
    }
    el.style.overflow = 'hidden';
    el.style.transition = (fade ? 'opacity ' : 'max-height ') + ms + 'ms';
    if (visible) {
      el.style.display = '';
      if (fade) el.style.opacity = 0; else el.style.maxHeight = '0px';
      requestAnimationFrame(function() {
        if (fade) el.style.opacity = 1; else el.style.maxHeight = el.scrollHeight + 'px';
      });
    } else {
      if (fade) el.style.opacity = 0; else el.style.maxHeight = '0px';
      setTimeout(function() { el.style.display = 'none'; }, ms);
    }
  }
  var ops = {
    hide: function(el, d) { display(el, false, d); },
    show: function(el, d) { display(el, true, d); },
    toggle: function(el, d) { display(el, isHidden(el), d); },
    html: function(el, d) {
      if (d.add) el.innerHTML += d.html; else el.innerHTML = d.html;
    }
  };

  var src = new EventSource(cfg.prefix + '/events?session=' + encodeURIComponent(sid));
  src.addEventListener('whisker:call', function(e) {
    var d;
    try { d = JSON.parse(e.data); } catch (x) { return; }
    if (d.op === 'alert') { window.alert(d.text); return; }
    if (d.op === 'log') { _log.call(console, d.message); return; }
    var el = document.getElementById(d.id);
    if (el && ops[d.op]) ops[d.op](el, d);
  });

  if (cfg.showLog) {
    console.log = function() {
      _log.apply(console, arguments);
      var msg = arguments.length === 1 ? arguments[0]
        : Array.prototype.slice.call(arguments);
      var text;
      try { text = JSON.stringify(msg); } catch (x) { return; }
      if (text === undefined) return;
      var v = {};
      v[cfg.logInput] = JSON.parse(text);
      post(v, [cfg.logInput]);
    };
  }

  function start() {
    bind(document);
    post(collect());
  }
  if (document.readyState === 'loading') {
    document.addEventListener('DOMContentLoaded', start);
  } else {
    start();
  }
  window.Whisker = {session: sid, post: post, fire: fire, bind: bind};
})();
</script>
"""


def use_whisker(config: WhiskerConfig | None = None, *, show_log: bool | None = None) -> str:
    """Return the client ``<script>`` tag for a page.

    Args:
        config: Bridge configuration (endpoint prefix, log forwarding).
        show_log: Override ``config.show_log``.

    """
    cfg = config or WhiskerConfig()
    forward = cfg.show_log if show_log is None else show_log
    settings = json.dumps({
        "prefix": cfg.prefix,
        "showLog": forward,
        "logInput": SHOW_LOG_INPUT,
    })
    return _CLIENT_SCRIPT.replace("__WHISKER_CONFIG__", settings, 1)


def inject_script(body: str, script: str) -> str:
    """Insert *script* before ``</body>`` (or ``</html>``, or at the end).

    Bodies that already carry the client script are returned unchanged.
    """
    if CLIENT_MARKER in body:
        return body
    if "</body>" in body:
        return body.replace("</body>", script + "</body>", 1)
    if "</html>" in body:
        return body.replace("</html>", script + "</html>", 1)
    return body + script


def client_middleware(
    config: WhiskerConfig,
) -> Callable[[Request, Next], Awaitable[AnyResponse]]:
    """Build a Chirp middleware that injects the client script into HTML responses."""
    script = use_whisker(config)

    async def whisker_client_middleware(request: Request, next: Next) -> AnyResponse:
        response = await next(request)

        # Only inject into regular (non-streaming, non-SSE) HTML responses
        if not hasattr(response, "body") or not hasattr(response, "content_type"):
            return response
        if "text/html" not in response.content_type:
            return response

        body = response.body
        if isinstance(body, bytes):
            body = body.decode("utf-8")

        return replace(response, body=inject_script(body, script))

    return whisker_client_middleware
