"""Full-page HTML assembly."""

import html

from .styles import page_css

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <meta name="viewport" content="width=device-width, initial-scale=1.0" />
  <title>{title}</title>
  <style>{css}</style>
</head>
<body>
  <article class="prose">
{body}
  </article>
{script}
</body>
</html>
"""

# Opens the push channel on the same host, reloads on "reload" and reconnects
# after a fixed delay when the socket drops (covers server restarts).
RELOAD_SCRIPT_TEMPLATE = """<script>
(function () {
  var scheme = location.protocol === "https:" ? "wss://" : "ws://";
  function connect() {
    var ws = new WebSocket(scheme + location.host + "%(ws_path)s");
    ws.onmessage = function (event) {
      if (event.data === "reload") { location.reload(); }
    };
    ws.onclose = function () { setTimeout(connect, %(reconnect_ms)d); };
  }
  connect();
})();
</script>"""


def build_reload_script(ws_path: str, reconnect_ms: int) -> str:
    """Return the live-reload client script for the given socket path."""
    return RELOAD_SCRIPT_TEMPLATE % {
        "ws_path": ws_path.replace("\\", "\\\\").replace('"', '\\"'),
        "reconnect_ms": int(reconnect_ms),
    }


def build_page(title: str, body: str, inject_script: str | None = None) -> str:
    """Wrap rendered body markup in a complete, styled HTML document.

    Args:
        title: Document title (escaped here)
        body: Rendered HTML body, inserted verbatim
        inject_script: Optional markup placed just before ``</body>``
    """
    return PAGE_TEMPLATE.format(
        title=html.escape(title, quote=True),
        css=page_css(),
        body=body,
        script=inject_script or "",
    )
