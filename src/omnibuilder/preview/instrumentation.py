"""Instrumentation injected into every composed preview document.

The instrumentation block runs before any project script and:
  1. Wraps console.log/error/warn/info (originals still run) and relays each
     call as ``{source, type, message, seq}`` to the host.
  2. Reports uncaught errors through window.onerror without suppressing them.
  3. Optionally presents a phone-like navigator profile (mobile emulation).
  4. Optionally logs and highlights clicked elements (debug mode).

Relay: ``window.parent.postMessage`` when the preview is framed, otherwise a
beacon POST to ``/__telemetry__`` on the serving host. ``seq`` numbers the
messages of one document so the host can restore production order.
"""

from __future__ import annotations

import json
import re
from string import Template

from omnibuilder.project.files import ProjectFile

TELEMETRY_SOURCE = "omnibuilder-preview"
TELEMETRY_PATH = "/__telemetry__"

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 16_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/16.0 Mobile/15E148 Safari/604.1"
)

_SCRIPT_CLOSE_RE = re.compile(r"</(script)", re.IGNORECASE)

_INSTRUMENTATION = Template(
    """<script>
(function () {
  var SOURCE = $source;
  var ENDPOINT = $endpoint;
  var MOBILE = $mobile;
  var DEBUG = $debug;
  var HIGHLIGHT_MS = $highlight_ms;
  var seq = 0;

  if (MOBILE) {
    var profile = { userAgent: $user_agent, platform: "iPhone", maxTouchPoints: 5 };
    Object.keys(profile).forEach(function (key) {
      try {
        Object.defineProperty(navigator, key, {
          get: function () { return profile[key]; },
          configurable: true
        });
      } catch (e) {}
    });
    try {
      if (!("ontouchstart" in window)) { window.ontouchstart = null; }
    } catch (e) {}
  }

  function formatArg(arg) {
    try {
      if (arg instanceof Error) { return arg.name + ": " + arg.message; }
      if (arg !== null && typeof arg === "object") { return JSON.stringify(arg); }
      return String(arg);
    } catch (e) {
      try { return String(arg); } catch (e2) {
        try { return "[object " + Object.prototype.toString.call(arg).slice(8, -1) + "]"; }
        catch (e3) { return "[object Unknown]"; }
      }
    }
  }

  function relay(payload) {
    if (window.parent && window.parent !== window) {
      window.parent.postMessage(payload, "*");
      return;
    }
    var body = JSON.stringify(payload);
    var url = new URL(ENDPOINT, window.location.href).toString();
    if (navigator.sendBeacon && navigator.sendBeacon(url, body)) { return; }
    if (window.fetch) {
      fetch(url, { method: "POST", body: body, keepalive: true, mode: "no-cors" });
    }
  }

  function emit(type, args) {
    try {
      var message = Array.prototype.map.call(args, formatArg).join(" ");
      relay({ source: SOURCE, type: type, message: message, seq: seq++ });
    } catch (e) {}
  }

  ["log", "error", "warn", "info"].forEach(function (level) {
    var original = console[level];
    console[level] = function () {
      if (original) { original.apply(console, arguments); }
      emit(level, arguments);
    };
  });

  window.onerror = function (msg) {
    emit("error", [msg]);
    return false;
  };

  if (DEBUG) {
    document.addEventListener("click", function (event) {
      var el = event.target;
      if (!el || !el.tagName) { return; }
      var info = el.tagName.toLowerCase();
      if (el.id) { info += "#" + el.id; }
      var cls = typeof el.className === "string" ? el.className.trim().split(/\\s+/)[0] : "";
      if (cls) { info += "." + cls; }
      console.info("Element clicked:", info);
      if (el.style) {
        var previous = el.style.outline;
        el.style.outline = "2px solid #f97316";
        setTimeout(function () { el.style.outline = previous; }, HIGHLIGHT_MS);
      }
    }, true);
  }
})();
</script>"""
)


def build_instrumentation(
    debug_mode: bool = False,
    mobile_emulation: bool = False,
    highlight_ms: int = 1000,
) -> str:
    """Return the instrumentation ``<script>`` block for one assembly."""
    return _INSTRUMENTATION.substitute(
        source=json.dumps(TELEMETRY_SOURCE),
        endpoint=json.dumps(TELEMETRY_PATH),
        mobile=json.dumps(bool(mobile_emulation)),
        debug=json.dumps(bool(debug_mode)),
        highlight_ms=int(highlight_ms),
        user_agent=json.dumps(MOBILE_USER_AGENT),
    )


def wrap_script(file: ProjectFile) -> str:
    """Wrap one script file so a throw is reported and later scripts still run.

    Top-level ``let``/``const``/``class`` declarations end up block scoped to
    the try block and are not visible to other scripts.
    """
    label = json.dumps(f"Script Error in {file.name}:")
    block = (
        "try {\n"
        f"{file.content}\n"
        "} catch (e) {\n"
        f"  console.error({label}, e);\n"
        "}"
    )
    return f"<script>\n{escape_script_close(block)}\n</script>"


def escape_script_close(source: str) -> str:
    """Escape ``</script`` so inlined code cannot terminate its own block."""
    return _SCRIPT_CLOSE_RE.sub(r"<\\/\1", source)
