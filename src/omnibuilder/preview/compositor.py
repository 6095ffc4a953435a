"""Document compositor: merge a File Set into one self-contained HTML document.

Pipeline (order is fixed; later steps operate on earlier output):
  1. Pick the first ``.html`` file as the root document.
  2. Inline binary assets as ``data:`` URIs (AssetInliner strategy).
  3. Drop ``<link>`` tags pointing at project stylesheets and insert every
     stylesheet, each in its own ``<style>`` block, before ``</head>``.
     No ``</head>`` → the styles are prepended to the document.
  4. Drop ``<script src>`` tags pointing at project scripts and insert the
     instrumentation block followed by one isolated block per script before
     ``</body>``. No ``</body>`` → appended to the document.
  5. Return the document.

Stylesheet and script contents go through the same asset inliner before they
are embedded, so ``url(bg.png)`` in a stylesheet resolves as well.
"""

from __future__ import annotations

import re
from typing import Iterable

from omnibuilder.preview.assets import AssetInliner, GlobalTextInliner
from omnibuilder.preview.instrumentation import build_instrumentation, wrap_script
from omnibuilder.project.files import FileSet, ProjectFile

MARKUP_EXTENSION = ".html"
STYLE_EXTENSION = ".css"
SCRIPT_EXTENSION = ".js"

_HEAD_CLOSE_RE = re.compile(r"</head\s*>", re.IGNORECASE)
_BODY_CLOSE_RE = re.compile(r"</body\s*>", re.IGNORECASE)


class NotComposable(Exception):
    """The File Set has no markup file, so there is nothing to preview."""

    def __init__(self) -> None:
        super().__init__(
            "No HTML file in the project; it cannot be previewed in the browser."
        )


def is_composable(files: FileSet | Iterable[ProjectFile]) -> bool:
    return _root_document(list(files)) is not None


def compose_document(
    files: FileSet | Iterable[ProjectFile],
    debug_mode: bool = False,
    mobile_emulation: bool = False,
    *,
    instrument: bool = True,
    inliner: AssetInliner | None = None,
    highlight_ms: int = 1000,
) -> str:
    """Merge *files* into one executable HTML document.

    Args:
        files: The project File Set (iteration order is significant).
        debug_mode: Enable the click inspector in the instrumentation block.
        mobile_emulation: Present a phone-like navigator profile.
        instrument: Include the telemetry instrumentation block. Exported
            documents are composed without it.
        inliner: Asset inlining strategy (default: GlobalTextInliner).
        highlight_ms: Duration of the debug-mode click highlight.

    Returns:
        The composed document.

    Raises:
        NotComposable: If no file name ends in ``.html``.
    """
    file_list = list(files)
    root = _root_document(file_list)
    if root is None:
        raise NotComposable()

    inliner = inliner or GlobalTextInliner()
    stylesheets = [f for f in file_list if f.name.endswith(STYLE_EXTENSION)]
    scripts = [f for f in file_list if f.name.endswith(SCRIPT_EXTENSION)]

    # Step 2: assets
    document = inliner.inline(root.content, file_list)

    # Step 3: stylesheets
    for f in stylesheets:
        document = _strip_link_tags(document, f.name)
    if stylesheets:
        styles = "\n".join(
            f"<style>\n{_escape_style_close(inliner.inline(f.content, file_list))}\n</style>"
            for f in stylesheets
        )
        document = _insert_before_head_close(document, styles + "\n")

    # Step 4: instrumentation + scripts
    for f in scripts:
        document = _strip_script_tags(document, f.name)
    blocks: list[str] = []
    if instrument:
        blocks.append(build_instrumentation(debug_mode, mobile_emulation, highlight_ms))
    for f in scripts:
        blocks.append(
            wrap_script(ProjectFile(f.name, inliner.inline(f.content, file_list), f.language))
        )
    if blocks:
        document = _insert_before_body_close(document, "\n".join(blocks) + "\n")

    return document


def export_single_html(files: FileSet | Iterable[ProjectFile]) -> str:
    """Compose a downloadable single-file document (no telemetry block).

    Raises:
        NotComposable: If no file name ends in ``.html``.
    """
    return compose_document(files, instrument=False)


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _root_document(files: list[ProjectFile]) -> ProjectFile | None:
    return next((f for f in files if f.name.endswith(MARKUP_EXTENSION)), None)


def _reference(name: str) -> str:
    """Attribute value matching *name*, quoted or not, with an optional ``./`` prefix."""
    escaped = re.escape(name)
    return r"""(?:["'](?:\./)?""" + escaped + r"""["']|(?:\./)?""" + escaped + r"""(?=[\s>]))"""


def _strip_link_tags(document: str, name: str) -> str:
    pattern = re.compile(r"<link\s+[^>]*href=" + _reference(name) + r"[^>]*>", re.IGNORECASE)
    return pattern.sub("", document)


def _strip_script_tags(document: str, name: str) -> str:
    pattern = re.compile(
        r"<script\s+[^>]*src=" + _reference(name) + r"[^>]*>\s*</script\s*>",
        re.IGNORECASE,
    )
    return pattern.sub("", document)


def _escape_style_close(css: str) -> str:
    return re.sub(r"</(style)", r"<\\/\1", css, flags=re.IGNORECASE)


def _insert_before_head_close(document: str, fragment: str) -> str:
    match = _HEAD_CLOSE_RE.search(document)
    if match is None:
        return fragment + document
    return document[: match.start()] + fragment + document[match.start():]


def _insert_before_body_close(document: str, fragment: str) -> str:
    matches = list(_BODY_CLOSE_RE.finditer(document))
    if not matches:
        return document + "\n" + fragment
    pos = matches[-1].start()
    return document[:pos] + fragment + document[pos:]
