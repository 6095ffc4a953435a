"""Preview pipeline: document composition, sandbox lifecycle, telemetry."""

from omnibuilder.preview.assets import AssetInliner, GlobalTextInliner, data_uri, mime_type_for
from omnibuilder.preview.compositor import (
    NotComposable,
    compose_document,
    export_single_html,
    is_composable,
)
from omnibuilder.preview.instrumentation import TELEMETRY_SOURCE, build_instrumentation
from omnibuilder.preview.sandbox import (
    ExecutionContext,
    InvalidTransition,
    PreviewError,
    PreviewSandbox,
    PreviewState,
    SandboxConstructionFailed,
    SandboxDestroyed,
)
from omnibuilder.preview.server import HttpExecutionContext, http_context_factory
from omnibuilder.preview.telemetry import LogLevel, TelemetryChannel, TelemetryMessage

__all__ = [
    "AssetInliner",
    "ExecutionContext",
    "GlobalTextInliner",
    "HttpExecutionContext",
    "InvalidTransition",
    "LogLevel",
    "NotComposable",
    "PreviewError",
    "PreviewSandbox",
    "PreviewState",
    "SandboxConstructionFailed",
    "SandboxDestroyed",
    "TELEMETRY_SOURCE",
    "TelemetryChannel",
    "TelemetryMessage",
    "build_instrumentation",
    "compose_document",
    "data_uri",
    "export_single_html",
    "http_context_factory",
    "is_composable",
    "mime_type_for",
]
