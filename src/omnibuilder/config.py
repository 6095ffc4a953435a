"""omnibuilder configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (OMNIBUILDER_MODEL, OMNIBUILDER_AUTHOR)
  3. Per-project omnibuilder.yaml  (workspace root)
  4. Global ~/.omnibuilder/config.yaml  (defaults only — no API keys)
  5. Hardcoded defaults

Global config must never contain API keys; use environment variables instead.
The preview server only binds loopback addresses.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import ipaddress
import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".omnibuilder"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
PROJECT_CONFIG_NAME: str = "omnibuilder.yaml"

# Fields that suggest an API key — forbidden in global config.
# Does NOT match legitimate config keys like max_tokens.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"  # api_key, api-key, api_secret, apikey
    r"|_token$"                  # github_token, access_token (suffix)
    r"|^token$"                  # exactly "token" (standalone)
    r"|_secret$"                 # client_secret (suffix)
    r"|^secret$"                 # exactly "secret" (standalone)
    r"|passw(?:ord|d)"           # password, passwd
    r"|credential",              # credential, credentials
    re.IGNORECASE,
)

# Known top-level sections — unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["project", "generation", "preview", "vcs"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class ProjectCfg:
    """Project-level metadata (omnibuilder.yaml: project:)."""

    name: str = ""


@dataclass
class GenerationCfg:
    """Model configuration (omnibuilder.yaml: generation:)."""

    model: str = "gemini/gemini-2.5-pro"
    max_tokens: int = 16_384


@dataclass
class PreviewCfg:
    """Preview sandbox configuration (omnibuilder.yaml: preview:).

    Attributes:
        debug_mode: Start previews with the click inspector enabled.
        mobile_emulation: Start previews with the phone navigator profile.
        host: Loopback address the preview server binds to.
        highlight_ms: How long a clicked element stays highlighted.
        poll_interval: Seconds between workspace checks in watch mode.
    """

    debug_mode: bool = False
    mobile_emulation: bool = False
    host: str = "127.0.0.1"
    highlight_ms: int = 1_000
    poll_interval: float = 1.0


@dataclass
class VcsCfg:
    """Version engine defaults (omnibuilder.yaml: vcs:)."""

    author: str = "User"


@dataclass
class OmnibuilderConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    project: ProjectCfg = field(default_factory=ProjectCfg)
    generation: GenerationCfg = field(default_factory=GenerationCfg)
    preview: PreviewCfg = field(default_factory=PreviewCfg)
    vcs: VcsCfg = field(default_factory=VcsCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any API-key-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  API keys must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _validate_preview_host(host: str) -> None:
    """Raise ConfigError unless *host* is a loopback address."""
    if host == "localhost":
        return
    try:
        loopback = ipaddress.ip_address(host).is_loopback
    except ValueError:
        loopback = False
    if not loopback:
        raise ConfigError(
            f"preview.host must be a loopback address, got '{host}'.\n"
            "  The preview server is never exposed to the network.\n"
            "  Example: preview.host: 127.0.0.1"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> OmnibuilderConfig:
    """Build an *OmnibuilderConfig* from a merged raw YAML dict."""
    cfg = OmnibuilderConfig()

    if "project" in data:
        p = data["project"] or {}
        cfg.project = ProjectCfg(name=str(p.get("name", cfg.project.name)))

    if "generation" in data:
        g = data["generation"] or {}
        cfg.generation = GenerationCfg(
            model=str(g.get("model", cfg.generation.model)),
            max_tokens=int(g.get("max_tokens", cfg.generation.max_tokens)),
        )

    if "preview" in data:
        pv = data["preview"] or {}
        cfg.preview = PreviewCfg(
            debug_mode=bool(pv.get("debug_mode", cfg.preview.debug_mode)),
            mobile_emulation=bool(pv.get("mobile_emulation", cfg.preview.mobile_emulation)),
            host=str(pv.get("host", cfg.preview.host)),
            highlight_ms=int(pv.get("highlight_ms", cfg.preview.highlight_ms)),
            poll_interval=float(pv.get("poll_interval", cfg.preview.poll_interval)),
        )

    if "vcs" in data:
        v = data["vcs"] or {}
        cfg.vcs = VcsCfg(author=str(v.get("author", cfg.vcs.author)))

    return cfg


def _apply_env_overrides(cfg: OmnibuilderConfig) -> OmnibuilderConfig:
    """Apply OMNIBUILDER_* environment variable overrides."""
    if model := os.environ.get("OMNIBUILDER_MODEL"):
        cfg.generation.model = model
    if author := os.environ.get("OMNIBUILDER_AUTHOR"):
        cfg.vcs.author = author
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> OmnibuilderConfig:
    """Load and return a merged *OmnibuilderConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *omnibuilder.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *OmnibuilderConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains API-key-like fields, or if
            ``preview.host`` is not a loopback address.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-project config
    project_cfg_path = search_dir / PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    _validate_preview_host(cfg.preview.host)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.omnibuilder/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# omnibuilder global configuration — defaults only.\n"
            "# NEVER store API keys here — use environment variables:\n"
            "#   export GEMINI_API_KEY=...\n"
            "#   export OPENAI_API_KEY=sk-...\n"
            "\n"
            "generation:\n"
            "  model: gemini/gemini-2.5-pro\n"
            "\n"
            "vcs:\n"
            "  author: User\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target


def write_project_config(project_dir: Path, name: str) -> Path:
    """Write a starter ``omnibuilder.yaml`` into *project_dir* (never overwrites)."""
    target = project_dir / PROJECT_CONFIG_NAME
    if target.exists():
        return target
    data = {
        "project": {"name": name},
        "preview": {"debug_mode": False, "mobile_emulation": False},
    }
    target.write_text(yaml.safe_dump(data, sort_keys=False), encoding="utf-8")
    return target
