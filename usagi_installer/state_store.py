from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable

from .models import StageRecord

logger = logging.getLogger(__name__)


def _detect_format(path: Path) -> str:
    ext = path.suffix.lower().lstrip(".")
    if ext in {"json", "yaml", "yml"}:
        return ext
    # Default to JSON for unknown extensions.
    return "json"


def _yaml():
    try:
        import yaml
    except ImportError as e:  # pragma: no cover
        raise RuntimeError(
            "YAML state requested but PyYAML is not available. "
            "Use JSON state or install PyYAML into the live environment."
        ) from e
    return yaml


def load_state(path: str) -> Dict[str, Any]:
    p = Path(path)
    if not p.exists():
        return {}

    if _detect_format(p) in {"yaml", "yml"}:
        data = _yaml().safe_load(p.read_text(encoding="utf-8")) or {}
    else:
        data = json.loads(p.read_text(encoding="utf-8"))

    if not isinstance(data, dict):
        raise ValueError(f"State file must be an object/dict, got {type(data)}")

    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)

    if _detect_format(p) in {"yaml", "yml"}:
        p.write_text(_yaml().safe_dump(state, sort_keys=False) + "\n", encoding="utf-8")
    else:
        p.write_text(json.dumps(state, indent=2, sort_keys=True) + "\n", encoding="utf-8")


def ensure_defaults(state: Dict[str, Any]) -> Dict[str, Any]:
    """Fill required keys with sane defaults (without overriding user values)."""

    state.setdefault("version", "1.0")
    state.setdefault("config", {})
    state.setdefault("hardware", {})
    state.setdefault("execution", {})

    cfg = state["config"]
    cfg.setdefault("device", "/dev/nvme0n1")
    cfg.setdefault("dry_run", False)
    cfg.setdefault("reboot", True)
    # Precondition gating: the run refuses hardware other than this.
    cfg.setdefault("require_cpu_vendor", "intel")
    cfg.setdefault("require_gpu_vendor", "nvidia")
    cfg.setdefault("mapper_name", "cryptlvm")
    cfg.setdefault("volume_group", "vg0")
    cfg.setdefault("root_size", "30G")
    cfg.setdefault("timezone", "Europe/London")
    cfg.setdefault("locale", "en_GB.UTF-8")
    cfg.setdefault("keymap", "us")
    cfg.setdefault("hostname", "usagi")
    cfg.setdefault("username", "senpai")
    cfg.setdefault("extra_packages", ["neovim", "git", "cpupower", "nfs-utils", "hdparm"])

    exe = state["execution"]
    exe.setdefault("stages", [])
    exe.setdefault("errors", [])

    return state


def record_stages(state: Dict[str, Any], records: Iterable[StageRecord]) -> None:
    """Mirror stage progress (and side effects) into the run journal."""

    state.setdefault("execution", {})["stages"] = [r.to_dict() for r in records]


def record_error(state: Dict[str, Any], *, stage: str | None, error: BaseException) -> None:
    entry: Dict[str, Any] = {"stage": stage, "type": type(error).__name__, "error": str(error)}
    exit_status = getattr(error, "exit_status", None)
    if exit_status is not None:
        entry["exit_status"] = exit_status
    state.setdefault("execution", {}).setdefault("errors", []).append(entry)
