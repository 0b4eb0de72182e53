from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List

from .lib.env import PATHS
from .models import CpuVendor, GpuVendor


@dataclass(frozen=True)
class InstallConfig:
    raw: Dict[str, Any]

    @property
    def device(self) -> str:
        return str(self.raw.get("device") or "/dev/nvme0n1")

    @property
    def dry_run(self) -> bool:
        return bool(self.raw.get("dry_run", False))

    @property
    def reboot(self) -> bool:
        return bool(self.raw.get("reboot", True))

    @property
    def target_root(self) -> str:
        return str(self.raw.get("target_root") or PATHS.target_root)

    @property
    def require_cpu_vendor(self) -> CpuVendor:
        return CpuVendor(str(self.raw.get("require_cpu_vendor") or "intel").lower())

    @property
    def require_gpu_vendor(self) -> GpuVendor:
        return GpuVendor(str(self.raw.get("require_gpu_vendor") or "nvidia").lower())

    @property
    def mapper_name(self) -> str:
        return str(self.raw.get("mapper_name") or "cryptlvm")

    @property
    def mapper_path(self) -> str:
        return f"/dev/mapper/{self.mapper_name}"

    @property
    def volume_group(self) -> str:
        return str(self.raw.get("volume_group") or "vg0")

    @property
    def root_size(self) -> str:
        return str(self.raw.get("root_size") or "30G")

    def lv_path(self, name: str) -> str:
        return f"/dev/{self.volume_group}/{name}"

    @property
    def timezone(self) -> str:
        return str(self.raw.get("timezone") or "Europe/London")

    @property
    def locale(self) -> str:
        return str(self.raw.get("locale") or "en_GB.UTF-8")

    @property
    def keymap(self) -> str:
        return str(self.raw.get("keymap") or "us")

    @property
    def hostname(self) -> str:
        return str(self.raw.get("hostname") or "usagi").strip() or "usagi"

    @property
    def username(self) -> str:
        return str(self.raw.get("username") or "senpai")

    @property
    def extra_packages(self) -> List[str]:
        return list(self.raw.get("extra_packages") or [])


def load_config_file(path: str) -> Dict[str, Any]:
    """Read operator overrides from a YAML file (a flat mapping of config keys)."""

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("installer config must be YAML")

    try:
        import yaml
    except ImportError as e:
        raise RuntimeError("PyYAML is required to read the installer config") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")
    return raw
