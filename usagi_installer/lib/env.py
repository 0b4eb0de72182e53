from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol

from .command import run_cmd

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Paths:
    target_root: str = "/mnt"
    state_default: str = "/var/lib/usagi-installer/state.json"
    log_default: str = "/var/log/usagi-installer.log"


PATHS = Paths()


class Environment(Protocol):
    """Read-only view of the live host.

    Everything the validator and stage preconditions need to know about the
    machine goes through this, so tests can hand in a fake host.
    """

    def effective_uid(self) -> int:
        ...

    def is_block_device(self, path: str) -> bool:
        ...

    def resolve_device(self, path: str) -> str:
        ...

    def has_efi_firmware(self) -> bool:
        ...

    def cpu_info(self) -> str:
        ...

    def pci_devices(self) -> List[str]:
        ...

    def device_size_bytes(self, path: str) -> int:
        ...

    def mounted_sources(self) -> List[str]:
        ...

    def network_interfaces(self) -> List[str]:
        ...


class HostEnvironment:
    """Environment backed by the running kernel (procfs/sysfs and lspci)."""

    def __init__(self, *, sys_root: str = "/sys", proc_root: str = "/proc") -> None:
        self.sys_root = Path(sys_root)
        self.proc_root = Path(proc_root)

    def effective_uid(self) -> int:
        return os.geteuid()

    def is_block_device(self, path: str) -> bool:
        try:
            return stat.S_ISBLK(os.stat(path).st_mode)
        except OSError:
            return False

    def resolve_device(self, path: str) -> str:
        # /dev/disk/by-id and friends are symlinks; partitions hang off the kernel name.
        return os.path.realpath(path)

    def has_efi_firmware(self) -> bool:
        return (self.sys_root / "firmware/efi").is_dir()

    def cpu_info(self) -> str:
        return (self.proc_root / "cpuinfo").read_text(encoding="utf-8", errors="ignore")

    def pci_devices(self) -> List[str]:
        r = run_cmd(["lspci"], check=True)
        return [ln for ln in r.stdout.splitlines() if ln.strip()]

    def device_size_bytes(self, path: str) -> int:
        # /sys/class/block/<name>/size is always in 512-byte sectors.
        name = Path(os.path.realpath(path)).name
        sectors = (self.sys_root / "class/block" / name / "size").read_text(encoding="utf-8").strip()
        return int(sectors) * 512

    def mounted_sources(self) -> List[str]:
        sources: List[str] = []
        for line in (self.proc_root / "mounts").read_text(encoding="utf-8").splitlines():
            parts = line.split()
            if parts:
                sources.append(parts[0])
        return sources

    def network_interfaces(self) -> List[str]:
        net = self.sys_root / "class/net"
        if not net.exists():
            return []
        return sorted(p.name for p in net.iterdir())
