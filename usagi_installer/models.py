from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class CpuVendor(str, Enum):
    INTEL = "intel"
    AMD = "amd"
    UNKNOWN = "unknown"


class GpuVendor(str, Enum):
    NVIDIA = "nvidia"
    AMD = "amd"
    INTEL = "intel"
    NONE = "none"


class FirmwareMode(str, Enum):
    BIOS = "bios"
    UEFI = "uefi"


class NetworkMedium(str, Enum):
    WIRED = "wired"
    WIRELESS = "wireless"
    UNKNOWN = "unknown"


class StageStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS = {
    StageStatus.PENDING: {StageStatus.CONFIRMED},
    StageStatus.CONFIRMED: {StageStatus.RUNNING},
    StageStatus.RUNNING: {StageStatus.SUCCEEDED, StageStatus.FAILED},
    StageStatus.SUCCEEDED: set(),
    StageStatus.FAILED: set(),
}


@dataclass(frozen=True)
class HardwareProfile:
    cpu_vendor: CpuVendor
    gpu_vendor: GpuVendor
    firmware_mode: FirmwareMode
    network_medium: NetworkMedium

    def to_dict(self) -> Dict[str, str]:
        return {
            "cpu_vendor": self.cpu_vendor.value,
            "gpu_vendor": self.gpu_vendor.value,
            "firmware_mode": self.firmware_mode.value,
            "network_medium": self.network_medium.value,
        }


@dataclass(frozen=True)
class DeviceSpec:
    path: str
    total_capacity_mib: int

    def partition(self, n: int) -> str:
        """Device node of partition n (nvme/mmcblk devices use a p suffix)."""
        if self.path.endswith(tuple("0123456789")):
            return f"{self.path}p{n}"
        return f"{self.path}{n}"

    def owns(self, node: str) -> bool:
        """True for the disk itself and any of its partition nodes."""
        if node == self.path:
            return True
        prefix = f"{self.path}p" if self.path.endswith(tuple("0123456789")) else self.path
        rest = node[len(prefix):] if node.startswith(prefix) else ""
        return rest.isdigit()

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "total_capacity_mib": self.total_capacity_mib}


@dataclass
class StageRecord:
    """Progress of one stage plus the resources it created."""

    name: str
    status: StageStatus = StageStatus.PENDING
    side_effects: List[str] = field(default_factory=list)

    def advance(self, status: StageStatus) -> None:
        if status not in _TRANSITIONS[self.status]:
            raise ValueError(f"Stage {self.name}: illegal transition {self.status.value} -> {status.value}")
        self.status = status

    def record(self, resource: str) -> None:
        self.side_effects.append(resource)

    @property
    def terminal(self) -> bool:
        return self.status in {StageStatus.SUCCEEDED, StageStatus.FAILED}

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "status": self.status.value, "side_effects": list(self.side_effects)}
