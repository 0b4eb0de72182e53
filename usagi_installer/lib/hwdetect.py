from __future__ import annotations

import logging
from typing import Iterable, Sequence

from ..models import CpuVendor, GpuVendor, NetworkMedium

logger = logging.getLogger(__name__)

_CPU_VENDOR_MAP = {
    "genuineintel": CpuVendor.INTEL,
    "authenticamd": CpuVendor.AMD,
}

# Substrings that identify a vendor in `lspci` display-controller lines.
_GPU_VENDOR_MARKERS = [
    ("nvidia", GpuVendor.NVIDIA),
    ("advanced micro devices", GpuVendor.AMD),
    ("amd/ati", GpuVendor.AMD),
    ("intel corporation", GpuVendor.INTEL),
]

_DISPLAY_CLASSES = ("vga", "3d controller", "display controller")


def detect_cpu_vendor(cpuinfo: str) -> CpuVendor:
    for line in cpuinfo.splitlines():
        key, _, value = line.partition(":")
        if key.strip() == "vendor_id":
            return _CPU_VENDOR_MAP.get(value.strip().lower(), CpuVendor.UNKNOWN)

    # Some kernels (and VMs) only expose a model name.
    low = cpuinfo.lower()
    if "intel" in low:
        return CpuVendor.INTEL
    if "amd" in low:
        return CpuVendor.AMD
    return CpuVendor.UNKNOWN


def display_devices(pci_lines: Iterable[str]) -> list[str]:
    return [ln for ln in pci_lines if any(c in ln.lower() for c in _DISPLAY_CLASSES)]


def gpu_vendors(pci_lines: Iterable[str]) -> list[GpuVendor]:
    """All GPU vendors present, in enumeration order, without duplicates."""

    found: list[GpuVendor] = []
    for line in display_devices(pci_lines):
        low = line.lower()
        for marker, vendor in _GPU_VENDOR_MARKERS:
            if marker in low and vendor not in found:
                found.append(vendor)
                break
    return found


def detect_gpu_vendor(pci_lines: Sequence[str], *, prefer: GpuVendor | None = None) -> GpuVendor:
    """Pick the GPU that drives the target configuration.

    An integrated GPU usually enumerates next to the discrete one, so a
    preferred vendor wins whenever it is present.
    """

    vendors = gpu_vendors(pci_lines)
    if prefer is not None and prefer in vendors:
        return prefer
    for vendor in (GpuVendor.NVIDIA, GpuVendor.AMD, GpuVendor.INTEL):
        if vendor in vendors:
            return vendor
    return GpuVendor.NONE


def detect_network_medium(interfaces: Iterable[str]) -> NetworkMedium:
    names = [i for i in interfaces if i != "lo"]
    if any(i.startswith(("en", "eth")) for i in names):
        return NetworkMedium.WIRED
    if any(i.startswith("wl") for i in names):
        return NetworkMedium.WIRELESS
    return NetworkMedium.UNKNOWN
