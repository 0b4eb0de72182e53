from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Tuple

from .errors import ValidationError
from .lib.command import CommandError
from .lib.env import Environment
from .lib.firmware import detect_firmware
from .lib.hwdetect import detect_cpu_vendor, detect_gpu_vendor, detect_network_medium, gpu_vendors
from .models import CpuVendor, DeviceSpec, FirmwareMode, GpuVendor, HardwareProfile

logger = logging.getLogger(__name__)

MIB = 1024 * 1024


@dataclass(frozen=True)
class Requirements:
    cpu_vendor: CpuVendor = CpuVendor.INTEL
    gpu_vendor: GpuVendor = GpuVendor.NVIDIA
    firmware_mode: FirmwareMode = FirmwareMode.UEFI


def _check_privilege(env: Environment) -> None:
    euid = env.effective_uid()
    if euid != 0:
        raise ValidationError("privilege", f"must run as root (effective uid is {euid})")


def validate(env: Environment, device_path: str, requirements: Requirements = Requirements()) -> Tuple[HardwareProfile, DeviceSpec]:
    """Check every precondition and describe the host.

    Privilege is checked before anything else is queried; the remaining
    checks do not depend on each other. Nothing here mutates the host.
    """

    _check_privilege(env)

    if not env.is_block_device(device_path):
        raise ValidationError("device", f"{device_path} not found or not a block device")

    firmware = detect_firmware(env)
    if firmware != requirements.firmware_mode:
        raise ValidationError("firmware", f"not booted in {requirements.firmware_mode.value.upper()} mode")

    cpu = detect_cpu_vendor(env.cpu_info())
    if cpu != requirements.cpu_vendor:
        raise ValidationError("cpu", f"no {requirements.cpu_vendor.value} CPU detected (found {cpu.value})")

    try:
        pci = env.pci_devices()
    except (OSError, CommandError) as e:
        raise ValidationError("gpu", f"cannot list PCI devices: {e}") from e
    if requirements.gpu_vendor not in gpu_vendors(pci):
        raise ValidationError("gpu", f"no {requirements.gpu_vendor.value} GPU detected")
    gpu = detect_gpu_vendor(pci, prefer=requirements.gpu_vendor)

    profile = HardwareProfile(
        cpu_vendor=cpu,
        gpu_vendor=gpu,
        firmware_mode=firmware,
        network_medium=detect_network_medium(env.network_interfaces()),
    )
    try:
        real_path = env.resolve_device(device_path)
        size_bytes = env.device_size_bytes(real_path)
    except (OSError, ValueError) as e:
        raise ValidationError("device", f"cannot read the size of {device_path}: {e}") from e
    if real_path != device_path:
        logger.info("Resolved %s to %s", device_path, real_path)
    device = DeviceSpec(path=real_path, total_capacity_mib=size_bytes // MIB)

    logger.info(
        "Hardware: cpu=%s gpu=%s firmware=%s network=%s device=%s (%sMiB)",
        profile.cpu_vendor.value,
        profile.gpu_vendor.value,
        profile.firmware_mode.value,
        profile.network_medium.value,
        device.path,
        device.total_capacity_mib,
    )
    return profile, device
