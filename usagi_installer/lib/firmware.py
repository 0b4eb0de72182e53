from __future__ import annotations

from ..models import FirmwareMode
from .env import Environment


def detect_firmware(env: Environment) -> FirmwareMode:
    """Detect firmware type for the *currently running* environment.

    The target is installed with the same boot path the live medium booted
    with, so this is also the target's firmware mode.
    """

    if env.has_efi_firmware():
        return FirmwareMode.UEFI
    return FirmwareMode.BIOS
