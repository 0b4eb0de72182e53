from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from ..errors import PlanError

logger = logging.getLogger(__name__)

EFI_SIZE_MIB = 1024
SWAP_SIZE_MIB = 32768

# Share of the raw device handed to partitions; the rest stays unallocated
# as SSD over-provisioning headroom.
USABLE_PERCENT = 85

# parted starts the first partition here for alignment.
FIRST_PARTITION_START_MIB = 1


@dataclass(frozen=True)
class PartitionPlan:
    total_capacity_mib: int
    efi_size_mib: int
    swap_size_mib: int
    main_size_mib: int
    reserved_size_mib: int

    @property
    def usable_mib(self) -> int:
        return self.efi_size_mib + self.swap_size_mib + self.main_size_mib

    @property
    def efi_end_mib(self) -> int:
        return self.efi_size_mib

    @property
    def swap_end_mib(self) -> int:
        return self.efi_size_mib + self.swap_size_mib

    @property
    def main_end_mib(self) -> int:
        return self.usable_mib

    def describe(self) -> str:
        return "\n".join(
            [
                "Drive layout:",
                f"  Total drive size: {self.total_capacity_mib}MiB",
                f"  EFI partition:    {self.efi_size_mib}MiB",
                f"  Swap partition:   {self.swap_size_mib}MiB",
                f"  Main space:       {self.main_size_mib}MiB (encrypted LVM)",
                f"  Reserved for over-provisioning: {self.reserved_size_mib}MiB",
            ]
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_capacity_mib": self.total_capacity_mib,
            "efi_size_mib": self.efi_size_mib,
            "swap_size_mib": self.swap_size_mib,
            "main_size_mib": self.main_size_mib,
            "reserved_size_mib": self.reserved_size_mib,
        }


def usable_mib(capacity_mib: int) -> int:
    # Integer floor; never rounds past physical capacity.
    return capacity_mib * USABLE_PERCENT // 100


def minimum_capacity_mib() -> int:
    """Smallest capacity that leaves a main partition of at least 1MiB."""

    needed = EFI_SIZE_MIB + SWAP_SIZE_MIB + 1
    return -(-needed * 100 // USABLE_PERCENT)


def plan_layout(capacity_mib: int) -> PartitionPlan:
    """Compute the partition layout for a device of capacity_mib.

    Pure: the same capacity always yields the same plan.
    """

    if capacity_mib < 0:
        raise PlanError("invalid_capacity", f"capacity must be non-negative, got {capacity_mib}MiB")

    usable = usable_mib(capacity_mib)
    main = usable - EFI_SIZE_MIB - SWAP_SIZE_MIB
    if main <= 0:
        raise PlanError(
            "insufficient_capacity",
            f"{capacity_mib}MiB leaves {usable}MiB usable, which does not cover "
            f"EFI ({EFI_SIZE_MIB}MiB) + swap ({SWAP_SIZE_MIB}MiB); "
            f"at least {minimum_capacity_mib()}MiB is required",
        )

    return PartitionPlan(
        total_capacity_mib=capacity_mib,
        efi_size_mib=EFI_SIZE_MIB,
        swap_size_mib=SWAP_SIZE_MIB,
        main_size_mib=main,
        reserved_size_mib=capacity_mib - usable,
    )


def parted_commands(disk: str, plan: PartitionPlan) -> List[List[str]]:
    """GPT label plus ESP, swap and main partitions, in creation order.

    The main partition ends at the usable boundary; everything past it is
    left unallocated.
    """

    return [
        ["parted", "-s", disk, "mklabel", "gpt"],
        ["parted", "-s", disk, "mkpart", "ESP", "fat32", f"{FIRST_PARTITION_START_MIB}MiB", f"{plan.efi_end_mib}MiB"],
        ["parted", "-s", disk, "set", "1", "esp", "on"],
        ["parted", "-s", disk, "mkpart", "swap", "linux-swap", f"{plan.efi_end_mib}MiB", f"{plan.swap_end_mib}MiB"],
        ["parted", "-s", disk, "mkpart", "cryptlvm", f"{plan.swap_end_mib}MiB", f"{plan.main_end_mib}MiB"],
    ]
