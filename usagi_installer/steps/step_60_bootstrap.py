from __future__ import annotations

import logging
import re

from ..context import StepContext
from ..lib.target_config import FSTAB_SSD_OPTIONS, packages_for
from ..models import StageRecord

logger = logging.getLogger(__name__)


def tune_fstab(fstab: str) -> str:
    """Swap genfstab's relatime for the SSD mount options."""

    return re.sub(r"\brelatime\b", FSTAB_SSD_OPTIONS, fstab)


class BootstrapStep:
    step_id = "60_bootstrap"
    name = "Bootstrap"
    requires = ("Mount",)

    def prompt(self, ctx: StepContext) -> str:
        return "Partitions mounted. Continue with base system installation?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        root = ctx.target_root
        packages = packages_for(ctx.hardware, ctx.cfg.extra_packages)
        logger.info("Installing %d packages into %s", len(packages), root)

        # Longest stage; pacstrap's own exit status is all we act on.
        ctx.run(["pacstrap", "-K", root, *packages])
        record.record(f"rootfs:{root}")

        r = ctx.run(["genfstab", "-U", root])
        ctx.write_file("/etc/fstab", tune_fstab(r.stdout))
        record.record(f"fstab:{ctx.target_path('/etc/fstab')}")
