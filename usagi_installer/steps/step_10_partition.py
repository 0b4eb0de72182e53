from __future__ import annotations

import logging

from ..context import StepContext
from ..lib.storage import parted_commands
from ..models import StageRecord

logger = logging.getLogger(__name__)


class PartitionStep:
    step_id = "10_partition"
    name = "Partition"
    requires: tuple = ()

    def prompt(self, ctx: StepContext) -> str:
        return f"{ctx.plan.describe()}\nAll data on {ctx.device.path} will be destroyed. Are these partition sizes acceptable?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        disk = ctx.device.path

        mounted = [s for s in ctx.env.mounted_sources() if ctx.device.owns(s)]
        if mounted:
            raise RuntimeError(f"{disk} has mounted filesystems: {', '.join(sorted(set(mounted)))}")

        label, *parts = parted_commands(disk, ctx.plan)
        ctx.run(label)
        record.record(f"gpt:{disk}")

        # mkpart, set esp, mkpart, mkpart
        ctx.run(parts[0])
        ctx.run(parts[1])
        record.record(ctx.esp_part)
        ctx.run(parts[2])
        record.record(ctx.swap_part)
        ctx.run(parts[3])
        record.record(ctx.crypt_part)

        # Inform kernel
        ctx.run(["partprobe", disk])
        logger.info("Partitioned %s (main=%sMiB)", disk, ctx.plan.main_size_mib)
