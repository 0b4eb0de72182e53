from __future__ import annotations

import logging

from ..context import StepContext
from ..models import StageRecord

logger = logging.getLogger(__name__)


class MountStep:
    step_id = "50_mount"
    name = "Mount"
    requires = ("Format",)

    def prompt(self, ctx: StepContext) -> str:
        return "Volumes formatted. Continue with mounting partitions?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        root = ctx.target_root

        # Root first; boot and home live on it.
        ctx.run(["mount", ctx.cfg.lv_path("root"), root])
        record.record(f"mount:{root}")

        for sub, dev in (("boot", ctx.esp_part), ("home", ctx.cfg.lv_path("home"))):
            mnt = f"{root}/{sub}"
            ctx.run(["mkdir", "-p", mnt])
            ctx.run(["mount", dev, mnt])
            record.record(f"mount:{mnt}")

        ctx.run(["swapon", ctx.swap_part])
        record.record(f"swapon:{ctx.swap_part}")
        logger.info("Target mounted at %s", root)
