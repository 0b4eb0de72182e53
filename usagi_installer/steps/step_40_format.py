from __future__ import annotations

import logging

from ..context import StepContext
from ..models import StageRecord

logger = logging.getLogger(__name__)

JOURNAL_NOTICE = (
    "Root and home are formatted ext4 WITHOUT a journal for throughput. "
    "A crash or power loss can leave them needing a full fsck and may lose recent writes."
)


class FormatStep:
    step_id = "40_format"
    name = "Format"
    requires = ("LVM-setup",)

    def prompt(self, ctx: StepContext) -> str:
        return f"LVM setup complete. {JOURNAL_NOTICE}\nContinue with formatting?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        logger.warning(JOURNAL_NOTICE)

        ctx.run(["mkfs.fat", "-F32", ctx.esp_part])
        record.record(f"vfat:{ctx.esp_part}")
        ctx.run(["mkswap", "-L", "swap", ctx.swap_part])
        record.record(f"swap:{ctx.swap_part}")

        for lv in ("root", "home"):
            dev = ctx.cfg.lv_path(lv)
            ctx.run(["mkfs.ext4", "-F", "-O", "^has_journal", dev])
            record.record(f"ext4:{dev}")
