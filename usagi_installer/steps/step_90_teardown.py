from __future__ import annotations

import logging

from ..context import StepContext
from ..models import StageRecord

logger = logging.getLogger(__name__)


class TeardownStep:
    step_id = "90_teardown"
    name = "Teardown"
    requires = ("Configure",)

    def prompt(self, ctx: StepContext) -> str:
        return "System configuration complete. Ready to unmount and reboot?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        ctx.run(["umount", "-R", ctx.target_root])
        ctx.run(["swapoff", "-a"])
        # The volume group must be inactive before its backing mapping can close.
        ctx.run(["vgchange", "-an", ctx.cfg.volume_group])
        ctx.run(["cryptsetup", "close", ctx.cfg.mapper_name])
        ctx.run(["sync"])

        if ctx.cfg.reboot:
            ctx.run(["reboot"])
        else:
            logger.info("Reboot disabled; target is unmounted and closed")
