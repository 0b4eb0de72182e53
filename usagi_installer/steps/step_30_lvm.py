from __future__ import annotations

import logging

from ..context import StepContext
from ..models import StageRecord

logger = logging.getLogger(__name__)


class LvmSetupStep:
    step_id = "30_lvm"
    name = "LVM-setup"
    requires = ("Encrypt",)

    def prompt(self, ctx: StepContext) -> str:
        return "Encryption setup complete. Continue with LVM setup?"

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        cfg = ctx.cfg
        mapped = cfg.mapper_path
        if not ctx.dry_run and not ctx.env.is_block_device(mapped):
            raise RuntimeError(f"{mapped} is not open")

        vg = cfg.volume_group

        ctx.run(["pvcreate", mapped])
        record.record(f"pv:{mapped}")
        ctx.run(["vgcreate", vg, mapped])
        record.record(f"vg:{vg}")
        ctx.run(["lvcreate", "-L", cfg.root_size, vg, "-n", "root"])
        record.record(cfg.lv_path("root"))
        ctx.run(["lvcreate", "-l", "100%FREE", vg, "-n", "home"])
        record.record(cfg.lv_path("home"))
        logger.info("Volume group %s ready (root=%s, home=rest)", vg, cfg.root_size)
