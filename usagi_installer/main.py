from __future__ import annotations

import argparse
import logging
from typing import Any, Callable, Dict, List, Optional

from .context import StepContext
from .credentials import CredentialProvider, PromptCredentialProvider
from .errors import ConfirmationDeclined, InstallerError
from .gate import AssumeYesGate, ConfirmationGate
from .install_config import InstallConfig, load_config_file
from .lib.command import CmdResult, run_cmd
from .lib.env import PATHS, Environment, HostEnvironment
from .lib.storage import plan_layout
from .logging_utils import configure_logging
from .models import StageRecord
from .pipeline import Gate, run_pipeline
from .state_store import ensure_defaults, load_state, record_error, record_stages, save_state
from .steps import (
    BootstrapStep,
    ConfigureTargetStep,
    EncryptStep,
    FormatStep,
    LvmSetupStep,
    MountStep,
    PartitionStep,
    TeardownStep,
)
from .validator import Requirements, validate

logger = logging.getLogger(__name__)


def build_steps():
    return [
        PartitionStep(),
        EncryptStep(),
        LvmSetupStep(),
        FormatStep(),
        MountStep(),
        BootstrapStep(),
        ConfigureTargetStep(),
        TeardownStep(),
    ]


def _warn_about_previous_run(previous: Dict[str, Any]) -> None:
    stages = (previous.get("execution") or {}).get("stages") or []
    leftovers = [s for st in stages if st.get("status") != "succeeded" for s in (st.get("side_effects") or [])]
    if leftovers:
        logger.warning("A previous run stopped part-way and left: %s", ", ".join(leftovers))


def run(
    *,
    state_path: str = PATHS.state_default,
    log_path: str = PATHS.log_default,
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    env: Optional[Environment] = None,
    gate: Optional[Gate] = None,
    credentials: Optional[CredentialProvider] = None,
    runner: Callable[..., CmdResult] = run_cmd,
) -> Dict[str, Any]:
    """Validate, plan and provision, journaling progress to state_path."""

    actual_log_path = configure_logging(log_path=log_path)

    _warn_about_previous_run(load_state(state_path))

    state = ensure_defaults({})
    if config_path:
        state["config"].update(load_config_file(config_path))
    state["config"].update(overrides or {})
    state["execution"]["log_path"] = actual_log_path

    cfg = InstallConfig(raw=state["config"])
    env = env or HostEnvironment()
    gate = gate or ConfirmationGate()
    credentials = credentials or PromptCredentialProvider()

    records: List[StageRecord] = []

    def journal(recs: List[StageRecord]) -> None:
        record_stages(state, recs)
        save_state(state_path, state)

    try:
        requirements = Requirements(cpu_vendor=cfg.require_cpu_vendor, gpu_vendor=cfg.require_gpu_vendor)
        hardware, device = validate(env, cfg.device, requirements)
        state["hardware"] = hardware.to_dict()
        state["device"] = device.to_dict()

        plan = plan_layout(device.total_capacity_mib)
        state["plan"] = plan.to_dict()
        logger.info("Plan: %s", plan.to_dict())

        ctx = StepContext(
            cfg=cfg,
            env=env,
            hardware=hardware,
            device=device,
            plan=plan,
            credentials=credentials,
            runner=runner,
        )
        run_pipeline(ctx=ctx, steps=build_steps(), gate=gate, records=records, on_progress=journal)
        state["execution"]["result"] = "succeeded"
        return state
    except InstallerError as e:
        logger.error("%s", e)
        state["execution"]["result"] = "failed"
        record_error(state, stage=getattr(e, "stage", None), error=e)
        raise
    except Exception as e:
        logger.exception("Installer failed")
        state["execution"]["result"] = "failed"
        record_error(state, stage=records[-1].name if records else None, error=e)
        raise
    finally:
        record_stages(state, records)
        save_state(state_path, state)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="usagi-installer")
    p.add_argument("--device", default=None, help="Target block device (default /dev/nvme0n1)")
    p.add_argument("--config", default=None, help="YAML file with config overrides")
    p.add_argument("--state", default=PATHS.state_default, help="Path to run journal (json|yaml)")
    p.add_argument("--log", default=PATHS.log_default, help="Path to installer log")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("--yes", action="store_true", help="Accept every confirmation (unattended)")
    p.add_argument("--no-reboot", action="store_true", help="Stop after teardown instead of rebooting")

    args = p.parse_args(argv)

    overrides: Dict[str, Any] = {}
    if args.device:
        overrides["device"] = args.device
    if args.dry_run:
        overrides["dry_run"] = True
    if args.no_reboot:
        overrides["reboot"] = False

    try:
        run(
            state_path=args.state,
            log_path=args.log,
            config_path=args.config,
            overrides=overrides,
            gate=AssumeYesGate() if args.yes else ConfirmationGate(),
        )
    except ConfirmationDeclined:
        return 2
    except InstallerError:
        return 1
    return 0
