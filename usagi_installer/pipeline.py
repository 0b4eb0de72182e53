from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from .context import StepContext
from .errors import ConfirmationDeclined, InstallerError, StageError
from .lib.command import CommandError
from .models import StageRecord, StageStatus

logger = logging.getLogger(__name__)


class Step(Protocol):
    """A single stage of the sequence.

    prompt() is the question put to the operator before the stage runs.
    requires names the stages that must have succeeded first.
    """

    step_id: str
    name: str
    requires: Tuple[str, ...]

    def prompt(self, ctx: StepContext) -> str:
        ...

    def run(self, ctx: StepContext, record: StageRecord) -> None:
        ...


class Gate(Protocol):
    def confirm(self, prompt: str) -> bool:
        ...


@dataclass(frozen=True)
class PipelineResult:
    records: List[StageRecord]

    @property
    def side_effects(self) -> List[str]:
        return [s for r in self.records for s in r.side_effects]


def _side_effects_so_far(records: Sequence[StageRecord], current: StageRecord) -> List[str]:
    effects: List[str] = []
    for r in records:
        if r is current or r.status == StageStatus.SUCCEEDED:
            effects.extend(r.side_effects)
    return effects


def _check_requires(step: Step, records: Sequence[StageRecord]) -> None:
    done = {r.name for r in records if r.status == StageStatus.SUCCEEDED}
    missing = [name for name in step.requires if name not in done]
    if missing:
        raise RuntimeError(f"{step.name} requires {', '.join(missing)} to have succeeded")


def run_pipeline(
    *,
    ctx: StepContext,
    steps: Sequence[Step],
    gate: Gate,
    records: Optional[List[StageRecord]] = None,
    on_progress: Optional[Callable[[List[StageRecord]], None]] = None,
) -> PipelineResult:
    """Run stages strictly in order, one gate before each.

    A declined gate stops the run with nothing further executed. A failing
    stage is marked FAILED and stops the run; nothing is rolled back, the
    raised StageError lists what has been created so far instead.
    """

    records = records if records is not None else []

    def progress() -> None:
        if on_progress is not None:
            on_progress(records)

    for step in steps:
        record = StageRecord(name=step.name)
        records.append(record)
        progress()

        prompt = step.prompt(ctx)
        if not gate.confirm(prompt):
            logger.error("Operator declined before %s; stopping without cleanup", step.name)
            raise ConfirmationDeclined(prompt, stage=step.name)
        record.advance(StageStatus.CONFIRMED)

        record.advance(StageStatus.RUNNING)
        progress()
        logger.info("Running stage %s (%s)", step.name, step.step_id)
        try:
            _check_requires(step, records)
            step.run(ctx, record)
        except CommandError as e:
            record.advance(StageStatus.FAILED)
            progress()
            raise StageError(
                step.name,
                str(e),
                exit_status=e.returncode,
                side_effects=_side_effects_so_far(records, record),
            ) from e
        except InstallerError:
            record.advance(StageStatus.FAILED)
            progress()
            raise
        except Exception as e:
            record.advance(StageStatus.FAILED)
            progress()
            raise StageError(step.name, str(e), side_effects=_side_effects_so_far(records, record)) from e

        record.advance(StageStatus.SUCCEEDED)
        progress()
        logger.info("Stage %s succeeded (side effects: %s)", step.name, record.side_effects or "none")

    return PipelineResult(records=records)
