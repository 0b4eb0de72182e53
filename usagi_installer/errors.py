from __future__ import annotations

from typing import Optional, Sequence


class InstallerError(Exception):
    """Base class for every fatal installer condition."""


class ValidationError(InstallerError):
    """A host precondition failed. Raised before anything is mutated."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(f"Validation failed ({kind}): {detail}")
        self.kind = kind
        self.detail = detail


class PlanError(InstallerError):
    """The partition layout could not be computed. Raised before anything is mutated."""

    def __init__(self, kind: str, detail: str) -> None:
        super().__init__(f"Layout planning failed ({kind}): {detail}")
        self.kind = kind
        self.detail = detail


class StageError(InstallerError):
    """A stage failed after the device was (possibly) mutated.

    side_effects lists every resource created by this stage and all earlier
    succeeded stages, oldest first, for manual remediation.
    """

    def __init__(
        self,
        stage: str,
        detail: str,
        *,
        exit_status: Optional[int] = None,
        side_effects: Sequence[str] = (),
    ) -> None:
        self.stage = stage
        self.detail = detail
        self.exit_status = exit_status
        self.side_effects = list(side_effects)

        msg = f"Stage {stage} failed"
        if exit_status is not None:
            msg += f" (exit status {exit_status})"
        msg += f": {detail}"
        if self.side_effects:
            msg += "\nResources created so far (not rolled back):\n"
            msg += "\n".join(f"  - {s}" for s in self.side_effects)
        super().__init__(msg)


class ConfirmationDeclined(InstallerError):
    """The operator declined a checkpoint; the run stops without cleanup."""

    def __init__(self, prompt: str, *, stage: Optional[str] = None) -> None:
        where = f" before {stage}" if stage else ""
        super().__init__(f"Operator declined{where}: {prompt}")
        self.prompt = prompt
        self.stage = stage
