"""Sequential step runner with reverse-order cleanup."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence

from vmbuilder.constants import STATE_ERROR, STATE_HALTED
from vmbuilder.exceptions import BuildError
from vmbuilder.state import StateBag
from vmbuilder.utils import log


class StepAction(Enum):
    CONTINUE = "continue"
    HALT = "halt"


class Step:
    """One forward/cleanup unit of a build.

    ``run`` may halt the build after storing an error under ``"error"``.
    ``cleanup`` is best-effort: it must tolerate ``run`` never having run, or
    having failed part way, and must not raise.
    """

    @property
    def name(self) -> str:
        return type(self).__name__

    def run(self, state: StateBag) -> StepAction:
        raise NotImplementedError

    def cleanup(self, state: StateBag) -> None:
        pass


@dataclass
class PipelineResult:
    success: bool
    error: Optional[BaseException] = None
    halted_step: Optional[str] = None
    executed: List[str] = field(default_factory=list)


def halt(state: StateBag, ui, error: BaseException) -> StepAction:
    """Record ``error``, report it, and stop the pipeline."""
    state.put(STATE_ERROR, error)
    ui.error(str(error))
    return StepAction.HALT


class BasicRunner:
    """Run steps in order; on halt, clean up the executed ones newest first.

    A successful build runs no cleanup at all. Tearing down a finished VM is
    the caller's responsibility.
    """

    def run(self, steps: Sequence[Step], state: StateBag) -> PipelineResult:
        executed: List[Step] = []
        halted_step: Optional[Step] = None

        for step in steps:
            executed.append(step)
            log("DEBUG", f"Running step {step.name}")
            try:
                action = step.run(state)
            except BuildError as exc:
                log("ERROR", str(exc))
                if state.get(STATE_ERROR) is None:
                    state.put(STATE_ERROR, exc)
                action = StepAction.HALT
            except Exception:
                # Programming errors still get the executed steps torn down
                self._cleanup_all(executed, state)
                raise

            if action is StepAction.HALT:
                halted_step = step
                break

        names = [step.name for step in executed]
        if halted_step is None:
            return PipelineResult(success=True, executed=names)

        state.put(STATE_HALTED, True)
        log("DEBUG", f"Step {halted_step.name} halted the build; cleaning up {len(executed)} step(s)")
        self._cleanup_all(executed, state)

        return PipelineResult(
            success=False,
            error=state.get(STATE_ERROR),
            halted_step=halted_step.name,
            executed=names,
        )

    @staticmethod
    def _cleanup_all(executed: Sequence[Step], state: StateBag) -> None:
        for step in reversed(executed):
            try:
                step.cleanup(state)
            except Exception as exc:
                log("WARN", f"Cleanup of {step.name} failed: {exc}")
