from __future__ import annotations

from statemachine import State, StateMachine

from contention.api.models import WorkerPhase
from contention.workers.base import WorkerRun


class WorkerFSM(StateMachine):
    """Lifecycle guard around a WorkerRun.

    pending -> running -> finished | failed. Workers are never cancelled, so
    there is no path back from running other than finishing or failing.
    """

    pending = State(WorkerPhase.pending.value, value=WorkerPhase.pending.value, initial=True)
    running = State(WorkerPhase.running.value, value=WorkerPhase.running.value)
    finished = State(WorkerPhase.finished.value, value=WorkerPhase.finished.value, final=True)
    failed = State(WorkerPhase.failed.value, value=WorkerPhase.failed.value, final=True)

    begin = pending.to(running)
    complete = running.to(finished)
    crash = running.to(failed)

    def __init__(self, run: WorkerRun):
        self.worker_run = run
        super().__init__(start_value=run.phase.value)

    def sync_phase_to_model(self) -> None:
        self.worker_run.phase = WorkerPhase(str(self.current_state.value))
