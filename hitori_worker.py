import queue
import threading
from dataclasses import dataclass
from typing import Optional, Dict, Any

from hitori_model import HitoriModel, StepResult
from hitori_rules import HitoriSolver


@dataclass
class WorkerCommand:
    kind: str
    payload: Optional[Dict[str, Any]] = None


@dataclass
class WorkerResult:
    kind: str
    payload: Dict[str, Any]


class SolverWorker:
    """Runs the solver off the UI thread; boards travel as snapshots."""

    def __init__(self) -> None:
        self._cmd_q: "queue.Queue[WorkerCommand]" = queue.Queue()
        self._res_q: "queue.Queue[WorkerResult]" = queue.Queue()
        self._stop_evt = threading.Event()
        self._thread = threading.Thread(target=self._run, name="SolverWorker", daemon=True)

        self._model = HitoriModel()
        # solved board whose move history extends the current board's history
        self._plan: Optional[HitoriModel] = None

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        self._stop_evt.set()
        try:
            self._cmd_q.put_nowait(WorkerCommand(kind="stop"))
        except queue.Full:
            pass
        self._thread.join(timeout=1.0)

    def send(self, cmd: WorkerCommand) -> None:
        self._cmd_q.put(cmd)

    def try_recv(self) -> Optional[WorkerResult]:
        try:
            return self._res_q.get_nowait()
        except queue.Empty:
            return None

    def recv(self, timeout: float) -> Optional[WorkerResult]:
        try:
            return self._res_q.get(timeout=timeout)
        except queue.Empty:
            return None

    def _emit_state(self, kind: str, step: Optional[StepResult] = None) -> None:
        payload: Dict[str, Any] = {"state": self._model.snapshot()}
        if step is not None:
            payload["step_result"] = step.to_dict()
        self._res_q.put(WorkerResult(kind=kind, payload=payload))

    def _error(self, message: str) -> None:
        self._res_q.put(WorkerResult(kind="error", payload={"message": message}))

    def _ensure_plan(self) -> Optional[HitoriModel]:
        done = len(self._model.move_history)
        plan = self._plan
        if plan is None or plan.move_history[:done] != self._model.move_history:
            solver = HitoriSolver(self._model)
            plan = solver.solve()
            self._plan = plan
        return plan

    def _run(self) -> None:
        while not self._stop_evt.is_set():
            try:
                cmd = self._cmd_q.get(timeout=0.05)
            except queue.Empty:
                continue

            if cmd.kind == "stop":
                return

            payload = cmd.payload or {}

            if cmd.kind == "load_grid":
                try:
                    grid = payload.get("grid")
                    if isinstance(grid, list) and grid and isinstance(grid[0], list):
                        self._model.load_grid([[int(v) for v in row] for row in grid])
                        self._plan = None
                        self._emit_state("loaded")
                    else:
                        self._error("Load missing/invalid grid.")
                except Exception as e:
                    self._error(f"Load failed: {e}")
                continue

            if cmd.kind == "reset":
                try:
                    s = payload.get("state")
                    if isinstance(s, dict):
                        self._model.restore(s)
                        self._plan = None
                        self._emit_state("reset_done")
                    else:
                        self._error("Reset missing state.")
                except Exception as e:
                    self._error(f"Reset failed: {e}")
                continue

            if cmd.kind == "solve":
                try:
                    plan = self._ensure_plan()
                    if plan is None:
                        self._emit_state("no_solution", StepResult([], "No solution from the current board.", "None"))
                    else:
                        added = len(plan.move_history) - len(self._model.move_history)
                        self._model = plan.copy()
                        self._emit_state("solved", StepResult(plan.shaded_cells(), f"Solved in {added} moves.", "Solve"))
                except Exception as e:
                    self._error(f"Solve failed: {e}")
                continue

            if cmd.kind == "step":
                try:
                    if self._model.is_solved():
                        self._emit_state("stepped", StepResult([], "Board is already solved.", "None"))
                        continue
                    plan = self._ensure_plan()
                    if plan is None:
                        self._emit_state("no_solution", StepResult([], "No solution from the current board.", "None"))
                        continue
                    nxt = plan.move_history[len(self._model.move_history)]
                    step_res = self._model.replay_step(nxt)
                    self._emit_state("stepped", step_res)
                except Exception as e:
                    self._error(f"Step failed: {e}")
                continue

            if cmd.kind in ("finalize", "delete"):
                try:
                    r, c = int(payload["row"]), int(payload["col"])
                    trial = self._model.copy()
                    if cmd.kind == "finalize":
                        step_res = trial.finalize_cell(r, c)
                    else:
                        step_res = trial.delete_cell(r, c)
                    if step_res.is_contradiction:
                        self._emit_state("rejected", step_res)
                    else:
                        self._model = trial
                        self._plan = None
                        self._emit_state("stepped", step_res)
                except Exception as e:
                    self._error(f"Move failed: {e}")
                continue

            self._error(f"Unknown command: {cmd.kind}")
