from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Deque, Dict, List, Optional, Tuple

from disjoint_sets import DisjointSets

# ----------------------------
# Domain model
# ----------------------------

RuleName = str
Pos = Tuple[int, int]

# Element 0 of the shaded-region forest stands for everything outside the grid.
BORDER = 0

RULE_UNIQUE = "Unique cells"
RULE_FINALIZE = "Finalize"
RULE_DELETE = "Delete"
NO_SOLUTION = "NO_SOLUTION"

ORTHOGONAL_OFFSETS = [(0, -1), (-1, 0), (0, 1), (1, 0)]
DIAGONAL_OFFSETS = [(-1, -1), (-1, 1), (1, 1), (1, -1)]


class CellState(Enum):
    UNKNOWN = 0
    FINAL = 1
    DELETED = 2


class PuzzleFormatError(ValueError):
    pass


class InvalidShapeError(PuzzleFormatError):
    pass


class InvalidValueError(PuzzleFormatError):
    pass


class MultipleStateChangeError(RuntimeError):
    def __init__(self, r: int, c: int, state: CellState) -> None:
        super().__init__(f"tried to set the state of ({r},{c}) multiple times (already {state.name})")


@dataclass
class Cell:
    value: int
    state: CellState = CellState.UNKNOWN

    @property
    def is_unknown(self) -> bool:
        return self.state is CellState.UNKNOWN

    @property
    def is_final(self) -> bool:
        return self.state is CellState.FINAL

    @property
    def is_deleted(self) -> bool:
        return self.state is CellState.DELETED


@dataclass
class StepResult:
    changed_cells: List[Pos]
    message: str
    rule: RuleName = ""
    origin: Optional[Pos] = None

    @property
    def is_contradiction(self) -> bool:
        return self.rule == NO_SOLUTION

    def to_dict(self) -> Dict[str, object]:
        return {
            "changed_cells": [list(p) for p in self.changed_cells],
            "message": self.message,
            "rule": self.rule,
            "origin": list(self.origin) if self.origin is not None else None,
        }

    @staticmethod
    def from_dict(data: Dict[str, object]) -> "StepResult":
        origin = data.get("origin")
        return StepResult(
            changed_cells=[(int(r), int(c)) for (r, c) in data.get("changed_cells", [])],
            message=str(data.get("message", "")),
            rule=str(data.get("rule", "")),
            origin=(int(origin[0]), int(origin[1])) if origin else None,
        )


# (target state, row, col, reason if the cell already holds the other state)
PendingChange = Tuple[CellState, int, int, str]


def read_grid(text: str) -> List[List[int]]:
    """Parse whitespace separated integers, one row per line. Blank lines are ignored."""
    grid: List[List[int]] = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        tokens = line.split()
        if not tokens:
            continue
        row: List[int] = []
        for tok in tokens:
            try:
                row.append(int(tok))
            except ValueError:
                raise PuzzleFormatError(f"Non numeric value encountered on line {line_no}: {tok!r}") from None
        if grid and len(row) != len(grid[0]):
            raise InvalidShapeError(
                f"Invalid table shape: line {line_no} has {len(row)} values, expected {len(grid[0])}."
            )
        grid.append(row)

    if not grid:
        raise InvalidShapeError("Invalid table shape: no rows found.")
    if len(grid) != len(grid[0]):
        raise InvalidShapeError(f"Invalid table shape: {len(grid)} rows of {len(grid[0])} values, table must be square.")
    return grid


class HitoriModel:
    """Hitori board state.

    Keeps, next to the cells, the number of UNKNOWN cells per (row, value) and
    (column, value) and a union-find forest over the shaded cells. Cell (r, c)
    is element r*size + c + 1 of the forest; element 0 is the border. Shaded
    cells touching the outer ring join the border set and diagonally adjacent
    shaded cells share a set, so shading a cell whose diagonal neighbours
    already share a set would close a loop around unshaded cells.
    """

    def __init__(self, grid: Optional[List[List[int]]] = None) -> None:
        self.size = 0
        self.cells: List[List[Cell]] = []
        self.row_counts: List[List[int]] = []
        self.col_counts: List[List[int]] = []
        self.unknown_count = 0
        self.deleted_trees = DisjointSets(1)

        # UI/log support
        self.last_step: Optional[StepResult] = None
        self.move_history: List[StepResult] = []

        if grid is not None:
            self.load_grid(grid)

    # ----------------------------
    # Loading
    # ----------------------------

    def load_grid(self, grid: List[List[int]]) -> None:
        size = len(grid)
        if size == 0:
            raise InvalidShapeError("Invalid table shape: empty grid.")
        for r, row in enumerate(grid):
            if len(row) != size:
                raise InvalidShapeError(f"Invalid table shape: row {r} has {len(row)} values, expected {size}.")
            for c, v in enumerate(row):
                if not isinstance(v, int) or isinstance(v, bool) or v < 1 or v > size:
                    raise InvalidValueError(f"Invalid value at ({r},{c}): {v!r} (allowed: 1..{size}).")

        self.size = size
        self.cells = [[Cell(v) for v in row] for row in grid]
        self.row_counts = [[0] * (size + 1) for _ in range(size)]
        self.col_counts = [[0] * (size + 1) for _ in range(size)]
        for r in range(size):
            for c in range(size):
                v = grid[r][c]
                self.row_counts[r][v] += 1
                self.col_counts[c][v] += 1
        self.unknown_count = size * size
        self.deleted_trees = DisjointSets(size * size + 1)
        self.last_step = None
        self.move_history = []

    def parse_puzzle_text(self, text: str) -> Tuple[bool, str]:
        try:
            self.load_grid(read_grid(text))
        except PuzzleFormatError as e:
            return False, str(e)
        return True, "Loaded."

    def copy(self) -> "HitoriModel":
        other = HitoriModel()
        other.size = self.size
        other.cells = [[Cell(cell.value, cell.state) for cell in row] for row in self.cells]
        other.row_counts = [row[:] for row in self.row_counts]
        other.col_counts = [row[:] for row in self.col_counts]
        other.unknown_count = self.unknown_count
        other.deleted_trees = self.deleted_trees.copy()
        other.last_step = self.last_step
        other.move_history = list(self.move_history)
        return other

    # ----------------------------
    # Geometry
    # ----------------------------

    def in_bounds(self, r: int, c: int) -> bool:
        return 0 <= r < self.size and 0 <= c < self.size

    def on_border(self, r: int, c: int) -> bool:
        return r == 0 or c == 0 or r == self.size - 1 or c == self.size - 1

    def neighbors4(self, r: int, c: int) -> List[Pos]:
        return [(r + dr, c + dc) for dr, dc in ORTHOGONAL_OFFSETS if self.in_bounds(r + dr, c + dc)]

    def diagonal_neighbors(self, r: int, c: int) -> List[Pos]:
        return [(r + dr, c + dc) for dr, dc in DIAGONAL_OFFSETS if self.in_bounds(r + dr, c + dc)]

    def cell_index(self, r: int, c: int) -> int:
        return r * self.size + c + 1

    # ----------------------------
    # Queries
    # ----------------------------

    def value(self, r: int, c: int) -> int:
        return self.cells[r][c].value

    def state(self, r: int, c: int) -> CellState:
        return self.cells[r][c].state

    def values(self) -> List[List[int]]:
        return [[cell.value for cell in row] for row in self.cells]

    def is_solved(self) -> bool:
        return self.unknown_count == 0

    def shaded_cells(self) -> List[Pos]:
        return [
            (r, c)
            for r in range(self.size)
            for c in range(self.size)
            if self.cells[r][c].is_deleted
        ]

    def get_finalize_candidate_pos(self) -> Optional[Pos]:
        """Branching cell for the search.

        Scores every UNKNOWN cell against every value with
        row_counts + col_counts - 1 and returns the first maximum in row-major,
        value-ascending order. A value absent from both lines scores -1.
        """
        best: Optional[Pos] = None
        best_score = 0
        for r in range(self.size):
            for c in range(self.size):
                if not self.cells[r][c].is_unknown:
                    continue
                for v in range(1, self.size + 1):
                    score = self.row_counts[r][v] + self.col_counts[c][v] - 1
                    if best is None or score > best_score:
                        best = (r, c)
                        best_score = score
        return best

    def puzzle_correct_so_far(self) -> Tuple[bool, str]:
        """Check the three Hitori rules against the decided cells."""
        n = self.size
        for r in range(n):
            seen: Dict[int, int] = {}
            for c in range(n):
                cell = self.cells[r][c]
                if cell.is_final:
                    if cell.value in seen:
                        return False, f"Value {cell.value} kept twice in row {r} (columns {seen[cell.value]} and {c})"
                    seen[cell.value] = c
        for c in range(n):
            seen = {}
            for r in range(n):
                cell = self.cells[r][c]
                if cell.is_final:
                    if cell.value in seen:
                        return False, f"Value {cell.value} kept twice in column {c} (rows {seen[cell.value]} and {r})"
                    seen[cell.value] = r

        for r, c in self.shaded_cells():
            for nr, nc in self.neighbors4(r, c):
                if self.cells[nr][nc].is_deleted:
                    return False, f"Shaded cells ({r},{c}) and ({nr},{nc}) are adjacent"

        open_cells = {
            (r, c)
            for r in range(n)
            for c in range(n)
            if not self.cells[r][c].is_deleted
        }
        if not open_cells:
            return False, "Every cell is shaded"
        start = min(open_cells)
        visited = {start}
        queue = deque([start])
        while queue:
            r, c = queue.popleft()
            for nxt in self.neighbors4(r, c):
                if nxt in open_cells and nxt not in visited:
                    visited.add(nxt)
                    queue.append(nxt)
        if len(visited) != len(open_cells):
            return False, f"Unshaded cells are split: {len(visited)} of {len(open_cells)} reachable from {start}"

        return True, "OK"

    # ----------------------------
    # Propagation & mutation
    # ----------------------------

    def finalize_unique_cells(self) -> StepResult:
        """Keep every UNKNOWN cell whose value occurs nowhere else undecided in its row and column."""
        changed: List[Pos] = []
        for r in range(self.size):
            for c in range(self.size):
                cell = self.cells[r][c]
                if not cell.is_unknown:
                    continue
                v = cell.value
                if self.row_counts[r][v] == 1 and self.col_counts[c][v] == 1:
                    cell.state = CellState.FINAL
                    self._leave_unknown(r, c)
                    changed.append((r, c))

        res = StepResult(changed, f"Kept {len(changed)} cells with unique values", RULE_UNIQUE)
        if changed:
            self._record(res)
        return res

    def finalize_cell(self, r: int, c: int) -> StepResult:
        self._require_unknown(r, c)
        pending: Deque[PendingChange] = deque([(CellState.FINAL, r, c, "")])
        return self._propagate(pending, RULE_FINALIZE, (r, c))

    def delete_cell(self, r: int, c: int) -> StepResult:
        self._require_unknown(r, c)
        pending: Deque[PendingChange] = deque([(CellState.DELETED, r, c, "")])
        return self._propagate(pending, RULE_DELETE, (r, c))

    def replay_step(self, step: StepResult) -> StepResult:
        """Apply a step recorded on another board of the same grid."""
        if step.rule == RULE_UNIQUE:
            return self.finalize_unique_cells()
        if step.origin is None:
            raise ValueError(f"Step {step.rule!r} has no origin cell")
        r, c = step.origin
        if step.rule == RULE_FINALIZE:
            return self.finalize_cell(r, c)
        if step.rule == RULE_DELETE:
            return self.delete_cell(r, c)
        raise ValueError(f"Cannot replay step with rule {step.rule!r}")

    def _require_unknown(self, r: int, c: int) -> None:
        if not self.in_bounds(r, c):
            raise IndexError(f"cell ({r},{c}) is outside the {self.size}x{self.size} grid")
        cell = self.cells[r][c]
        if not cell.is_unknown:
            raise MultipleStateChangeError(r, c, cell.state)

    def _propagate(self, pending: Deque[PendingChange], rule: RuleName, origin: Pos) -> StepResult:
        # Worklist of forced changes, run to a fixed point. Each applied change
        # removes one UNKNOWN cell, so the loop terminates.
        changed: List[Pos] = []
        while pending:
            target, r, c, conflict = pending.popleft()
            cell = self.cells[r][c]
            if cell.state is target:
                continue
            if not cell.is_unknown:
                return self._contradiction(changed, conflict, origin)

            if target is CellState.FINAL:
                reason = self._apply_final(r, c, pending)
            else:
                reason = self._apply_deleted(r, c, pending)
            if reason:
                return self._contradiction(changed, reason, origin)
            changed.append((r, c))

        verb = "Kept" if rule == RULE_FINALIZE else "Shaded"
        res = StepResult(changed, f"{verb} ({origin[0]},{origin[1]}), {len(changed)} cells decided", rule, origin)
        self._record(res)
        return res

    def _apply_final(self, r: int, c: int, pending: Deque[PendingChange]) -> str:
        cell = self.cells[r][c]
        cell.state = CellState.FINAL
        self._leave_unknown(r, c)

        v = cell.value
        for rr in range(self.size):
            other = self.cells[rr][c]
            if rr != r and other.value == v:
                if other.is_final:
                    return "multiple finalized values found in a column"
                if other.is_unknown:
                    pending.append((CellState.DELETED, rr, c, "multiple finalized values found in a column"))

        for cc in range(self.size):
            other = self.cells[r][cc]
            if cc != c and other.value == v:
                if other.is_final:
                    return "multiple finalized values found in a row"
                if other.is_unknown:
                    pending.append((CellState.DELETED, r, cc, "multiple finalized values found in a row"))
        return ""

    def _apply_deleted(self, r: int, c: int, pending: Deque[PendingChange]) -> str:
        for nr, nc in self.neighbors4(r, c):
            if self.cells[nr][nc].is_deleted:
                return "deleted neighbor found"

        cell_set = self.cell_index(r, c)
        if self.on_border(r, c):
            self.deleted_trees.union_sets(BORDER, cell_set)

        for dr, dc in self.diagonal_neighbors(r, c):
            if not self.cells[dr][dc].is_deleted:
                continue
            diagonal_root = self.deleted_trees.find_set(self.cell_index(dr, dc))
            cell_root = self.deleted_trees.find_set(cell_set)
            if diagonal_root == cell_root:
                return "circular neighbors found"
            self.deleted_trees.link_sets(diagonal_root, cell_root)

        self.cells[r][c].state = CellState.DELETED
        self._leave_unknown(r, c)

        for nr, nc in self.neighbors4(r, c):
            if self.cells[nr][nc].is_unknown:
                pending.append((CellState.FINAL, nr, nc, "deleted neighbor found"))
        return ""

    def _leave_unknown(self, r: int, c: int) -> None:
        v = self.cells[r][c].value
        self.row_counts[r][v] -= 1
        self.col_counts[c][v] -= 1
        self.unknown_count -= 1

    def _contradiction(self, changed: List[Pos], reason: str, origin: Pos) -> StepResult:
        res = StepResult(list(changed), reason, NO_SOLUTION, origin)
        self.last_step = res
        return res

    def _record(self, res: StepResult) -> None:
        self.last_step = res
        self.move_history.append(res)

    # ----------------------------
    # Output
    # ----------------------------

    def format_grid(self) -> str:
        """One line per row; kept cells show their value, shaded '-', undecided '?'."""
        digits = len(str(self.size))
        lines = []
        for row in self.cells:
            parts = []
            for cell in row:
                if cell.is_deleted:
                    txt = "-"
                elif cell.is_final:
                    txt = str(cell.value)
                else:
                    txt = "?"
                parts.append(f"{txt:>{digits}} ")
            lines.append("".join(parts))
        return "".join(line + "\n" for line in lines)

    def snapshot(self) -> Dict[str, object]:
        """Return a self-contained, pickle-friendly snapshot of the current state.

        Intended for:
        - Reset in the viewer (keep the loaded board)
        - Background solving (send boards between threads)
        """
        last_step = self.last_step.to_dict() if self.last_step is not None else None
        return {
            "grid": self.values(),
            "states": [[cell.state.name for cell in row] for row in self.cells],
            "history": [step.to_dict() for step in self.move_history],
            "last_step": last_step,
        }

    def restore(self, state: Dict[str, object]) -> None:
        """Restore a state previously produced by snapshot()."""
        grid = state.get("grid")
        if not isinstance(grid, list) or not grid or not isinstance(grid[0], list):
            raise ValueError("Invalid snapshot: missing/invalid 'grid'.")
        self.load_grid([[int(v) for v in row] for row in grid])

        states = state.get("states")
        if not isinstance(states, list) or len(states) != self.size:
            raise ValueError("Invalid snapshot: missing/invalid 'states'.")
        for r, row in enumerate(states):
            if not isinstance(row, list) or len(row) != self.size:
                raise ValueError(f"Invalid snapshot: bad state row {r}.")
            for c, name in enumerate(row):
                try:
                    cell_state = CellState[name]
                except KeyError:
                    raise ValueError(f"Invalid snapshot: unknown cell state {name!r}.") from None
                if cell_state is not CellState.UNKNOWN:
                    self.cells[r][c].state = cell_state
                    self._leave_unknown(r, c)

        # rebuild the shaded-region forest from scratch
        for r, c in self.shaded_cells():
            cell_set = self.cell_index(r, c)
            if self.on_border(r, c):
                self.deleted_trees.union_sets(BORDER, cell_set)
            for dr, dc in self.diagonal_neighbors(r, c):
                if self.cells[dr][dc].is_deleted:
                    self.deleted_trees.union_sets(self.cell_index(dr, dc), cell_set)

        history = state.get("history", [])
        if not isinstance(history, list):
            raise ValueError("Invalid snapshot: 'history' must be a list.")
        self.move_history = [StepResult.from_dict(step) for step in history]

        last_step = state.get("last_step")
        if last_step is None:
            self.last_step = None
        elif isinstance(last_step, dict):
            self.last_step = StepResult.from_dict(last_step)
        else:
            raise ValueError("Invalid snapshot: 'last_step' must be dict or None.")

    def __repr__(self) -> str:
        return f"HitoriModel(size={self.size}, unknown={self.unknown_count}, shaded={len(self.shaded_cells())})"
