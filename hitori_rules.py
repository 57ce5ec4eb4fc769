from typing import Dict, Optional

from hitori_model import HitoriModel, StepResult


class HitoriSolver:
    """Depth-first search over board copies with propagation at every node.

    Each node keeps the unique-valued cells, then branches on the candidate
    cell: first on a copy where the cell is kept, then, if that copy leads
    nowhere, on the node's own board with the cell shaded. Contradictions
    come back as StepResults; contract violations are raised and not caught
    here.
    """

    def __init__(self, model: HitoriModel, verbose: bool = False) -> None:
        self.model = model
        self.verbose = verbose
        self.last_contradiction: Optional[StepResult] = None
        self.solution: Optional[HitoriModel] = None
        self.stats: Dict[str, int] = {
            "nodes": 0,
            "branches": 0,
            "backtracks": 0,
            "forced_cells": 0,
            "max_depth": 0,
        }

    def solve(self) -> Optional[HitoriModel]:
        """Return a solved copy of the model, or None when the puzzle has no solution."""
        if self.verbose:
            print(f"Starting solver: {self.model}")

        self.solution = self._search(self.model.copy(), depth=0)

        if self.solution is not None:
            ok, msg = self.solution.puzzle_correct_so_far()
            if not ok:
                raise RuntimeError(f"Solver produced an invalid board: {msg}")

        if self.verbose:
            print("Puzzle solved." if self.solution is not None else "No solution found.")
            self.print_stats()
        return self.solution

    def _search(self, board: HitoriModel, depth: int) -> Optional[HitoriModel]:
        # The board belongs to this frame: shading the candidate mutates it in
        # place and the loop continues on it.
        self.stats["max_depth"] = max(self.stats["max_depth"], depth)
        while True:
            self.stats["nodes"] += 1
            forced = board.finalize_unique_cells()
            self.stats["forced_cells"] += len(forced.changed_cells)

            if board.is_solved():
                return board

            pos = board.get_finalize_candidate_pos()
            if pos is None:
                raise RuntimeError(f"No candidate cell on an unsolved board: {board}")
            r, c = pos
            self.stats["branches"] += 1

            trial = board.copy()
            res = trial.finalize_cell(r, c)
            if res.is_contradiction:
                self.last_contradiction = res
            else:
                solved = self._search(trial, depth + 1)
                if solved is not None:
                    return solved

            self.stats["backtracks"] += 1
            if self.verbose:
                print(f"  depth {depth}: keeping ({r},{c}) failed, shading it instead")

            res = board.delete_cell(r, c)
            if res.is_contradiction:
                self.last_contradiction = res
                return None

    def print_stats(self) -> None:
        print("Search statistics:")
        for key, value in self.stats.items():
            print(f"  {key}: {value}")
