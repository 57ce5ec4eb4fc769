import json
import argparse
import sys
from typing import Dict, Any, List

from hitori_model import HitoriModel
from hitori_rules import HitoriSolver


def serialize_grid(model: HitoriModel) -> List[List[str]]:
    """Converts the final grid state into a list of strings for JSON serialization."""
    grid_state = []
    for row in model.cells:
        row_state = []
        for cell in row:
            if cell.is_deleted:
                row_state.append("SHADED")
            elif cell.is_final:
                row_state.append(f"KEPT({cell.value})")
            else:
                row_state.append("UNKNOWN")
        grid_state.append(row_state)
    return grid_state


def run_solver(grid_path: str) -> Dict[str, Any]:
    """Loads a grid, runs the solver to completion, and returns the result stats."""
    model = HitoriModel()

    try:
        with open(grid_path, 'r', encoding='utf-8') as f:
            content = f.read()
    except OSError as e:
        print(f"Error: Unable to read '{grid_path}': {e}")
        sys.exit(1)
    except UnicodeDecodeError as e:
        print(f"Error parsing grid: {e}")
        sys.exit(1)

    success, msg = model.parse_puzzle_text(content)
    if not success:
        print(f"Error parsing grid: {msg}")
        sys.exit(1)

    solver = HitoriSolver(model)
    solution = solver.solve()
    final = solution if solution is not None else model

    return {
        "is_fully_solved": solution is not None,
        "shaded_cells": [list(p) for p in final.shaded_cells()],
        "final_grid": serialize_grid(final),
    }


def generate_reference(grid_path: str):
    """Runs solver and saves the result as a reference JSON."""
    result = run_solver(grid_path)
    ref_path = grid_path + ".reference.json"

    with open(ref_path, 'w') as f:
        json.dump(result, f, indent=2, sort_keys=True)

    print(f"Success: Reference generated and saved to '{ref_path}'")
    print(f"Solved: {result['is_fully_solved']}, Shaded: {len(result['shaded_cells'])}")


def check_regression(grid_path: str):
    """Runs solver and compares result with existing reference JSON."""
    current_result = run_solver(grid_path)
    ref_path = grid_path + ".reference.json"

    try:
        with open(ref_path, 'r') as f:
            reference_result = json.load(f)
    except FileNotFoundError:
        print(f"Error: Reference file '{ref_path}' not found. Run in 'generate' mode first.")
        sys.exit(1)

    grid_match = current_result["final_grid"] == reference_result["final_grid"]
    solved_match = current_result["is_fully_solved"] == reference_result["is_fully_solved"]

    if grid_match and solved_match:
        print("TEST PASSED: Output matches reference exactly.")
        return

    print("TEST FAILED: Output mismatch.")
    if not solved_match:
        print(f"CRITICAL: solved={current_result['is_fully_solved']}, reference solved={reference_result['is_fully_solved']}")
    if not grid_match:
        ref_cells = {tuple(p) for p in reference_result["shaded_cells"]}
        cur_cells = {tuple(p) for p in current_result["shaded_cells"]}
        print("CRITICAL: Final grid state differs!")
        print("Shaded only in reference:", sorted(ref_cells - cur_cells))
        print("Shaded only now:         ", sorted(cur_cells - ref_cells))
    sys.exit(1)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Hitori Solver Regression Runner")
    parser.add_argument("grid_file", help="Path to the .hi.txt grid file")
    parser.add_argument("--mode", choices=["generate", "test"], default="test",
                        help="Mode: 'generate' to create reference JSON, 'test' to compare against it.")

    args = parser.parse_args()

    if args.mode == "generate":
        generate_reference(args.grid_file)
    else:
        check_regression(args.grid_file)
