"""
Hitori Solver - command line entry point

Usage:
    python hitori.py puzzles/classic_5x5.hi.txt
    python hitori.py puzzles/classic_5x5.hi.txt --stats --trace

Exit codes: 0 solved (or usage shown), 1 unreadable file, 2 malformed or
unsolvable puzzle, 3 internal error.
"""

import argparse
import sys
from typing import List, Optional

from disjoint_sets import ElementRangeError, NotARootError
from hitori_model import HitoriModel, MultipleStateChangeError, PuzzleFormatError, read_grid
from hitori_rules import HitoriSolver

EXIT_OK = 0
EXIT_UNREADABLE = 1
EXIT_PUZZLE_ERROR = 2
EXIT_INTERNAL_ERROR = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hitori", description="Hitori puzzle solver")
    parser.add_argument("puzzle_file", nargs="?", help="Path to the puzzle text file")
    parser.add_argument("--stats", action="store_true", help="Print search statistics after solving")
    parser.add_argument("--trace", action="store_true", help="Print the moves that lead to the solution")
    parser.add_argument("--check", action="store_true", help="Re-check the solved grid against the Hitori rules")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print solver progress")
    return parser


def run(args: argparse.Namespace) -> int:
    try:
        with open(args.puzzle_file, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError:
        print(f"Unable to open {args.puzzle_file} for reading")
        return EXIT_UNREADABLE
    except UnicodeDecodeError as e:
        print(f"Unable to decode {args.puzzle_file} as UTF-8: {e.reason} at byte {e.start}")
        return EXIT_PUZZLE_ERROR

    try:
        model = HitoriModel(read_grid(text))
    except PuzzleFormatError as e:
        print(e)
        return EXIT_PUZZLE_ERROR

    solver = HitoriSolver(model, verbose=args.verbose)
    solution = solver.solve()
    if solution is None:
        reason = solver.last_contradiction.message if solver.last_contradiction else "search exhausted"
        print(f"No solution exists: {reason}")
        return EXIT_PUZZLE_ERROR

    print(solution.format_grid(), end="")

    if args.trace:
        print()
        for i, step in enumerate(solution.move_history, start=1):
            print(f"{i:3d}. [{step.rule}] {step.message}")

    if args.check:
        ok, msg = solution.puzzle_correct_so_far()
        print(f"Check: {msg}")

    if args.stats and not args.verbose:
        solver.print_stats()

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.puzzle_file is None:
        parser.print_usage()
        return EXIT_OK

    try:
        return run(args)
    except (MultipleStateChangeError, ElementRangeError, NotARootError) as e:
        print(f"internal error: {e}")
        return EXIT_INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
