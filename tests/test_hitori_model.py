import pytest
import sys
import os

# Add project root to sys.path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from hitori_model import (
    HitoriModel, CellState, StepResult, read_grid,
    PuzzleFormatError, InvalidShapeError, InvalidValueError, MultipleStateChangeError,
    BORDER, NO_SOLUTION, RULE_DELETE, RULE_FINALIZE, RULE_UNIQUE,
)

CENTER_3X3 = [
    [1, 2, 3],
    [2, 2, 1],
    [3, 1, 2],
]

CLASSIC_5X5 = [
    [1, 3, 3, 4, 5],
    [2, 3, 4, 2, 1],
    [4, 4, 2, 1, 2],
    [4, 5, 1, 2, 1],
    [5, 5, 2, 3, 4],
]


def states(model):
    return [[cell.state for cell in row] for row in model.cells]


def assert_counts_consistent(model):
    n = model.size
    for r in range(n):
        for v in range(1, n + 1):
            expected = sum(1 for c in range(n) if model.cells[r][c].is_unknown and model.cells[r][c].value == v)
            assert model.row_counts[r][v] == expected
    for c in range(n):
        for v in range(1, n + 1):
            expected = sum(1 for r in range(n) if model.cells[r][c].is_unknown and model.cells[r][c].value == v)
            assert model.col_counts[c][v] == expected
    unknown = sum(1 for row in model.cells for cell in row if cell.is_unknown)
    assert model.unknown_count == unknown


# ----------------------------
# Input
# ----------------------------

def test_read_grid_ignores_blank_lines_and_extra_spaces():
    text = "\n  1 2  3\n\n2 2 1\n3\t1 2\n\n"
    assert read_grid(text) == CENTER_3X3


@pytest.mark.parametrize("text, error", [
    ("", InvalidShapeError),
    ("\n \n", InvalidShapeError),
    ("1 2\n1\n", InvalidShapeError),
    ("1 2 3\n2 3 1\n", InvalidShapeError),
    ("1 x\n2 1\n", PuzzleFormatError),
    ("1 2.5\n2 1\n", PuzzleFormatError),
])
def test_read_grid_rejects_malformed_text(text, error):
    with pytest.raises(error):
        read_grid(text)


def test_format_errors_are_value_errors():
    assert issubclass(PuzzleFormatError, ValueError)
    assert issubclass(InvalidShapeError, PuzzleFormatError)
    assert issubclass(InvalidValueError, PuzzleFormatError)


@pytest.mark.parametrize("grid", [
    [],
    [[1, 2], [2]],
    [[1, 2, 3], [2, 3, 1]],
])
def test_load_grid_rejects_non_square(grid):
    with pytest.raises(InvalidShapeError):
        HitoriModel(grid)


@pytest.mark.parametrize("grid", [
    [[0, 1], [1, 2]],
    [[1, 3], [2, 1]],
    [[5]],
    [[1, -2], [2, 1]],
    [[1, "2"], [2, 1]],
])
def test_load_grid_rejects_out_of_range_values(grid):
    with pytest.raises(InvalidValueError):
        HitoriModel(grid)


def test_load_grid_accepts_duplicates():
    model = HitoriModel([[1, 1], [1, 1]])
    assert model.size == 2
    assert model.unknown_count == 4
    assert model.row_counts[0][1] == 2
    assert model.col_counts[1][1] == 2
    assert all(cell.is_unknown for row in model.cells for cell in row)


def test_parse_puzzle_text_reports_errors_as_messages():
    model = HitoriModel()
    ok, msg = model.parse_puzzle_text("1 2\n3 4\n")
    assert not ok
    assert "Invalid value" in msg

    ok, msg = model.parse_puzzle_text("1 2 3\n2 2 1\n3 1 2\n")
    assert ok
    assert model.values() == CENTER_3X3


# ----------------------------
# Geometry
# ----------------------------

def test_cell_index_leaves_zero_for_border():
    model = HitoriModel(CENTER_3X3)
    indices = [model.cell_index(r, c) for r in range(3) for c in range(3)]
    assert indices == list(range(1, 10))
    assert BORDER not in indices
    assert model.deleted_trees.size == 10


def test_neighbors_are_clipped_to_grid():
    model = HitoriModel(CENTER_3X3)
    assert sorted(model.neighbors4(0, 0)) == [(0, 1), (1, 0)]
    assert sorted(model.neighbors4(1, 1)) == [(0, 1), (1, 0), (1, 2), (2, 1)]
    assert sorted(model.diagonal_neighbors(0, 2)) == [(1, 1)]
    assert sorted(model.diagonal_neighbors(1, 1)) == [(0, 0), (0, 2), (2, 0), (2, 2)]


# ----------------------------
# Propagation
# ----------------------------

def test_finalize_unique_cells_keeps_only_unique_values():
    model = HitoriModel(CENTER_3X3)
    res = model.finalize_unique_cells()
    assert res.rule == RULE_UNIQUE
    assert sorted(res.changed_cells) == [(0, 0), (0, 2), (1, 2), (2, 0), (2, 1), (2, 2)]
    assert model.unknown_count == 3
    for r, c in [(0, 1), (1, 0), (1, 1)]:
        assert model.cells[r][c].is_unknown
    assert_counts_consistent(model)


def test_finalize_unique_cells_is_idempotent():
    model = HitoriModel(CLASSIC_5X5)
    first = model.finalize_unique_cells()
    assert len(first.changed_cells) == 7
    before = states(model)
    history_len = len(model.move_history)

    second = model.finalize_unique_cells()
    assert second.changed_cells == []
    assert states(model) == before
    assert len(model.move_history) == history_len


def test_finalize_cell_shades_duplicates_and_cascades():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()

    res = model.delete_cell(0, 1)
    assert not res.is_contradiction
    assert res.rule == RULE_DELETE
    assert res.origin == (0, 1)
    # neighbours of a shaded cell are kept
    assert model.cells[0][2].is_final
    assert model.cells[1][1].is_final
    assert model.cells[0][1].is_deleted
    assert res.changed_cells[0] == (0, 1)
    assert sorted(res.changed_cells) == [(0, 1), (0, 2), (1, 1)]
    assert_counts_consistent(model)


def test_finalize_cell_shades_same_value_in_row_and_column():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()
    model.delete_cell(0, 1)

    res = model.delete_cell(1, 3)
    assert not res.is_contradiction
    shaded = set(model.shaded_cells())
    assert {(0, 1), (1, 3), (3, 4), (2, 2), (2, 0)} <= shaded
    for r, c in [(1, 4), (3, 3), (2, 4), (2, 1), (3, 2), (1, 0), (3, 0)]:
        assert model.cells[r][c].is_final
    assert_counts_consistent(model)
    ok, msg = model.puzzle_correct_so_far()
    assert ok, msg


def test_finalize_conflicting_value_is_contradiction():
    model = HitoriModel(CENTER_3X3)
    model.finalize_unique_cells()
    res = model.finalize_cell(1, 1)
    assert res.is_contradiction
    assert res.rule == NO_SOLUTION
    assert res.message == "circular neighbors found"
    assert model.last_step is res


def test_cascade_alternates_between_shading_and_keeping():
    model = HitoriModel([[1, 2, 1], [2, 1, 3], [3, 3, 2]])
    res = model.finalize_cell(0, 0)
    assert not res.is_contradiction
    assert res.changed_cells == [(0, 0), (0, 2), (0, 1), (1, 2)]

    res = model.finalize_cell(2, 0)
    assert not res.is_contradiction
    assert res.changed_cells == [(2, 0), (2, 1), (1, 1), (2, 2)]
    assert model.shaded_cells() == [(0, 2), (2, 1)]
    assert model.unknown_count == 1
    assert_counts_consistent(model)


def test_kept_duplicate_reports_row_conflict():
    model = HitoriModel([[1, 2, 1], [2, 3, 3], [3, 1, 2]])
    model.cells[0][2].state = CellState.FINAL
    model._leave_unknown(0, 2)
    res = model.finalize_cell(0, 0)
    assert res.is_contradiction
    assert res.message == "multiple finalized values found in a row"


def test_kept_duplicate_reports_column_conflict():
    model = HitoriModel([[1, 2, 3], [2, 3, 1], [1, 1, 2]])
    model.cells[2][0].state = CellState.FINAL
    model._leave_unknown(2, 0)
    res = model.finalize_cell(0, 0)
    assert res.is_contradiction
    assert res.message == "multiple finalized values found in a column"


def test_delete_next_to_shaded_cell_is_contradiction():
    model = HitoriModel(CENTER_3X3)
    model.cells[1][1].state = CellState.DELETED
    model._leave_unknown(1, 1)
    res = model.delete_cell(0, 1)
    assert res.is_contradiction
    assert res.message == "deleted neighbor found"
    assert model.cells[0][1].is_unknown


def test_delete_closing_border_loop_is_contradiction():
    model = HitoriModel([[1, 1], [1, 1]])
    res = model.delete_cell(0, 0)
    assert res.is_contradiction
    assert res.message == "circular neighbors found"


def test_delete_joins_border_and_diagonal_regions():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()
    model.delete_cell(0, 1)
    model.delete_cell(1, 3)
    trees = model.deleted_trees
    assert trees.same_set(BORDER, model.cell_index(0, 1))
    assert trees.same_set(BORDER, model.cell_index(3, 4))
    assert trees.same_set(BORDER, model.cell_index(2, 0))
    assert trees.same_set(model.cell_index(1, 3), model.cell_index(2, 2))
    assert not trees.same_set(BORDER, model.cell_index(2, 2))


def test_setting_state_twice_is_contract_violation():
    model = HitoriModel(CENTER_3X3)
    model.finalize_unique_cells()
    with pytest.raises(MultipleStateChangeError):
        model.finalize_cell(0, 0)
    with pytest.raises(MultipleStateChangeError):
        model.delete_cell(2, 2)
    assert not issubclass(MultipleStateChangeError, ValueError)


def test_out_of_range_cell_is_contract_violation():
    model = HitoriModel(CENTER_3X3)
    with pytest.raises(IndexError):
        model.finalize_cell(3, 0)
    with pytest.raises(IndexError):
        model.delete_cell(0, -1)


def test_every_applied_change_reduces_unknown_count():
    model = HitoriModel(CLASSIC_5X5)
    before = model.unknown_count
    res = model.delete_cell(0, 1)
    assert not res.is_contradiction
    assert res.changed_cells == [(0, 1), (0, 0), (0, 2), (1, 1)]
    assert model.unknown_count == before - len(res.changed_cells)
    assert len(set(res.changed_cells)) == len(res.changed_cells)
    assert_counts_consistent(model)


# ----------------------------
# Heuristic
# ----------------------------

def test_candidate_picks_highest_pressure_cell():
    model = HitoriModel(CENTER_3X3)
    model.finalize_unique_cells()
    assert model.get_finalize_candidate_pos() == (1, 1)


def test_candidate_ties_resolve_in_scan_order():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()
    # (0,1), (1,3), (2,0), ... all score 3; the first one in row-major order wins
    assert model.get_finalize_candidate_pos() == (0, 1)


def test_candidate_value_missing_from_both_lines_scores_lowest():
    # 2 appears in neither row 0 nor column 2, so (0,2) scores -1 for it
    model = HitoriModel([[3, 3, 1], [2, 1, 3], [1, 2, 1]])
    assert model.row_counts[0][2] == 0 and model.col_counts[2][2] == 0
    assert model.get_finalize_candidate_pos() == (2, 2)

    model.finalize_unique_cells()
    assert model.get_finalize_candidate_pos() == (2, 2)


def test_candidate_is_none_on_decided_board():
    model = HitoriModel([[1]])
    model.finalize_unique_cells()
    assert model.is_solved()
    assert model.get_finalize_candidate_pos() is None


# ----------------------------
# Copies, snapshots, replay
# ----------------------------

def test_copy_is_independent_of_original():
    model = HitoriModel(CENTER_3X3)
    model.finalize_unique_cells()
    trial = model.copy()
    res = trial.finalize_cell(1, 1)
    assert res.is_contradiction

    assert model.cells[1][1].is_unknown
    assert model.cells[0][1].is_unknown
    assert model.unknown_count == 3
    assert model.deleted_trees.find_set(model.cell_index(0, 1)) == model.cell_index(0, 1)
    assert_counts_consistent(model)


def test_snapshot_restore_round_trip_keeps_forest():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()
    model.delete_cell(0, 1)
    model.delete_cell(1, 3)

    restored = HitoriModel()
    restored.restore(model.snapshot())
    assert states(restored) == states(model)
    assert restored.move_history == model.move_history
    assert_counts_consistent(restored)
    for r, c in model.shaded_cells():
        assert restored.deleted_trees.same_set(BORDER, restored.cell_index(r, c)) == \
            model.deleted_trees.same_set(BORDER, model.cell_index(r, c))
    # the forest still rejects loops after a restore
    res = restored.copy().finalize_cell(4, 1)
    assert res.is_contradiction
    assert res.message == "circular neighbors found"


@pytest.mark.parametrize("snap", [
    {},
    {"grid": []},
    {"grid": [[1]], "states": [["BOGUS"]]},
    {"grid": [[1]], "states": [["UNKNOWN", "UNKNOWN"]]},
    {"grid": [[1]], "states": [["UNKNOWN"]], "last_step": "nope"},
])
def test_restore_rejects_malformed_snapshots(snap):
    with pytest.raises(ValueError):
        HitoriModel().restore(snap)


def test_replay_reproduces_board():
    model = HitoriModel(CLASSIC_5X5)
    model.finalize_unique_cells()
    model.delete_cell(0, 1)
    model.delete_cell(1, 3)

    fresh = HitoriModel(CLASSIC_5X5)
    for step in model.move_history:
        res = fresh.replay_step(step)
        assert res.changed_cells == step.changed_cells
    assert states(fresh) == states(model)


def test_replay_rejects_unknown_rule():
    model = HitoriModel(CENTER_3X3)
    with pytest.raises(ValueError):
        model.replay_step(StepResult([], "?", "Bogus", (0, 0)))
    with pytest.raises(ValueError):
        model.replay_step(StepResult([], "?", RULE_FINALIZE))


# ----------------------------
# Output & checking
# ----------------------------

def test_format_grid_marks_states():
    model = HitoriModel(CENTER_3X3)
    assert model.format_grid() == "? ? ? \n? ? ? \n? ? ? \n"
    model.finalize_unique_cells()
    model.delete_cell(1, 1)
    assert model.format_grid() == "1 2 3 \n2 - 1 \n3 1 2 \n"


def test_format_grid_pads_to_digit_count():
    grid = [[((r + c) % 10) + 1 for c in range(10)] for r in range(10)]
    model = HitoriModel(grid)
    model.finalize_unique_cells()
    lines = model.format_grid().splitlines()
    assert len(lines) == 10
    assert lines[0].startswith(" 1  2  3")
    assert lines[0].endswith("10 ")


def test_puzzle_correct_so_far_detects_each_rule():
    model = HitoriModel(CENTER_3X3)
    assert model.puzzle_correct_so_far() == (True, "OK")

    dup = HitoriModel(CENTER_3X3)
    dup.cells[1][0].state = CellState.FINAL
    dup.cells[1][1].state = CellState.FINAL
    ok, msg = dup.puzzle_correct_so_far()
    assert not ok and "row 1" in msg

    adjacent = HitoriModel(CENTER_3X3)
    adjacent.cells[0][1].state = CellState.DELETED
    adjacent.cells[1][1].state = CellState.DELETED
    ok, msg = adjacent.puzzle_correct_so_far()
    assert not ok and "adjacent" in msg

    split = HitoriModel(CENTER_3X3)
    split.cells[0][1].state = CellState.DELETED
    split.cells[1][0].state = CellState.DELETED
    ok, msg = split.puzzle_correct_so_far()
    assert not ok and "split" in msg
