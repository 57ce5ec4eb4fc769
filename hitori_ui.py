"""
Hitori Assistant (Pygame)

Features:
- Puzzle list: click a file from puzzles/ to load it.
- Main Mode: Keep/shade cells by hand, Step through the solver's moves, Solve, Reset.

Controls:
- Left click: keep the cell (finalize)
- Right click: shade the cell (delete)
- Drag with LMB or MMB: pan, mouse wheel: zoom
- Buttons: Solve, Step, Reset, Show Sets
"""

import os
import glob
from dataclasses import dataclass, field
from typing import Tuple, Optional, List, Dict

import pygame
import pygame_gui

from hitori_model import HitoriModel
from hitori_worker import SolverWorker, WorkerCommand
from hitori_drawing import Camera, draw_grid, pick_cell_from_mouse
import grid_style


# ----------------------------
# UI Constants
# ----------------------------
PUZZLE_DIRS = ["puzzles"]
PUZZLE_PATTERN = "*.txt"
BASE_CELL_SIZE = 48
DRAG_THRESHOLD_PX = 6
MAX_LOG_LINES = 100


# ----------------------------
# App state
# ----------------------------

@dataclass
class MainState:
    model: HitoriModel = field(default_factory=HitoriModel)
    loaded: Optional[Dict[str, object]] = None
    puzzle_files: List[str] = field(default_factory=list)
    affected_cells: List[Tuple[int, int]] = field(default_factory=list)
    hover: Optional[Tuple[int, int]] = None
    show_sets: bool = False


# ----------------------------
# Helpers
# ----------------------------

def find_puzzle_files(dirs: List[str]) -> List[str]:
    files: List[str] = []
    for d in dirs:
        if os.path.isdir(d):
            files.extend(sorted(glob.glob(os.path.join(d, "**", PUZZLE_PATTERN), recursive=True)))
    return files


def format_debug_cell(model: HitoriModel, r: int, c: int) -> str:
    if not model.in_bounds(r, c):
        return "Out of bounds."
    cell = model.cells[r][c]
    return (
        f"Cell ({r},{c}) value={cell.value} state={cell.state.name}\n"
        f"row_count={model.row_counts[r][cell.value]} col_count={model.col_counts[c][cell.value]}"
    )


def html_escape(s: str) -> str:
    return (
        s.replace("&", "&amp;")
         .replace("<", "&lt;")
         .replace(">", "&gt;")
         .replace('"', "&quot;")
         .replace("'", "&#39;")
    )


# ----------------------------
# Main
# ----------------------------

def main() -> None:
    pygame.init()
    pygame.display.set_caption("Hitori Assistant")

    screen = pygame.display.set_mode((1200, 800), pygame.RESIZABLE)
    clock = pygame.time.Clock()

    font = pygame.font.SysFont("arial", 20)
    small_font = pygame.font.SysFont("arial", 12)

    ui_manager = pygame_gui.UIManager(screen.get_size())

    controls_win = pygame_gui.elements.UIWindow(
        pygame.Rect(20, 20, 260, 280),
        ui_manager,
        window_display_title="Controls",
        resizable=True
    )
    controls_win.close_window_button.hide()
    log_win = pygame_gui.elements.UIWindow(
        pygame.Rect(20, 420, 520, 340),
        ui_manager,
        window_display_title="Log",
        resizable=True
    )
    log_win.close_window_button.hide()
    files_win = pygame_gui.elements.UIWindow(
        pygame.Rect(20, 310, 260, 100),
        ui_manager,
        window_display_title="Puzzles",
        resizable=True
    )
    files_win.close_window_button.hide()

    btn_solve = pygame_gui.elements.UIButton(pygame.Rect(10, 10, 240, 36), "Solve", ui_manager, container=controls_win)
    btn_step = pygame_gui.elements.UIButton(pygame.Rect(10, 56, 240, 36), "Step", ui_manager, container=controls_win)
    btn_reset = pygame_gui.elements.UIButton(pygame.Rect(10, 102, 240, 36), "Reset", ui_manager, container=controls_win)
    btn_sets = pygame_gui.elements.UIButton(pygame.Rect(10, 148, 240, 36), "Show Sets", ui_manager, container=controls_win)
    pygame_gui.elements.UILabel(
        pygame.Rect(10, 194, 240, 40),
        "LMB keep, RMB shade, wheel zoom",
        ui_manager,
        container=controls_win
    )

    log_box = pygame_gui.elements.UITextBox(
        html_text="",
        relative_rect=pygame.Rect(10, 10, 500, 240),
        manager=ui_manager,
        container=log_win,
        anchors={"left": "left", "right": "right", "top": "top", "bottom": "bottom"}
    )
    btn_clear_log = pygame_gui.elements.UIButton(
        pygame.Rect(10, -40, 120, 30),
        "Clear",
        ui_manager,
        container=log_win,
        anchors={"left": "left", "bottom": "bottom"}
    )

    files_list = pygame_gui.elements.UISelectionList(
        relative_rect=pygame.Rect(10, 10, 230, 50),
        item_list=[],
        manager=ui_manager,
        container=files_win,
        anchors={"left": "left", "right": "right", "top": "top", "bottom": "bottom"}
    )

    state = MainState()
    state.puzzle_files = find_puzzle_files(PUZZLE_DIRS)
    files_list.set_item_list([os.path.relpath(p) for p in state.puzzle_files])

    camera = Camera()

    def center_camera_on_model(model: HitoriModel) -> None:
        if model.size == 0:
            return
        sw, sh = screen.get_size()
        grid_px = model.size * BASE_CELL_SIZE
        camera.zoom = 1.0
        camera.offset_x = (sw - grid_px) * 0.5
        camera.offset_y = (sh - grid_px) * 0.5

    log_lines: List[str] = []

    def log_append(msg: str) -> None:
        if not msg:
            return
        for line in msg.splitlines():
            line = line.strip()
            if line:
                log_lines.append(line)
        if len(log_lines) > MAX_LOG_LINES:
            del log_lines[0:len(log_lines) - MAX_LOG_LINES]

        log_box.set_text("<br>".join(html_escape(ln) for ln in log_lines))
        if log_box.scroll_bar is not None:
            log_box.scroll_bar.set_scroll_from_start_percentage(1.0)

    def log_clear() -> None:
        log_lines.clear()
        log_box.set_text("")

    worker = SolverWorker()
    worker.start()

    def load_file(path: str) -> None:
        try:
            with open(path, "r", encoding="utf-8") as f:
                txt = f.read()
        except OSError as e:
            log_append(f"File read failed: {e}")
            return
        tmp = HitoriModel()
        ok, msg = tmp.parse_puzzle_text(txt)
        if not ok:
            log_append(f"Load failed: {msg}")
            return
        state.model = tmp
        state.loaded = tmp.snapshot()
        state.affected_cells = []
        center_camera_on_model(state.model)
        worker.send(WorkerCommand(kind="load_grid", payload={"grid": tmp.values()}))
        log_append(f"Loaded: {path} ({tmp.size}x{tmp.size})")

    def is_over_ui(pos: Tuple[int, int]) -> bool:
        for w in (controls_win, log_win, files_win):
            if w.visible and w.get_abs_rect().collidepoint(pos):
                return True
        return False

    if state.puzzle_files:
        load_file(state.puzzle_files[0])
    log_append("Ready.")

    panning = False
    pan_last: Optional[Tuple[int, int]] = None
    lmb_down_pos: Optional[Tuple[int, int]] = None
    lmb_dragging = False
    lmb_down_over_ui = False

    running = True
    while running:
        time_delta = clock.tick(60) / 1000.0

        while True:
            res = worker.try_recv()
            if res is None:
                break
            if res.kind == "error":
                log_append(res.payload.get("message", "Worker error."))
                continue
            snap = res.payload.get("state")
            if isinstance(snap, dict) and res.kind != "rejected":
                try:
                    state.model.restore(snap)
                except ValueError as e:
                    log_append(f"UI restore failed: {e}")
            step = res.payload.get("step_result")
            if isinstance(step, dict):
                prefix = "Contradiction: " if res.kind == "rejected" else ""
                log_append(f"[{step.get('rule', '')}] {prefix}{step.get('message', '')}".strip())
                state.affected_cells = [tuple(p) for p in step.get("changed_cells", [])]
            if res.kind == "solved" or (res.kind == "stepped" and state.model.is_solved()):
                ok, msg = state.model.puzzle_correct_so_far()
                log_append(f"Check: {msg}")

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
                break

            if event.type == pygame.VIDEORESIZE:
                screen = pygame.display.set_mode(event.size, pygame.RESIZABLE)
                ui_manager.set_window_resolution(event.size)

            ui_manager.process_events(event)

            if event.type == pygame_gui.UI_BUTTON_PRESSED:
                if event.ui_element == btn_clear_log:
                    log_clear()

                elif event.ui_element == btn_solve:
                    worker.send(WorkerCommand(kind="solve"))

                elif event.ui_element == btn_step:
                    worker.send(WorkerCommand(kind="step"))

                elif event.ui_element == btn_reset:
                    if state.loaded is not None:
                        worker.send(WorkerCommand(kind="reset", payload={"state": state.loaded}))
                        state.affected_cells = []
                    else:
                        log_append("Nothing to reset (no puzzle loaded).")

                elif event.ui_element == btn_sets:
                    state.show_sets = not state.show_sets
                    btn_sets.set_text("Hide Sets" if state.show_sets else "Show Sets")

            if event.type == pygame_gui.UI_SELECTION_LIST_NEW_SELECTION and event.ui_element == files_list:
                selected = files_list.get_single_selection()
                for path in state.puzzle_files:
                    if os.path.relpath(path) == selected:
                        load_file(path)
                        break

            if event.type == pygame.MOUSEWHEEL:
                if not is_over_ui(pygame.mouse.get_pos()):
                    if event.y > 0:
                        camera.zoom_at(pygame.mouse.get_pos(), 1.1, 0.2, 6.0)
                    elif event.y < 0:
                        camera.zoom_at(pygame.mouse.get_pos(), 1.0 / 1.1, 0.2, 6.0)

            if event.type == pygame.MOUSEBUTTONDOWN:
                if event.button == 2:
                    if not is_over_ui(event.pos):
                        panning = True
                        pan_last = event.pos

                if event.button == 1:
                    lmb_down_pos = event.pos
                    lmb_dragging = False
                    lmb_down_over_ui = is_over_ui(event.pos)
                    if not lmb_down_over_ui:
                        pan_last = event.pos
                        panning = False

                if event.button == 3:
                    if not is_over_ui(event.pos):
                        cell = pick_cell_from_mouse(state.model, camera, BASE_CELL_SIZE, event.pos)
                        if cell is not None:
                            r, c = cell
                            if state.model.cells[r][c].is_unknown:
                                worker.send(WorkerCommand(kind="delete", payload={"row": r, "col": c}))
                            else:
                                log_append(format_debug_cell(state.model, r, c))

            if event.type == pygame.MOUSEMOTION:
                if not is_over_ui(event.pos):
                    state.hover = pick_cell_from_mouse(state.model, camera, BASE_CELL_SIZE, event.pos)
                else:
                    state.hover = None

                if panning and pan_last is not None:
                    mx, my = event.pos
                    lx, ly = pan_last
                    camera.offset_x += mx - lx
                    camera.offset_y += my - ly
                    pan_last = event.pos

                if lmb_down_pos is not None and not lmb_down_over_ui and not lmb_dragging:
                    mx, my = event.pos
                    sx, sy = lmb_down_pos
                    if abs(mx - sx) >= DRAG_THRESHOLD_PX or abs(my - sy) >= DRAG_THRESHOLD_PX:
                        lmb_dragging = True
                        panning = True
                        pan_last = event.pos

            if event.type == pygame.MOUSEBUTTONUP:
                if event.button == 2:
                    panning = False
                    pan_last = None

                if event.button == 1:
                    if lmb_down_pos is not None and not lmb_down_over_ui and not lmb_dragging:
                        cell = pick_cell_from_mouse(state.model, camera, BASE_CELL_SIZE, event.pos)
                        if cell is not None:
                            r, c = cell
                            if state.model.cells[r][c].is_unknown:
                                worker.send(WorkerCommand(kind="finalize", payload={"row": r, "col": c}))
                            else:
                                log_append(format_debug_cell(state.model, r, c))

                    lmb_down_pos = None
                    lmb_dragging = False
                    lmb_down_over_ui = False
                    panning = False
                    pan_last = None

        ui_manager.update(time_delta)

        screen.fill(grid_style.COLOR_BG)
        draw_grid(
            screen, state.model, camera, BASE_CELL_SIZE, font, small_font,
            highlight=state.hover,
            affected_cells=state.affected_cells,
            show_sets=state.show_sets
        )
        ui_manager.draw_ui(screen)

        status = f"{state.model.unknown_count} undecided, {len(state.model.shaded_cells())} shaded"
        status_surf = small_font.render(status, True, (220, 220, 220))
        screen.blit(status_surf, (screen.get_width() - status_surf.get_width() - 12, 12))

        pygame.display.flip()

    worker.stop()
    pygame.quit()


if __name__ == "__main__":
    main()
