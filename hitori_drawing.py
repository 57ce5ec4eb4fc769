import math
import pygame
from dataclasses import dataclass
from typing import Tuple, Optional, List, Set
from hitori_model import HitoriModel, BORDER
import grid_style

@dataclass
class Camera:
    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0

    def screen_to_world(self, sx: float, sy: float) -> Tuple[float, float]:
        return (sx - self.offset_x) / self.zoom, (sy - self.offset_y) / self.zoom

    def world_to_screen(self, wx: float, wy: float) -> Tuple[float, float]:
        return wx * self.zoom + self.offset_x, wy * self.zoom + self.offset_y

    def zoom_at(self, mouse_pos: Tuple[int, int], zoom_factor: float, min_zoom: float, max_zoom: float) -> None:
        mx, my = mouse_pos
        wx, wy = self.screen_to_world(mx, my)

        new_zoom = self.zoom * zoom_factor
        new_zoom = max(min_zoom, min(max_zoom, new_zoom))
        if abs(new_zoom - self.zoom) < 1e-9:
            return

        self.zoom = new_zoom
        self.offset_x = mx - wx * self.zoom
        self.offset_y = my - wy * self.zoom

def clamp_int(v: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, v))

def conflicting_cells(model: HitoriModel) -> Set[Tuple[int, int]]:
    """Kept cells whose value is kept again in the same row or column."""
    out: Set[Tuple[int, int]] = set()
    n = model.size
    for r in range(n):
        for c in range(n):
            cell = model.cells[r][c]
            if not cell.is_final:
                continue
            for rr in range(n):
                other = model.cells[rr][c]
                if rr != r and other.is_final and other.value == cell.value:
                    out.add((r, c))
            for cc in range(n):
                other = model.cells[r][cc]
                if cc != c and other.is_final and other.value == cell.value:
                    out.add((r, c))
    return out

def draw_grid(
    screen: pygame.Surface,
    model: HitoriModel,
    camera: Camera,
    base_cell_size: int,
    font: pygame.font.Font,
    small_font: pygame.font.Font,
    highlight: Optional[Tuple[int, int]] = None,
    affected_cells: Optional[List[Tuple[int, int]]] = None,
    show_sets: bool = False
) -> None:
    n = model.size
    if n == 0:
        return

    cell_size = base_cell_size * camera.zoom
    if cell_size < 2:
        return

    sw, sh = screen.get_size()
    wl, wt = camera.screen_to_world(-cell_size, -cell_size)
    wr, wb = camera.screen_to_world(sw + cell_size, sh + cell_size)
    c0 = clamp_int(int(math.floor(wl / base_cell_size)), 0, n - 1)
    r0 = clamp_int(int(math.floor(wt / base_cell_size)), 0, n - 1)
    c1 = clamp_int(int(math.ceil(wr / base_cell_size)), 0, n - 1)
    r1 = clamp_int(int(math.ceil(wb / base_cell_size)), 0, n - 1)

    conflicts = conflicting_cells(model)

    for r in range(r0, r1 + 1):
        for c in range(c0, c1 + 1):
            sx, sy = camera.world_to_screen(c * base_cell_size, r * base_cell_size)
            rect = pygame.Rect(int(sx), int(sy), int(cell_size), int(cell_size))
            cell = model.cells[r][c]

            if cell.is_deleted:
                pygame.draw.rect(screen, grid_style.COLOR_DELETED, rect)
                text_color = grid_style.COLOR_TEXT_DELETED
            elif cell.is_final:
                pygame.draw.rect(screen, grid_style.COLOR_FINAL, rect)
                text_color = grid_style.COLOR_TEXT_FINAL
            else:
                pygame.draw.rect(screen, grid_style.COLOR_UNKNOWN, rect)
                text_color = grid_style.COLOR_TEXT_UNKNOWN

            pygame.draw.rect(screen, grid_style.COLOR_GRID_LINES, rect, 1)

            if (r, c) in conflicts:
                pygame.draw.rect(screen, grid_style.COLOR_CONFLICT, rect, 3)

            if highlight is not None and (r, c) == highlight:
                pygame.draw.rect(screen, grid_style.COLOR_SELECTION_HIGHLIGHT, rect, 3)

            if affected_cells and (r, c) in affected_cells:
                pygame.draw.rect(screen, grid_style.COLOR_SOLVER_HIGHLIGHT, rect, 4)

            surf = font.render(str(cell.value), True, text_color)
            screen.blit(
                surf,
                (rect.x + (rect.width - surf.get_width()) // 2, rect.y + (rect.height - surf.get_height()) // 2)
            )

            # forest set of each shaded cell, "B" when it hangs off the border
            if show_sets and cell.is_deleted and camera.zoom >= 1.0:
                root = model.deleted_trees.find_set(model.cell_index(r, c))
                txt = "B" if root == BORDER else str(root)
                id_surf = small_font.render(txt, True, grid_style.COLOR_TEXT_DEBUG)
                screen.blit(id_surf, (rect.x + 3, rect.y + 2))

def pick_cell_from_mouse(model: HitoriModel, camera: Camera, base_cell_size: int, mouse_pos: Tuple[int, int]) -> Optional[Tuple[int, int]]:
    if model.size == 0:
        return None
    mx, my = mouse_pos
    wx, wy = camera.screen_to_world(mx, my)
    c = int(wx // base_cell_size)
    r = int(wy // base_cell_size)
    if model.in_bounds(r, c):
        return (r, c)
    return None
