# Hitori Grid Style Definitions

# Cell States
COLOR_FINAL = (245, 245, 245)     # Kept
COLOR_DELETED = (20, 20, 20)      # Shaded
COLOR_UNKNOWN = (180, 180, 180)

# Lines and Outlines
COLOR_GRID_LINES = (70, 70, 70)
COLOR_SELECTION_HIGHLIGHT = (20, 120, 220)  # Blue outline for hovered cell
COLOR_SOLVER_HIGHLIGHT = (255, 255, 0)      # Yellow outline for cells changed by the last step
COLOR_CONFLICT = (220, 60, 60)              # Red outline for duplicated kept values

# Text
COLOR_TEXT_FINAL = (0, 0, 0)
COLOR_TEXT_UNKNOWN = (60, 60, 60)
COLOR_TEXT_DELETED = (110, 110, 110)
COLOR_TEXT_DEBUG = (90, 90, 90)  # For forest set ids of shaded cells

# Application
COLOR_BG = (30, 30, 30)
