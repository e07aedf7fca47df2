from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class EditorConfig:
    grid_cell_width: float = 400.0
    grid_cell_height: float = 300.0
    grid_origin: float = 100.0
    default_initial_node: str = "start"
    layout_direction: str = "TB"
    layout_rank_spacing: float = 350.0
    layout_node_spacing: float = 280.0
    log_level: str = "INFO"
    cors_origin_regex: str = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"


DEFAULT_EDITOR_CONFIG = EditorConfig()


def load_editor_config() -> EditorConfig:
    defaults = DEFAULT_EDITOR_CONFIG
    return EditorConfig(
        grid_cell_width=float(os.getenv("CONSOLE_GRID_CELL_WIDTH", str(defaults.grid_cell_width))),
        grid_cell_height=float(os.getenv("CONSOLE_GRID_CELL_HEIGHT", str(defaults.grid_cell_height))),
        grid_origin=float(os.getenv("CONSOLE_GRID_ORIGIN", str(defaults.grid_origin))),
        default_initial_node=os.getenv("CONSOLE_DEFAULT_INITIAL_NODE", defaults.default_initial_node),
        layout_direction=os.getenv("CONSOLE_LAYOUT_DIRECTION", defaults.layout_direction).upper(),
        layout_rank_spacing=float(
            os.getenv("CONSOLE_LAYOUT_RANK_SPACING", str(defaults.layout_rank_spacing))
        ),
        layout_node_spacing=float(
            os.getenv("CONSOLE_LAYOUT_NODE_SPACING", str(defaults.layout_node_spacing))
        ),
        log_level=os.getenv("CONSOLE_LOG_LEVEL", defaults.log_level).upper(),
        cors_origin_regex=os.getenv("CONSOLE_CORS_ORIGIN_REGEX", defaults.cors_origin_regex),
    )
