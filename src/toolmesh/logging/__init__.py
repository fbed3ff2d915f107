"""toolmesh logging - component-scoped colored or JSON logging."""

from .colors import (
    CYAN,
    GREEN,
    LIGHT_BLUE,
    MAGENTA,
    ORANGE,
    RED,
    RESET,
    YELLOW,
)
from .logger import (
    LogConfig,
    RoundLogger,
    ToolLogger,
    ToolmeshLogger,
    TurnLogger,
)

__all__ = [
    # Logger classes
    "ToolmeshLogger",
    "TurnLogger",
    "RoundLogger",
    "ToolLogger",
    "LogConfig",
    # Colors
    "RESET",
    "GREEN",
    "RED",
    "YELLOW",
    "ORANGE",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
]
