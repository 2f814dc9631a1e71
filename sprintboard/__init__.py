"""Sprint workboard: board projection, sprint membership, scope analysis and plan reconciliation."""

from .config import WorkboardConfig
from .service import Workboard

__version__ = "0.2.0"

__all__ = ["Workboard", "WorkboardConfig"]
