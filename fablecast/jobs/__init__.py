"""Background supervision of story jobs."""

from .sweeper import StaleJobSweeper

__all__ = ["StaleJobSweeper"]
