"""Utility modules for habitflow."""

from . import task_tracker

__all__ = ["task_tracker"]
