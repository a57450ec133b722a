"""Orchestrator package - plans and drives sticker set uploads."""
from .core import UploadOrchestrator
from .file_collector import FileCollector
from .planner import GroupPlanner

__all__ = ["UploadOrchestrator", "FileCollector", "GroupPlanner"]
