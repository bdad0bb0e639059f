"""Source records (tasks) read by the embedding lifecycle."""

from tasksearch.sources.repository import TaskRepository
from tasksearch.sources.schemas import SEARCHABLE_FIELDS, TaskRecord

__all__ = ["SEARCHABLE_FIELDS", "TaskRecord", "TaskRepository"]
