"""Framework-independent libraries."""
