"""Progress reporting adapters."""

from timeslab.progress.rich_progress import RichProgressReporter


__all__ = ["RichProgressReporter"]
