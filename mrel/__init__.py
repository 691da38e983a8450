"""mrel: release versioning and changelog engine for multi-platform mobile projects."""

__version__ = "0.1.0"
