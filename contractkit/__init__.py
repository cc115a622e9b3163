"""Smart contract framework with in-memory storage, mock chain dependencies and example contracts."""

__version__ = "0.1.0"