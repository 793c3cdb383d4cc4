"""StoryMine research assistant: conversation orchestration over a historical news corpus."""

__version__ = "0.1.0"
