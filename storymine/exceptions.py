class StoryMineError(Exception):
    """Base class for all errors raised by the research assistant."""


class ProjectNotFoundError(StoryMineError):
    """Raised when a turn references a project that does not exist."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project '{project_id}' not found.")


class StrategyDeclined(StoryMineError):
    """Raised by a response strategy that does not apply to the given input."""
