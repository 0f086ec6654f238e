"""Exceptions raised while building or running the widget rotation."""


class EngineError(Exception):
    """Base class for engine start-up failures."""


class NoWidgetsError(EngineError):
    def __init__(self, message: str = "no enabled widgets configured"):
        super().__init__(message)


class IncompatibleWidgetError(EngineError):
    """A widget needs a display surface the configured display lacks."""
