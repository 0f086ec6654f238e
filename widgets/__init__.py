"""Display programs rotated by the engine."""
