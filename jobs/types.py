"""Job type constants for the scoring worker."""


class JobType:
    SKETCH_SCORE = "scoring.sketch.score"


__all__ = ["JobType"]
