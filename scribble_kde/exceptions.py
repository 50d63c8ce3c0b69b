"""Errors raised by the density estimator and the scorer."""


class DimensionMismatch(ValueError):
    """Two grids passed together (or a grid and its declared size) disagree."""


class EmptySampleSet(ValueError):
    """A density estimate was requested from a mask selecting no pixel."""
