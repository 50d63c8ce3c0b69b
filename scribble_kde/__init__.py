from scribble_kde.exceptions import DimensionMismatch, EmptySampleSet
from scribble_kde.histogram_evaluation import image_probability, score_image
from scribble_kde.histogram_extraction import (
    estimate_channel_densities,
    estimate_channel_density,
    estimate_class_densities,
)
from scribble_kde.probability_table import ProbabilityMap, ProbabilityTable

__all__ = [
    "DimensionMismatch",
    "EmptySampleSet",
    "ProbabilityMap",
    "ProbabilityTable",
    "estimate_channel_densities",
    "estimate_channel_density",
    "estimate_class_densities",
    "image_probability",
    "score_image",
]
