"""Probability model, model I/O and counts parsing."""

from dsegments.core.probabilities import (
    ProbabilityModel,
    State,
    Bucket,
    ConfigurationError,
    SCORING_STATES,
)
from dsegments.core.model_io import load_model, save_model
from dsegments.core.counts_reader import read_counts, CountRecord, CountsFormatError
