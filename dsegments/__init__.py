"""
dsegments - maximal D-segment detection of elevated copy number from
per-position read-start counts, using a two-state Poisson HMM.
"""

__version__ = "1.0.0"

from dsegments.core.probabilities import ProbabilityModel, State, Bucket, ConfigurationError
from dsegments.core.model_io import load_model, save_model
from dsegments.core.counts_reader import read_counts, CountRecord, CountsFormatError
from dsegments.inference.scanner import (
    SegmentScanner, Segment, ScanResult, find_dsegments, scan_chromosomes,
)
