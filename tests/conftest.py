"""
Shared pytest fixtures for dsegments tests.
"""
import pytest
import numpy as np


@pytest.fixture
def default_model():
    """
    Model with the standard parameters: background runs of 1,000,000 bp,
    elevated runs of 10,000 bp, Poisson means 0.38 and 0.57.
    Threshold is ~33.2 bits; bucket 0 scores ~-0.27, bucket 3 ~+1.55.
    """
    from dsegments.core.probabilities import ProbabilityModel
    return ProbabilityModel.from_segment_lengths(1_000_000, 10_000, 0.38, 0.57)


@pytest.fixture
def sharp_model():
    """
    Model with short runs and well separated means so small inputs give
    segments. Threshold is ~10.9 bits; bucket scores are roughly
    -2.66, +0.67, +3.99, +8.08.
    """
    from dsegments.core.probabilities import ProbabilityModel
    return ProbabilityModel.from_segment_lengths(100, 20, 0.2, 2.0)


@pytest.fixture
def random_observations():
    """Background of mostly zeros with a few denser stretches."""
    rng = np.random.RandomState(42)
    counts = rng.poisson(0.2, size=2000)
    counts[300:340] = rng.poisson(2.0, size=40)
    counts[1200:1215] = rng.poisson(3.0, size=15)
    return [(i + 1, int(c)) for i, c in enumerate(counts)]


@pytest.fixture
def write_counts(tmp_path):
    """Factory writing (chrom, position, read_starts) rows to a counts file."""
    def _write(rows, name='sample.counts'):
        path = tmp_path / name
        with open(path, 'w') as f:
            for row in rows:
                f.write('\t'.join(str(x) for x in row) + '\n')
        return str(path)
    return _write
