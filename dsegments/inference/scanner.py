"""
dsegments maximal D-segment scanner.

Single pass over (position, read_starts) observations. Each position adds its
D-segment score to a running sum; the running maximum marks the best end
point of the current window. A window closes when the sum drops to zero or
falls a full threshold below its peak, and it is reported as a D-segment if
its peak reached the threshold.
"""

import itertools
import math
import warnings
from typing import Iterable, List, NamedTuple, Optional, Set, Tuple

from tqdm import tqdm

from dsegments.core.probabilities import Bucket, ProbabilityModel
from dsegments.inference.report import round_score
from dsegments.inference.stats import ReadStartHistogram


class Segment(NamedTuple):
    """Maximal-scoring region, 1-based inclusive coordinates."""
    start: int
    end: int
    score: float

    @property
    def length(self) -> int:
        return self.end - self.start + 1

    @property
    def rounded_score(self) -> float:
        return round_score(self.score)


class ScanResult(NamedTuple):
    chrom: Optional[str]
    threshold: float
    segments: List[Segment]
    all_counts: ReadStartHistogram
    segment_counts: ReadStartHistogram
    n_positions: int


class SegmentScanner:
    """
    Streaming maximal D-segment finder for one sequence.

    The model's threshold and per-bucket scores are read once here; the
    model itself is never modified, so one model can back several scanners.

    Usage:
        scanner = SegmentScanner(model)
        for position, read_starts in observations:
            scanner.update(position, read_starts)
        result = scanner.finalize()
    """

    def __init__(self, model: ProbabilityModel, chrom: Optional[str] = None):
        self.model = model
        self.chrom = chrom
        self.threshold = model.threshold
        self._scores = [model.d_segment_score(b) for b in Bucket]

        undefined = [b.label for b, s in zip(Bucket, self._scores) if math.isnan(s)]
        if undefined:
            warnings.warn(
                f"D-segment score is undefined for read-start bucket(s) "
                f"{', '.join(undefined)} (zero probability in the model); "
                f"windows reaching them will not close until end of input."
            )

        self.segments: List[Segment] = []
        self.all_counts = ReadStartHistogram()
        self.segment_counts = ReadStartHistogram()
        self.n_positions = 0

        self.cumulative_score = 0.0
        self.running_maximum = 0.0
        self.segment_start = 1
        self.candidate_end = 1
        self._window_counts = ReadStartHistogram()
        self._finalized = False

    def update(self, position: int, read_starts: int):
        """Consume one observation."""
        if self._finalized:
            raise RuntimeError("Scanner already finalized")

        bucket = Bucket.from_count(read_starts)
        self.all_counts.add(bucket)
        self._window_counts.add(bucket)
        self.n_positions += 1

        self.cumulative_score += self._scores[bucket]

        if self.cumulative_score >= self.running_maximum:
            self.running_maximum = self.cumulative_score
            self.candidate_end = position

        if (self.cumulative_score <= 0 or
                self.cumulative_score <= self.running_maximum - self.threshold):
            self._close_window()

            self.cumulative_score = 0.0
            self.running_maximum = 0.0
            self.segment_start = position + 1
            self.candidate_end = position + 1
            self._window_counts.clear()

    def _close_window(self):
        if self.running_maximum >= self.threshold:
            self.segments.append(
                Segment(self.segment_start, self.candidate_end, self.running_maximum)
            )
            self.segment_counts.merge(self._window_counts)

    def finalize(self) -> ScanResult:
        """Flush the open window and return the frozen result."""
        if not self._finalized:
            self._close_window()
            self._window_counts.clear()
            self._finalized = True
        return ScanResult(
            chrom=self.chrom,
            threshold=self.threshold,
            segments=list(self.segments),
            all_counts=self.all_counts.copy(),
            segment_counts=self.segment_counts.copy(),
            n_positions=self.n_positions,
        )

    def scan(self, observations: Iterable[Tuple[int, int]],
             progress: bool = False) -> ScanResult:
        """
        Feed an ordered iterable of (position, read_starts) pairs and finalize.

        Args:
            observations: Pairs in strictly increasing position order
            progress: Show a tqdm progress bar

        Returns:
            ScanResult
        """
        desc = f"Scanning {self.chrom}" if self.chrom else "Scanning"
        for position, read_starts in tqdm(observations, desc=desc, unit=' pos',
                                          disable=not progress, leave=False):
            self.update(position, read_starts)
        return self.finalize()


def find_dsegments(model: ProbabilityModel, observations: Iterable[Tuple[int, int]],
                   chrom: Optional[str] = None, progress: bool = False) -> ScanResult:
    """Scan one sequence of (position, read_starts) pairs with a fresh scanner."""
    return SegmentScanner(model, chrom=chrom).scan(observations, progress=progress)


def scan_chromosomes(model: ProbabilityModel, records: Iterable,
                     chroms: Optional[Set[str]] = None,
                     progress: bool = False) -> List[ScanResult]:
    """
    Scan (chrom, position, read_starts) records, one scanner per chromosome.

    Records are grouped by consecutive chromosome name, so each chromosome
    must appear as one contiguous block.

    Args:
        model: Shared, fully constructed model
        records: Iterable of CountRecord or 3-tuples
        chroms: If given, only these chromosomes are scanned
        progress: Show a tqdm progress bar per chromosome

    Returns:
        List of ScanResult, in input order
    """
    results = []
    for chrom, group in itertools.groupby(records, key=lambda r: r[0]):
        if chroms is not None and chrom not in chroms:
            continue
        pairs = ((r[1], r[2]) for r in group)
        results.append(find_dsegments(model, pairs, chrom=chrom, progress=progress))
    return results
