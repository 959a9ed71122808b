"""dsegments read-start histograms, segment statistics and QC plotting."""

from typing import Dict, Iterable

import numpy as np

from dsegments.core.probabilities import Bucket, N_BUCKETS


class ReadStartHistogram:
    """Fixed-size counter of positions per read-start bucket (3 = 3 or more)."""

    def __init__(self):
        self.counts = np.zeros(N_BUCKETS, dtype=np.int64)

    def add(self, bucket: int, n: int = 1):
        self.counts[int(bucket)] += n

    def merge(self, other: 'ReadStartHistogram'):
        self.counts += other.counts

    def clear(self):
        self.counts[:] = 0

    def copy(self) -> 'ReadStartHistogram':
        hist = ReadStartHistogram()
        hist.counts = self.counts.copy()
        return hist

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def as_dict(self) -> Dict[str, int]:
        return {b.label: int(self.counts[b]) for b in Bucket}

    def __getitem__(self, bucket: int) -> int:
        return int(self.counts[int(bucket)])

    def __eq__(self, other):
        if not isinstance(other, ReadStartHistogram):
            return NotImplemented
        return bool(np.array_equal(self.counts, other.counts))

    def __repr__(self):
        return f"ReadStartHistogram({self.as_dict()})"


class SegmentStats:
    """Collects D-segment statistics across scanned chromosomes."""

    def __init__(self):
        self.segment_lengths = []
        self.segment_scores = []
        self.positions_per_chrom = {}
        self.segments_per_chrom = {}
        self.all_counts = ReadStartHistogram()
        self.segment_counts = ReadStartHistogram()
        self.threshold = None

    def add_result(self, result):
        """Add statistics from a single ScanResult."""
        self.threshold = result.threshold
        self.positions_per_chrom[result.chrom] = result.n_positions
        self.segments_per_chrom[result.chrom] = len(result.segments)
        self.segment_lengths.extend(seg.length for seg in result.segments)
        self.segment_scores.extend(seg.score for seg in result.segments)
        self.all_counts.merge(result.all_counts)
        self.segment_counts.merge(result.segment_counts)

    @classmethod
    def from_results(cls, results: Iterable) -> 'SegmentStats':
        stats = cls()
        for result in results:
            stats.add_result(result)
        return stats

    def get_summary(self) -> dict:
        """Generate summary statistics."""
        total_positions = sum(self.positions_per_chrom.values())
        covered = int(np.sum(self.segment_lengths)) if self.segment_lengths else 0
        summary = {
            'threshold': self.threshold,
            'chromosomes': len(self.positions_per_chrom),
            'total_positions': total_positions,
            'total_segments': len(self.segment_lengths),
            'segment_bases': covered,
            'pct_positions_in_segments': 100 * covered / total_positions if total_positions > 0 else 0,
        }

        if self.segment_lengths:
            summary['segment_length_median'] = np.median(self.segment_lengths)
            summary['segment_length_mean'] = np.mean(self.segment_lengths)
            summary['segment_length_min'] = np.min(self.segment_lengths)
            summary['segment_length_max'] = np.max(self.segment_lengths)

        if self.segment_scores:
            summary['segment_score_median'] = np.median(self.segment_scores)
            summary['segment_score_mean'] = np.mean(self.segment_scores)
            summary['segment_score_max'] = np.max(self.segment_scores)

        if self.all_counts.total > 0:
            summary['read_start_rate_all'] = _bucket_mean(self.all_counts)
        if self.segment_counts.total > 0:
            summary['read_start_rate_segments'] = _bucket_mean(self.segment_counts)

        return summary

    def write_summary(self, filepath: str):
        """Write summary statistics to a text file."""
        summary = self.get_summary()

        with open(filepath, 'w') as f:
            f.write("D-Segment Statistics\n")
            f.write("=" * 50 + "\n\n")

            f.write("Scan\n")
            f.write("-" * 30 + "\n")
            if summary['threshold'] is not None:
                f.write(f"Score threshold:            {summary['threshold']:.4f} bits\n")
            f.write(f"Chromosomes:                {summary['chromosomes']:,}\n")
            f.write(f"Positions scanned:          {summary['total_positions']:,}\n")
            f.write("\n")

            f.write("Segments\n")
            f.write("-" * 30 + "\n")
            f.write(f"Total segments:             {summary['total_segments']:,}\n")
            f.write(f"Positions in segments:      {summary['segment_bases']:,} ({summary['pct_positions_in_segments']:.3f}%)\n")
            if 'segment_length_median' in summary:
                f.write(f"Length (median):            {summary['segment_length_median']:.0f} bp\n")
                f.write(f"Length (mean):              {summary['segment_length_mean']:.1f} bp\n")
                f.write(f"Length (range):             {summary['segment_length_min']:.0f} - {summary['segment_length_max']:.0f} bp\n")
            if 'segment_score_median' in summary:
                f.write(f"Score (median):             {summary['segment_score_median']:.2f}\n")
                f.write(f"Score (mean):               {summary['segment_score_mean']:.2f}\n")
                f.write(f"Score (max):                {summary['segment_score_max']:.2f}\n")
            f.write("\n")

            f.write("Read Start Histograms\n")
            f.write("-" * 30 + "\n")
            f.write(f"{'Bucket':<10}{'All':>15}{'In segments':>15}\n")
            for b in Bucket:
                label = f"{b.label}+" if b == Bucket.THREE_OR_MORE else b.label
                f.write(f"{label:<10}{self.all_counts[b]:>15,}{self.segment_counts[b]:>15,}\n")
            if 'read_start_rate_all' in summary:
                f.write(f"\nMean bucket (all):          {summary['read_start_rate_all']:.4f}\n")
            if 'read_start_rate_segments' in summary:
                f.write(f"Mean bucket (segments):     {summary['read_start_rate_segments']:.4f}\n")

    def plot_distributions(self, output_prefix: str):
        """Generate distribution plots."""
        try:
            import matplotlib
            matplotlib.use('Agg')  # Non-interactive backend
            import matplotlib.pyplot as plt
        except ImportError:
            print("Warning: matplotlib not installed. Skipping plots.")
            print("Install with: pip install matplotlib")
            return

        pdf_path = f"{output_prefix}_stats.pdf"

        fig, axes = plt.subplots(2, 2, figsize=(10, 8))
        fig.suptitle('D-Segment Statistics', fontsize=14, fontweight='bold')

        # Segment length histogram
        ax = axes[0, 0]
        if self.segment_lengths:
            lengths = np.array(self.segment_lengths)
            ax.hist(lengths, bins=50, color='steelblue', edgecolor='white', alpha=0.8)
            ax.axvline(np.median(lengths), color='red', linestyle='--',
                      label=f'Median: {np.median(lengths):.0f} bp')
            ax.set_xlabel('Segment Length (bp)')
            ax.set_ylabel('Count')
            ax.legend()
        else:
            ax.text(0.5, 0.5, 'No segments', ha='center', va='center', transform=ax.transAxes)
        ax.set_title('Segment Length Distribution')

        # Segment score histogram
        ax = axes[0, 1]
        if self.segment_scores:
            scores = np.array(self.segment_scores)
            ax.hist(scores, bins=50, color='coral', edgecolor='white', alpha=0.8)
            if self.threshold is not None:
                ax.axvline(self.threshold, color='black', linestyle=':',
                          label=f'Threshold: {self.threshold:.1f}')
                ax.legend()
            ax.set_xlabel('Segment Score (bits)')
            ax.set_ylabel('Count')
        else:
            ax.text(0.5, 0.5, 'No segments', ha='center', va='center', transform=ax.transAxes)
        ax.set_title('Segment Score Distribution')

        # Read-start bucket frequencies, all positions vs segments
        ax = axes[1, 0]
        labels = [b.label for b in Bucket]
        labels[-1] += '+'
        x = np.arange(N_BUCKETS)
        all_freq = self.all_counts.counts / max(1, self.all_counts.total)
        seg_freq = self.segment_counts.counts / max(1, self.segment_counts.total)
        ax.bar(x - 0.2, all_freq, width=0.4, color='slategray', label='All positions')
        ax.bar(x + 0.2, seg_freq, width=0.4, color='forestgreen', label='D-segments')
        ax.set_xticks(x)
        ax.set_xticklabels(labels)
        ax.set_xlabel('Read Starts')
        ax.set_ylabel('Fraction of Positions')
        ax.set_yscale('log')
        ax.set_title('Read Start Frequencies')
        ax.legend()

        # Segments per chromosome
        ax = axes[1, 1]
        if self.segments_per_chrom:
            chroms = list(self.segments_per_chrom.keys())
            ax.barh(range(len(chroms)), [self.segments_per_chrom[c] for c in chroms],
                    color='purple', alpha=0.8)
            ax.set_yticks(range(len(chroms)))
            ax.set_yticklabels(chroms)
            ax.set_xlabel('Segments')
        ax.set_title('Segments per Chromosome')

        plt.tight_layout()
        fig.savefig(pdf_path)
        plt.close(fig)

        print(f"QC plots saved to: {pdf_path}")


def _bucket_mean(hist: ReadStartHistogram) -> float:
    # Bucket 3 stands for "3 or more" so this is a lower bound on the true mean
    return float(np.dot(np.arange(N_BUCKETS), hist.counts) / hist.total)
