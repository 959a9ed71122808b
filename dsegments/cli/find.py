#!/usr/bin/env python3
"""
dsegments find CLI entry point.
Finds maximal D-segments (elevated copy number) in per-position read-start counts.
"""

import os
import sys
import argparse

from dsegments.core.counts_reader import read_counts, CountsFormatError
from dsegments.core.probabilities import ConfigurationError, Bucket
from dsegments.inference.scanner import scan_chromosomes
from dsegments.inference.stats import SegmentStats
from dsegments.inference.report import (
    write_xml_report, write_json_report, write_bed, round_score,
)
from dsegments.cli.common import (
    add_model_args, model_from_args, add_format_args, add_chrom_args,
    add_output_args, add_stats_args, add_progress_args, add_verbose_args,
    add_version_args,
)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog='dsegments-find',
        description='Find maximal D-segments of elevated read-start density',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog='''
Input:
  Tab-separated counts, one position per line: chrom, position, read_starts.
  Gzipped input (.gz) is supported.

Examples:
  # Default model (normal 1,000,000 bp / elevated 10,000 bp, means 0.38 / 0.57)
  dsegments-find -i NA19238.chr20.counts -o out/

  # Custom Poisson model, JSON and BED output with stats
  dsegments-find -i sample.counts -o out/ --normal-mean 0.4 --elevated-mean 0.6 \\
      --format json bed --stats

  # Saved model
  dsegments-utils build -o model.json --elevated-length 5000
  dsegments-find -i sample.counts -o out/ -m model.json
'''
    )

    add_version_args(parser)

    parser.add_argument('-i', '--input', required=True,
                        help='Read-start counts file (tab-separated)')
    add_output_args(parser, required=True, help_text='Output directory')

    add_model_args(parser)
    add_format_args(parser)
    add_chrom_args(parser)
    add_stats_args(parser)
    add_progress_args(parser)
    add_verbose_args(parser)

    parser.add_argument('--chunksize', type=int, default=1_000_000,
                        help=argparse.SUPPRESS)

    return parser.parse_args(argv)


def dataset_name(path: str) -> str:
    name = os.path.basename(path)
    if name.endswith('.gz'):
        name = name[:-3]
    base, _ = os.path.splitext(name)
    return base or name


def main(argv=None):
    args = parse_args(argv)

    try:
        model = model_from_args(args)
    except (ConfigurationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    os.makedirs(args.output, exist_ok=True)
    dataset = dataset_name(args.input)

    if args.model:
        print(f"Loaded model from {args.model}")
    else:
        print("Built model from segment lengths and Poisson means")
        print(f"  Lengths: normal={args.normal_length:,} elevated={args.elevated_length:,}")
        print(f"  Means: normal={args.normal_mean} elevated={args.elevated_mean}")
    print(f"  Score threshold: {model.threshold:.4f} bits")
    if args.verbose:
        for bucket, score in zip(Bucket, model.d_segment_scores()):
            print(f"  Score for {bucket.label} read starts: {score:+.4f}")

    chroms = set(args.chroms) if args.chroms else None
    if chroms:
        print(f"Scanning only chromosomes: {', '.join(sorted(chroms))}")

    print(f"\nScanning: {args.input}")
    try:
        results = scan_chromosomes(
            model,
            read_counts(args.input, chunksize=args.chunksize),
            chroms=chroms,
            progress=args.progress,
        )
    except CountsFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    total_segments = 0
    for result in results:
        total_segments += len(result.segments)
        print(f"  {result.chrom}: {result.n_positions:,} positions, "
              f"{len(result.segments):,} D-segments")
        if args.verbose:
            for seg in result.segments:
                print(f"    {seg.start}-{seg.end}  score={round_score(seg.score)}")
    print(f"Found {total_segments:,} D-segments")

    if 'xml' in args.format:
        path = os.path.join(args.output, f"{dataset}_dsegments.xml")
        write_xml_report(model, results, path)
        print(f"XML: {path}")
    if 'json' in args.format:
        path = os.path.join(args.output, f"{dataset}_dsegments.json")
        write_json_report(model, results, path)
        print(f"JSON: {path}")
    if 'bed' in args.format:
        path = os.path.join(args.output, f"{dataset}_dsegments.bed")
        write_bed(results, path)
        print(f"BED: {path}")

    if args.stats:
        print("\nGenerating statistics...")
        stats_prefix = os.path.join(args.output, f"{dataset}_dsegments")
        stats = SegmentStats.from_results(results)
        stats.write_summary(f"{stats_prefix}_stats.txt")
        stats.plot_distributions(stats_prefix)
        print(f"Stats: {stats_prefix}_stats.txt")

    print("\nDone!")


if __name__ == '__main__':
    main()
