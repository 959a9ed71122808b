#!/usr/bin/env python3
"""
dsegments utilities: build, inspect.

Usage:
    dsegments-utils build -o model.json --normal-length 1000000 --elevated-length 10000
    dsegments-utils inspect model.json
"""

import argparse
import os
import sys

from dsegments.core.model_io import load_model, save_model
from dsegments.core.probabilities import Bucket, ConfigurationError, SCORING_STATES
from dsegments.cli.common import add_model_args, model_from_args


STATE_LABELS = {1: 'background', 2: 'elevated'}


# =============================================================================
# build subcommand
# =============================================================================

def cmd_build(args):
    """Build a Poisson HMM from lengths/means and save it as JSON."""
    try:
        model = model_from_args(args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    path = save_model(model, args.output)
    print(f"Saved model to {path}")
    print(f"  Score threshold: {model.threshold:.4f} bits")


# =============================================================================
# inspect subcommand
# =============================================================================

def cmd_inspect(args):
    """Inspect a model file: print parameters, threshold and bucket scores."""
    filepath = args.model

    if not os.path.exists(filepath):
        print(f"Error: File not found: {filepath}", file=sys.stderr)
        sys.exit(1)

    try:
        model = load_model(filepath)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Model: {filepath}")
    print(f"  States: {model.n_states}")
    if model.segment_lengths:
        print(f"  Segment lengths: normal={model.segment_lengths[0]:,} "
              f"elevated={model.segment_lengths[1]:,}")
    if model.poisson_means:
        print(f"  Poisson means: normal={model.poisson_means[0]} "
              f"elevated={model.poisson_means[1]}")
    print()

    print("Transition matrix:")
    labels = [STATE_LABELS[int(s)] for s in SCORING_STATES]
    header = "              " + "  ".join(f"{l:>12s}" for l in labels)
    print(header)
    for s, label in zip(SCORING_STATES, labels):
        row_str = "  ".join(f"{model.transition_probability(s, t):12.6e}" for t in SCORING_STATES)
        print(f"  {label:>10s}  {row_str}")
    print()

    print("Emission probabilities:")
    header = "              " + "  ".join(f"{b.label:>12s}" for b in Bucket)
    print(header)
    for s, label in zip(SCORING_STATES, labels):
        row_str = "  ".join(f"{model.emission_probability(s, b):12.6e}" for b in Bucket)
        print(f"  {label:>10s}  {row_str}")
    print()

    print(f"Score threshold: {model.threshold:.4f} bits")
    print("D-segment score per bucket:")
    for bucket, score in zip(Bucket, model.d_segment_scores()):
        print(f"  {bucket.label}: {score:+.6f}")


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog='dsegments-utils',
        description='dsegments utilities: model building and inspection',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Subcommands:
  build     Build a Poisson HMM from segment lengths and means, save as JSON
  inspect   Print model parameters, score threshold and per-bucket scores

Examples:
  dsegments-utils build -o model.json
  dsegments-utils build -o model.json --elevated-length 5000 --elevated-mean 0.76
  dsegments-utils inspect model.json
        """
    )
    subparsers = parser.add_subparsers(dest='command')

    # --- build ---
    p_build = subparsers.add_parser(
        'build',
        help='Build a model file from lengths and means',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )
    p_build.add_argument('-o', '--output', required=True,
                         help='Output model file (.json)')
    add_model_args(p_build, allow_model_file=False)

    # --- inspect ---
    p_inspect = subparsers.add_parser(
        'inspect',
        help='Inspect model file',
        description='Print model parameters, threshold and per-bucket D-segment scores.'
    )
    p_inspect.add_argument('model', help='Model file to inspect (.json)')

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    if args.command == 'build':
        cmd_build(args)
    elif args.command == 'inspect':
        cmd_inspect(args)


if __name__ == '__main__':
    main()
