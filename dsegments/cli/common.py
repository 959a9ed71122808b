"""Shared argparse argument factories for dsegments CLI tools.

Each function adds a group of related arguments to an ArgumentParser.
Default values can be overridden per-script where needed.
"""

import argparse

from dsegments.core.model_io import load_model
from dsegments.core.probabilities import ProbabilityModel


OUTPUT_FORMATS = ['xml', 'json', 'bed']


def add_model_args(parser: argparse.ArgumentParser,
                   normal_length: int = 1_000_000,
                   elevated_length: int = 10_000,
                   normal_mean: float = 0.38,
                   elevated_mean: float = 0.57,
                   allow_model_file: bool = True) -> None:
    """Add model arguments (--model or the four Poisson HMM parameters)."""
    group = parser.add_argument_group('model')
    if allow_model_file:
        group.add_argument(
            '-m', '--model', default=None,
            help="Saved model (.json); overrides the length/mean parameters"
        )
    group.add_argument(
        '--normal-length', type=int, default=normal_length,
        help=f"Expected length of background runs in bp (default: {normal_length:,})"
    )
    group.add_argument(
        '--elevated-length', type=int, default=elevated_length,
        help=f"Expected length of elevated runs in bp (default: {elevated_length:,})"
    )
    group.add_argument(
        '--normal-mean', type=float, default=normal_mean,
        help=f"Mean read starts per position in background (default: {normal_mean})"
    )
    group.add_argument(
        '--elevated-mean', type=float, default=elevated_mean,
        help=f"Mean read starts per position in elevated regions (default: {elevated_mean})"
    )


def model_from_args(args: argparse.Namespace) -> ProbabilityModel:
    """Load --model if given, otherwise build from the Poisson parameters."""
    if getattr(args, 'model', None):
        return load_model(args.model)
    return ProbabilityModel.from_segment_lengths(
        args.normal_length, args.elevated_length,
        args.normal_mean, args.elevated_mean,
    )


def add_format_args(parser: argparse.ArgumentParser,
                    default=None) -> None:
    """Add --format argument (one or more report formats)."""
    if default is None:
        default = ['xml']
    parser.add_argument(
        '--format', '-f', nargs='+', choices=OUTPUT_FORMATS, default=default,
        help=f"Report format(s) to write (default: {' '.join(default)})"
    )


def add_chrom_args(parser: argparse.ArgumentParser) -> None:
    """Add --chroms argument."""
    parser.add_argument(
        '--chroms', nargs='+', default=None,
        help="Only scan these chromosomes"
    )


def add_output_args(parser: argparse.ArgumentParser,
                    required: bool = True,
                    help_text: str = "Output directory") -> None:
    """Add -o/--output argument."""
    parser.add_argument(
        '-o', '--output', required=required,
        help=help_text
    )


def add_stats_args(parser: argparse.ArgumentParser) -> None:
    """Add --stats flag."""
    parser.add_argument(
        '--stats', action='store_true',
        help="Generate summary statistics and plots"
    )


def add_progress_args(parser: argparse.ArgumentParser) -> None:
    """Add --progress flag."""
    parser.add_argument(
        '--progress', action='store_true',
        help="Show a progress bar while scanning"
    )


def add_verbose_args(parser: argparse.ArgumentParser) -> None:
    """Add --verbose flag."""
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help="Verbose output"
    )


def add_version_args(parser: argparse.ArgumentParser) -> None:
    """Add --version flag."""
    from dsegments import __version__
    parser.add_argument(
        '--version', action='version',
        version=f'%(prog)s {__version__}'
    )
