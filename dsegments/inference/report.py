"""
dsegments report output.

Renders scan results as:
- an XML-style results document (model, threshold, segments, histograms)
- JSON
- BED (0-based half-open, one line per D-segment)
"""

import json
import math
from typing import List, Sequence

from dsegments.core.probabilities import Bucket, ProbabilityModel, SCORING_STATES


def round_score(score: float) -> float:
    """Round half up to one decimal place (2.45 -> 2.5, 2.449999 -> 2.4)."""
    return math.floor(score * 10 + 0.5) / 10


def _fmt(value: float, precision: int = 6) -> str:
    return f"{value:.{precision}g}"


# =============================================================================
# XML-style report
# =============================================================================

def format_model_xml(model: ProbabilityModel) -> str:
    """Model block: states, initial, transition and emission probabilities."""
    states = [int(s) for s in SCORING_STATES]
    lines = ['      <model type="hmm">']
    lines.append(f"        <states>{','.join(str(s) for s in states)}</states>")

    initial = ','.join(f"{s}={_fmt(model.initiation_probability(s), 5)}" for s in states)
    lines.append(f"        <initial_state_probabilities>{initial}</initial_state_probabilities>")

    for s in states:
        row = ','.join(f"{t}={_fmt(model.transition_probability(s, t))}" for t in states)
        lines.append(f'        <transition_probabilities state="{s}">{row}</transition_probabilities>')

    for s in states:
        row = ','.join(f"{b.label}={_fmt(model.emission_probability(s, b))}" for b in Bucket)
        lines.append(f'        <emission_probabilities state="{s}">{row}</emission_probabilities>')

    lines.append('      </model>')
    return '\n'.join(lines) + '\n'


def format_segment_list(result, per_line: int = 5) -> str:
    """Segments as (start,end,score) tuples, `per_line` to a line."""
    attrs = f' chrom="{result.chrom}"' if result.chrom is not None else ''
    tuples = [f"({seg.start},{seg.end},{round_score(seg.score)})" for seg in result.segments]
    rows = [','.join(tuples[i:i + per_line]) for i in range(0, len(tuples), per_line)]
    body = ''.join(f"      {row}\n" for row in rows)
    return f'    <result type="segment_list"{attrs}>\n{body}    </result>\n'


def format_histogram(counts, positions: str, chrom=None) -> str:
    attrs = f' chrom="{chrom}"' if chrom is not None else ''
    body = ', '.join(f"{b.label}={counts[b]}" for b in Bucket)
    return (f'    <result type="read_start_counts_histogram" positions="{positions}"{attrs}>\n'
            f'      {body}\n'
            f'    </result>\n')


def format_xml_report(model: ProbabilityModel, results: Sequence) -> str:
    """
    Full results document.

    format:
        <results>
            <<model>>
            <score_threshold>threshold</score_threshold>
            <<segment_list>>                       (per chromosome)
            <<read_start_counts_histogram all>>    (per chromosome)
            <<read_start_counts_histogram state2>> (per chromosome)
        </results>
    """
    parts = ['  <results>\n', format_model_xml(model)]
    parts.append(f"      <score_threshold>{_fmt(model.threshold)}</score_threshold>\n")
    for result in results:
        parts.append(format_segment_list(result))
        parts.append(format_histogram(result.all_counts, 'all', result.chrom))
        parts.append(format_histogram(result.segment_counts, 'state2', result.chrom))
    parts.append('  </results>\n')
    return ''.join(parts)


def write_xml_report(model: ProbabilityModel, results: Sequence, filepath: str):
    with open(filepath, 'w') as f:
        f.write(format_xml_report(model, results))


# =============================================================================
# JSON
# =============================================================================

def results_to_dict(model: ProbabilityModel, results: Sequence) -> dict:
    """Structured form of the report, suitable for json.dump."""
    chromosomes: List[dict] = []
    for result in results:
        chromosomes.append({
            'chrom': result.chrom,
            'n_positions': result.n_positions,
            'segments': [
                {
                    'start': seg.start,
                    'end': seg.end,
                    'score': round_score(seg.score),
                    'raw_score': seg.score,
                }
                for seg in result.segments
            ],
            'read_start_counts': {
                'all': result.all_counts.as_dict(),
                'segments': result.segment_counts.as_dict(),
            },
        })
    return {
        'model': model.to_dict(),
        'threshold': model.threshold,
        'bucket_scores': model.d_segment_scores().tolist(),
        'chromosomes': chromosomes,
    }


def write_json_report(model: ProbabilityModel, results: Sequence, filepath: str):
    with open(filepath, 'w') as f:
        json.dump(results_to_dict(model, results), f, indent=2)


# =============================================================================
# BED
# =============================================================================

def write_bed(results: Sequence, filepath: str, name_prefix: str = 'dseg') -> int:
    """
    Write D-segments as BED5 (chrom, start, end, name, score).

    Returns:
        Number of records written
    """
    n = 0
    with open(filepath, 'w') as f:
        for result in results:
            chrom = result.chrom if result.chrom is not None else '.'
            for seg in result.segments:
                n += 1
                f.write(f"{chrom}\t{seg.start - 1}\t{seg.end}\t"
                        f"{name_prefix}{n}\t{round_score(seg.score)}\n")
    return n
