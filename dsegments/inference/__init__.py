"""D-segment scanning, statistics and report output."""

from dsegments.inference.scanner import (
    SegmentScanner,
    Segment,
    ScanResult,
    find_dsegments,
    scan_chromosomes,
)
from dsegments.inference.stats import ReadStartHistogram, SegmentStats
from dsegments.inference.report import (
    round_score,
    format_xml_report,
    write_xml_report,
    write_json_report,
    write_bed,
)

__all__ = [
    'SegmentScanner',
    'Segment',
    'ScanResult',
    'find_dsegments',
    'scan_chromosomes',
    'ReadStartHistogram',
    'SegmentStats',
    'round_score',
    'format_xml_report',
    'write_xml_report',
    'write_json_report',
    'write_bed',
]
