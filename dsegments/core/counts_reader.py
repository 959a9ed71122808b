"""
Read-start counts reader.

Input is tab-separated text without a header, one genomic position per line:

    chrom    position    read_starts    [ignored columns...]

Lines beginning with '#' are comments. Gzipped files (.gz) are read
transparently. Records are yielded lazily in file order, chunk by chunk.
"""

from typing import Iterator, NamedTuple, Optional

import numpy as np
import pandas as pd


class CountsFormatError(ValueError):
    """Raised for malformed or out-of-order records in a counts file."""


class CountRecord(NamedTuple):
    chrom: str
    position: int
    read_starts: int


def _first_bad_integer(values: pd.Series, name: str, first_record: int):
    """Coerce a column to int64; return (array, index of first bad value, message)."""
    numeric = pd.to_numeric(values, errors='coerce').to_numpy(dtype=float)
    bad = np.isnan(numeric)
    bad[~bad] = numeric[~bad] % 1 != 0
    if bad.any():
        idx = int(np.argmax(bad))
        message = f"Record {first_record + idx}: {name} is not an integer: {values.iloc[idx]!r}"
        numeric[bad] = 0
        return numeric.astype(np.int64), idx, message
    return numeric.astype(np.int64), None, None


def _first_error(checks):
    """Pick the earliest (index, message) among chunk-level checks."""
    found = [(idx, message) for idx, message in checks if idx is not None]
    if not found:
        return None, None
    return min(found, key=lambda item: item[0])


def read_counts(filepath: str, chunksize: int = 1_000_000) -> Iterator[CountRecord]:
    """
    Yield CountRecord for each position in a counts file.

    Args:
        filepath: Path to tab-separated counts file (optionally .gz)
        chunksize: Number of lines parsed per pandas chunk

    Raises:
        CountsFormatError: non-integer fields, non-positive positions,
            negative counts, positions not strictly increasing within a
            chromosome, or a chromosome that reappears after another one
    """
    try:
        reader = pd.read_csv(
            filepath,
            sep='\t',
            header=None,
            usecols=[0, 1, 2],
            names=['chrom', 'position', 'read_starts'],
            dtype=str,
            comment='#',
            keep_default_na=False,
            chunksize=chunksize,
        )
    except pd.errors.EmptyDataError:
        return
    except ValueError as e:
        # pandas rejects usecols when the file has fewer than three columns
        raise CountsFormatError(f"Could not parse {filepath}: {e}") from e

    record = 1
    last_chrom: Optional[str] = None
    last_position: Optional[int] = None
    seen_chroms = set()

    try:
        for chunk in reader:
            positions, bad_pos, pos_message = _first_bad_integer(
                chunk['position'], 'position', record)
            counts, bad_count, count_message = _first_bad_integer(
                chunk['read_starts'], 'read_starts', record)
            chroms = chunk['chrom'].tolist()

            checks = [(bad_pos, pos_message), (bad_count, count_message)]
            if (positions < 1).any():
                idx = int(np.argmax(positions < 1))
                checks.append((idx, f"Record {record + idx}: position must be >= 1, "
                                    f"got {positions[idx]}"))
            if (counts < 0).any():
                idx = int(np.argmax(counts < 0))
                checks.append((idx, f"Record {record + idx}: read_starts must be >= 0, "
                                    f"got {counts[idx]}"))
            bad_idx, message = _first_error(checks)

            # Records ahead of the first bad one are still yielded
            n_good = len(chroms) if bad_idx is None else bad_idx
            for chrom, position, n in zip(chroms[:n_good], positions[:n_good].tolist(),
                                          counts[:n_good].tolist()):
                if chrom != last_chrom:
                    if chrom in seen_chroms:
                        raise CountsFormatError(
                            f"Record {record}: chromosome {chrom} appears in more than one block"
                        )
                    seen_chroms.add(chrom)
                    last_chrom = chrom
                elif position <= last_position:
                    raise CountsFormatError(
                        f"Record {record}: position {position} on {chrom} does not "
                        f"follow {last_position}"
                    )
                last_position = position
                record += 1
                yield CountRecord(chrom, position, n)

            if bad_idx is not None:
                raise CountsFormatError(message)
    except pd.errors.ParserError as e:
        raise CountsFormatError(f"Could not parse {filepath}: {e}") from e
    finally:
        reader.close()

