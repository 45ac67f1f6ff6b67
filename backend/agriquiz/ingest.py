"""CSV ingestion for FAOSTAT-style exports.

The quiz core only consumes a clean ``Dataset``; everything lenient about
raw files (separator sniffing, BOMs, junk rows) lives here.
"""
import csv
import logging
import math
from typing import Optional

from .dataset import Dataset
from .models import DatasetRecord

logger = logging.getLogger(__name__)

# FAOSTAT column names
PRODUCT_COLUMN = 'Item'
COUNTRY_COLUMN = 'Area'
YEAR_COLUMN = 'Year'
VALUE_COLUMN = 'Value'

_BOM = '\ufeff'


def detect_separator(first_line: str) -> str:
    """Pick the most frequent of tab, semicolon and comma in the header line.

    Ties prefer tab, then semicolon; a line with none of them falls back to comma.
    """
    counts = {
        '\t': first_line.count('\t'),
        ';': first_line.count(';'),
        ',': first_line.count(','),
    }
    if not any(counts.values()):
        return ','
    if counts['\t'] >= counts[','] and counts['\t'] >= counts[';']:
        return '\t'
    if counts[';'] >= counts[',']:
        return ';'
    return ','


def _clean(value) -> str:
    return (value or '').replace(_BOM, '').strip()


def parse_row(row: dict) -> Optional[DatasetRecord]:
    """Convert one raw CSV row into a record, or None when it is unusable."""
    product = _clean(row.get(PRODUCT_COLUMN))
    country = _clean(row.get(COUNTRY_COLUMN))
    if not product or not country:
        return None
    try:
        year = int(_clean(row.get(YEAR_COLUMN)))
        value = float(_clean(row.get(VALUE_COLUMN)))
    except ValueError:
        return None
    if math.isnan(value) or value < 0:
        return None
    return DatasetRecord(product=product, country=country, year=year, value=value)


def load_csv(path: str, separator: Optional[str] = None, encoding: str = 'utf-8-sig') -> Dataset:
    """Load a dataset from ``path``. Raises OSError when the file cannot be read."""
    with open(path, newline='', encoding=encoding) as fh:
        first_line = fh.readline()
        sep = separator or detect_separator(first_line)
        label = 'TAB' if sep == '\t' else sep
        logger.info(f"[dataset] separator={label} path={path}")
        fh.seek(0)
        reader = csv.DictReader(fh, delimiter=sep)
        # Some exports carry a BOM even after decoding; normalize header names
        if reader.fieldnames:
            reader.fieldnames = [_clean(name) for name in reader.fieldnames]
        records = []
        skipped = 0
        for row in reader:
            rec = parse_row(row)
            if rec is None:
                skipped += 1
                continue
            records.append(rec)
    if skipped:
        logger.warning(f"[dataset] skipped {skipped} malformed rows in {path}")
    logger.info(f"[dataset] loaded {len(records)} rows from {path}")
    return Dataset(records)
