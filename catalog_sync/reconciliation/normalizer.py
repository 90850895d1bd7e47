"""
Feed Normalizer for Catalog Sync

Decodes the distributor's inventory CSV into typed FeedRecords keyed by part
number. Individual malformed fields never fail a row: they coerce to zero.
"""

import csv
import io
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional, Tuple

from catalog_sync.errors import FeedUnavailable
from catalog_sync.models import FeedRecord, FeedStats

logger = logging.getLogger(__name__)

KEY_COLUMN = "id"
AVAILABLE_COLUMN = "available"
COST_COLUMN = "your_price"
MSRP_COLUMN = "msrp"

ZERO = Decimal("0")


class FeedNormalizer:
    """
    Parses raw distributor rows into FeedRecords.

    Keeps counters for the last parse in ``stats`` so the runner can log how
    many rows were skipped or coerced.
    """

    def __init__(self):
        """Initialize the feed normalizer."""
        self.stats = FeedStats()
        logger.debug("Initialized FeedNormalizer")

    def parse_csv(self, csv_text: str) -> Dict[str, FeedRecord]:
        """
        Parse CSV text with a header row into FeedRecords.

        Args:
            csv_text: Raw feed body

        Returns:
            Mapping of part key to FeedRecord

        Raises:
            FeedUnavailable: If the payload has no ``id`` column, which means
                we were not served the inventory CSV at all
        """
        text = csv_text.lstrip("\ufeff")
        reader = csv.DictReader(io.StringIO(text), skipinitialspace=True)

        fieldnames = [name.strip() for name in (reader.fieldnames or [])]
        if KEY_COLUMN not in fieldnames:
            raise FeedUnavailable(
                f"Feed is missing the '{KEY_COLUMN}' column. "
                f"Columns received: {fieldnames[:10]}"
            )
        reader.fieldnames = fieldnames

        return self.normalize_rows(reader)

    def normalize_rows(self, rows: Iterable[Dict[str, Any]]) -> Dict[str, FeedRecord]:
        """
        Normalize already-decoded rows.

        Rows without a part key are skipped. When a part key repeats, the
        last row wins.

        Args:
            rows: Row dictionaries keyed by column name

        Returns:
            Mapping of part key to FeedRecord
        """
        records: Dict[str, FeedRecord] = {}
        duplicates: List[str] = []
        row_count = 0
        skipped = 0
        coerced = 0

        for index, row in enumerate(rows):
            if not any((value or "").strip() for value in row.values() if isinstance(value, str)):
                continue
            row_count += 1

            part_key = (row.get(KEY_COLUMN) or "").strip()
            if not part_key:
                skipped += 1
                logger.debug(f"Skipping feed row {index}: no part key")
                continue

            available, bad_available = self._coerce_int(row.get(AVAILABLE_COLUMN))
            cost, bad_cost = self._coerce_decimal(row.get(COST_COLUMN))
            msrp, bad_msrp = self._coerce_decimal(row.get(MSRP_COLUMN))

            bad_fields = [
                name for name, bad in (
                    (AVAILABLE_COLUMN, bad_available),
                    (COST_COLUMN, bad_cost),
                    (MSRP_COLUMN, bad_msrp),
                ) if bad
            ]
            if bad_fields:
                coerced += len(bad_fields)
                logger.debug(f"Feed row {part_key}: coerced {bad_fields} to 0")

            if part_key in records:
                duplicates.append(part_key)

            records[part_key] = FeedRecord(
                part_key=part_key,
                available_qty=available,
                unit_cost=cost,
                msrp=msrp,
            )

        if duplicates:
            logger.warning(f"Found {len(duplicates)} duplicate part keys in feed; last row wins")

        self.stats = FeedStats(
            rows=row_count,
            records=len(records),
            skipped_rows=skipped,
            coerced_fields=coerced,
            duplicate_keys=tuple(duplicates),
        )

        logger.info(
            f"Normalized {len(records)} feed records from {row_count} rows "
            f"({skipped} skipped, {coerced} fields coerced)"
        )
        return records

    def _coerce_int(self, value: Optional[str]) -> Tuple[int, bool]:
        """
        Coerce a quantity to a non-negative int.

        Returns:
            (value, was_malformed)
        """
        text = (value or "").strip()
        if not text:
            return 0, True

        try:
            number = int(text)
        except ValueError:
            try:
                number = int(Decimal(text))
            except (InvalidOperation, ValueError, OverflowError):
                return 0, True

        return max(number, 0), False

    def _coerce_decimal(self, value: Optional[str]) -> Tuple[Decimal, bool]:
        """
        Coerce a price to a non-negative, finite Decimal.

        Returns:
            (value, was_malformed)
        """
        text = (value or "").strip().lstrip("$").replace(",", "")
        if not text:
            return ZERO, True

        try:
            number = Decimal(text)
        except InvalidOperation:
            return ZERO, True

        if not number.is_finite():
            return ZERO, True

        return max(number, ZERO), False
