"""
Money Comparer for Catalog Sync Reconciliation

Normalizes prices and costs coming from the feed (decoded decimals) and the
storefront (strings such as "95.00" or "12.5") to two decimal places so that
representation noise never registers as a change.
"""

import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


class MoneyComparer:
    """
    Compares monetary values at cent precision.

    Values are rounded half-up to two places and compared as strings, so
    ``"110"``, ``110.0`` and ``Decimal("110.000001")`` are all equal.
    """

    def __init__(self, places: Decimal = CENT):
        """
        Initialize the comparer.

        Args:
            places: Quantization exponent (two decimal places by default)
        """
        self.places = places
        logger.debug("Initialized MoneyComparer")

    def round(self, value: Any) -> Optional[Decimal]:
        """
        Round a value half-up to cent precision.

        Args:
            value: Decimal, int, float or numeric string

        Returns:
            Rounded Decimal, or None for None/blank/non-numeric input
        """
        if value is None:
            return None

        if isinstance(value, float):
            # shortest round-tripping literal
            value = repr(value)

        try:
            amount = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            logger.debug(f"Not a monetary value: {value!r}")
            return None

        if not amount.is_finite():
            return None

        return amount.quantize(self.places, rounding=ROUND_HALF_UP)

    def normalize(self, value: Any) -> Optional[str]:
        """Two-decimal string form of ``value`` or None."""
        rounded = self.round(value)
        return None if rounded is None else f"{rounded:.2f}"

    def values_equal(self, value1: Any, value2: Any) -> bool:
        """
        Compare two monetary values after normalization.

        A missing value only equals another missing value.
        """
        return self.normalize(value1) == self.normalize(value2)

    def compare_fields(
        self,
        current: Dict[str, Any],
        target: Dict[str, Any]
    ) -> Dict[str, Dict[str, Optional[str]]]:
        """
        Return the fields of ``target`` that differ from ``current``.

        Args:
            current: Field name -> value currently stored
            target: Field name -> value we want stored

        Returns:
            Field name -> {"current": str, "target": str} for differing fields
        """
        differences = {}

        for name, target_value in target.items():
            current_value = current.get(name)
            if not self.values_equal(current_value, target_value):
                differences[name] = {
                    "current": self.normalize(current_value),
                    "target": self.normalize(target_value),
                }

        return differences
