"""
Halstead software-science metrics.

A record holds the four basic counts of one measured element (an
operation, a type or a namespace) together with the quantities derived
from them. Aggregated records carry sums only; quantities that cannot
be summed are marked with sentinels.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable

import numpy as np

# Vocabulary marker for aggregated records
AGGREGATE_VOCABULARY = -1

BUGS_DIVISOR = 3000.0


@dataclass
class HalsteadMetrics:
    """Halstead measures of one element."""

    element_id: str
    element_kind: str
    distinct_operators: int = 0
    distinct_operands: int = 0
    total_operators: int = 0
    total_operands: int = 0
    vocabulary: int = 0
    length: int = 0
    volume: float = 0.0
    difficulty: float = 0.0
    effort: float = 0.0
    estimated_bugs: float = 0.0

    @classmethod
    def from_counts(
        cls,
        element_id: str,
        element_kind: str,
        n1: int,
        n2: int,
        N1: int,
        N2: int,
    ) -> "HalsteadMetrics":
        """
        Derive all measures from operator and operand counts.

        Args:
            element_id: ID of the measured element.
            element_kind: "method", "class" or "namespace".
            n1: Number of distinct operators.
            n2: Number of distinct operands.
            N1: Total number of operators.
            N2: Total number of operands.

        Returns:
            A fully derived record.
        """
        vocabulary = n1 + n2
        length = N1 + N2
        volume = float(length * np.log2(max(vocabulary, 1)))
        difficulty = (n1 / 2.0) * (N2 / n2) if n2 > 0 else 0.0
        effort = difficulty * volume

        return cls(
            element_id=element_id,
            element_kind=element_kind,
            distinct_operators=n1,
            distinct_operands=n2,
            total_operators=N1,
            total_operands=N2,
            vocabulary=vocabulary,
            length=length,
            volume=volume,
            difficulty=difficulty,
            effort=effort,
            estimated_bugs=volume / BUGS_DIVISOR,
        )

    @classmethod
    def aggregate(
        cls,
        element_id: str,
        element_kind: str,
        records: Iterable["HalsteadMetrics"],
    ) -> "HalsteadMetrics":
        """
        Combine member records into one record for their owner.

        Length, volume and effort are summed; vocabulary is set to the
        aggregate marker and difficulty to NaN since neither adds up.
        Estimated bugs are recomputed from the summed volume.
        """
        records = list(records)
        volume = float(np.sum([r.volume for r in records])) if records else 0.0

        return cls(
            element_id=element_id,
            element_kind=element_kind,
            vocabulary=AGGREGATE_VOCABULARY,
            length=int(sum(r.length for r in records)),
            volume=volume,
            difficulty=float(np.nan),
            effort=float(np.sum([r.effort for r in records])) if records else 0.0,
            estimated_bugs=volume / BUGS_DIVISOR,
        )

    @property
    def is_aggregate(self) -> bool:
        return self.vocabulary == AGGREGATE_VOCABULARY

    def to_dict(self, nan_replacement: Any = -1) -> Dict[str, Any]:
        """
        Export the record as a property map.

        Args:
            nan_replacement: Value written in place of NaN.

        Returns:
            Dictionary with id, kind and the derived measures.
        """

        def fix(value: float) -> Any:
            return nan_replacement if np.isnan(value) else value

        return {
            "id": self.element_id,
            "kind": self.element_kind,
            "vocabulary": self.vocabulary,
            "length": self.length,
            "volume": fix(self.volume),
            "difficulty": fix(self.difficulty),
            "effort": fix(self.effort),
            "estimatedBugs": fix(self.estimated_bugs),
        }
