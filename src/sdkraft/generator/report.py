"""Aggregation of validation findings for one generation run.

Findings are appended by every stage (document checks, model and operation
builders, the artifact validator) and never removed. The report is safe to
share between threads: :meth:`ValidationReport.add` holds a lock, and
independently built reports can be combined with :meth:`merge`.
"""

from __future__ import annotations

import threading
from collections import Counter
from collections.abc import Iterable, Iterator
from typing import Optional

from sdkraft.models import FindingCategory, ValidationFinding


class ValidationReport:
    """Append-only collection of :class:`~sdkraft.models.ValidationFinding`.

    Args:
        findings: Initial findings, kept in the given order.
    """

    def __init__(self, findings: Optional[Iterable[ValidationFinding]] = None) -> None:
        self._lock = threading.Lock()
        self._findings: list[ValidationFinding] = list(findings or ())

    def add(self, finding: Optional[ValidationFinding]) -> None:
        """Append *finding*; ``None`` (a clean result) is ignored."""
        if finding is None:
            return
        with self._lock:
            self._findings.append(finding)

    def record(self, category: FindingCategory, path: str, *messages: str) -> None:
        """Build and append a finding in one call."""
        self.add(ValidationFinding(category=category, path=path, messages=messages))

    def merge(self, other: ValidationReport) -> ValidationReport:
        """Append every finding of *other*, preserving its order. Returns ``self``."""
        incoming = other.findings
        with self._lock:
            self._findings.extend(incoming)
        return self

    @property
    def findings(self) -> list[ValidationFinding]:
        """Snapshot of the findings in insertion order."""
        with self._lock:
            return list(self._findings)

    def by_category(self, category: FindingCategory) -> list[ValidationFinding]:
        """Findings of a single category."""
        return [f for f in self.findings if f.category == category]

    def counts(self) -> dict[FindingCategory, int]:
        """Number of findings per category."""
        return dict(Counter(f.category for f in self.findings))

    def summary(self) -> str:
        """One header line with the count, then one line per finding."""
        findings = self.findings
        lines = [f"generation completed with {len(findings)} validation findings"]
        lines.extend(f"  {finding}" for finding in findings)
        return "\n".join(lines)

    def __len__(self) -> int:
        with self._lock:
            return len(self._findings)

    def __bool__(self) -> bool:
        return len(self) > 0

    def __iter__(self) -> Iterator[ValidationFinding]:
        return iter(self.findings)
