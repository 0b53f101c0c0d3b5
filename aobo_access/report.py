from __future__ import annotations

from collections import Counter, namedtuple
from typing import Iterable, List

from aobo_access.assigner import AssignmentOutcome, OutcomeStatus

_ReportFields = namedtuple(
    "Report",
    [
        "principal",
        "total",
        "assigned",
        "already_assigned",
        "skipped",
        "disabled",
        "failed",
        "failures",
    ],
)


class Report(_ReportFields):
    __slots__ = ()

    @property
    def succeeded(self) -> bool:
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.succeeded else 1


def build_report(principal, outcomes: Iterable[AssignmentOutcome]) -> Report:
    """Fold the per-subscription outcomes into totals."""
    outcomes = list(outcomes)
    counts = Counter(o.status for o in outcomes)
    failures = [o for o in outcomes if o.status is OutcomeStatus.FAILED]
    return Report(
        principal=principal,
        total=len(outcomes),
        assigned=counts[OutcomeStatus.ASSIGNED],
        already_assigned=counts[OutcomeStatus.ALREADY_ASSIGNED],
        skipped=counts[OutcomeStatus.SKIPPED],
        disabled=counts[OutcomeStatus.DISABLED],
        failed=counts[OutcomeStatus.FAILED],
        failures=failures,
    )


def format_summary(report: Report) -> List[str]:
    lines = [
        "=" * 80,
        f"Principal: {report.principal.display_name} ({report.principal.object_id})",
        f"Subscriptions processed: {report.total}",
        f"  Assigned:         {report.assigned}",
        f"  Already assigned: {report.already_assigned}",
        f"  Skipped:          {report.skipped}",
        f"  Disabled:         {report.disabled}",
        f"  Failed:           {report.failed}",
    ]
    for outcome in report.failures:
        lines.append(f"    {outcome.target.subscription_id}: {outcome.detail}")
    return lines


def print_summary(report: Report):
    print("\n" + "\n".join(format_summary(report)))
