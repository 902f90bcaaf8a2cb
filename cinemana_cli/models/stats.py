"""
Aggregated statistics for a download session.
"""

from dataclasses import dataclass, field

from .catalog import JobResult, JobStatus


@dataclass
class RunSummary:
    """Collects job results and derives the counts shown at the end of a run."""

    dry_run: bool = False
    duration_seconds: float = 0.0
    results: list[JobResult] = field(default_factory=list)

    def add(self, result: JobResult) -> None:
        self.results.append(result)

    def _count(self, *statuses: JobStatus) -> int:
        return sum(1 for r in self.results if r.status in statuses)

    @property
    def ok(self) -> int:
        return self._count(JobStatus.OK)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.status.is_skip)

    @property
    def errors(self) -> int:
        return self._count(JobStatus.ERROR)

    @property
    def not_run(self) -> int:
        return self._count(JobStatus.CANCELLED)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def failed_results(self) -> list[JobResult]:
        return [r for r in self.results if r.status == JobStatus.ERROR]

    @property
    def exit_code(self) -> int:
        return 1 if self.errors else 0
