"""
Batch commit of candidate users.

Every record is submitted to the creation callable on a thread pool. One
record failing never stops the others; the call returns only after every
submission has settled. Failure reasons are kept in BatchResult, while the
public commit() reports counts only.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence
import structlog

from config import get_settings
from exceptions import AppError
from models.user import CandidateRecord
from models.user_import import CommitSummary

logger = structlog.get_logger(__name__)

CreateOne = Callable[[CandidateRecord], Any]
ProgressCallback = Callable[[int], None]


@dataclass
class RecordFailure:
    """A record the creation callable rejected, with the reason."""
    index: int
    record: CandidateRecord
    reason: str


@dataclass
class BatchResult:
    """Outcome of a batch commit, successes and failures in input order."""
    successes: list[CandidateRecord] = field(default_factory=list)
    failures: list[RecordFailure] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return len(self.successes)

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def total(self) -> int:
        return self.succeeded + self.failed

    def summary(self) -> CommitSummary:
        """Counts only, for the public boundary."""
        return CommitSummary(succeeded=self.succeeded, failed=self.failed)


class _ProgressTracker:
    """
    Settlement-based percentage that never goes backwards.

    Only touched from the thread collecting results.
    """

    def __init__(self, total: int, callback: Optional[ProgressCallback]):
        self.total = total
        self.callback = callback
        self.settled = 0
        self.percent = 0

    def settle(self) -> None:
        self.settled += 1
        percent = self.settled * 100 // self.total
        if percent <= self.percent:
            return
        self.percent = percent
        if self.callback:
            self.callback(percent)


def _failure_reason(error: Exception) -> str:
    """Message plus the identifying details an AppError carries."""
    if not isinstance(error, AppError):
        return str(error)
    context = ", ".join(
        f"{key}={value}" for key, value in error.details.items()
        if isinstance(value, (str, int, float, bool))
    )
    return f"{error.message} ({context})" if context else error.message


def commit_batch(
    records: Sequence[CandidateRecord],
    create_one: CreateOne,
    on_progress: Optional[ProgressCallback] = None,
    max_workers: Optional[int] = None,
) -> BatchResult:
    """
    Submit every record for creation and wait for all of them.

    Args:
        records: Candidate users, in file order
        create_one: Creates a single user; raising means that record failed
        on_progress: Receives 0-100 as submissions settle
        max_workers: Thread pool size (defaults to settings.import_max_workers)

    Returns:
        BatchResult with per-record failures and their reasons
    """
    if max_workers is None:
        max_workers = get_settings().import_max_workers

    total = len(records)
    logger.info("batch_commit_started", count=total, max_workers=max_workers)

    if total == 0:
        if on_progress:
            on_progress(100)
        logger.info("batch_commit_complete", succeeded=0, failed=0)
        return BatchResult()

    tracker = _ProgressTracker(total, on_progress)
    settled: dict[int, Optional[RecordFailure]] = {}

    with ThreadPoolExecutor(max_workers=min(max_workers, total)) as executor:
        future_to_index = {
            executor.submit(create_one, record): index
            for index, record in enumerate(records)
        }

        for future in as_completed(future_to_index):
            index = future_to_index[future]
            try:
                future.result()
                settled[index] = None
            except Exception as e:
                logger.warning(
                    "record_create_failed",
                    row_index=index,
                    email=records[index].email,
                    error=str(e),
                    error_type=type(e).__name__
                )
                settled[index] = RecordFailure(
                    index=index,
                    record=records[index],
                    reason=_failure_reason(e)
                )
            tracker.settle()

    result = BatchResult()
    for index, record in enumerate(records):
        failure = settled[index]
        if failure is None:
            result.successes.append(record)
        else:
            result.failures.append(failure)

    logger.info(
        "batch_commit_complete",
        succeeded=result.succeeded,
        failed=result.failed
    )

    return result


def commit(
    records: Sequence[CandidateRecord],
    create_one: CreateOne,
    on_progress: Optional[ProgressCallback] = None,
    max_workers: Optional[int] = None,
) -> CommitSummary:
    """
    Commit a batch and report aggregate counts only.

    Returns:
        CommitSummary(succeeded, failed)
    """
    return commit_batch(
        records,
        create_one,
        on_progress=on_progress,
        max_workers=max_workers
    ).summary()
