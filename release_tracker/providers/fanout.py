"""Bounded fan-out/fan-in for per-repository and per-page work.

Every dispatched task owns exactly one result slot, selected by its index at
dispatch time. Tasks never touch each other's slots, so the only
synchronization is the join on the executor.
"""

import os
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Annotated, Generic, TypeVar

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator


logger = structlog.get_logger()

T = TypeVar("T")
K = TypeVar("K")


class FanOutPolicy(BaseModel):
    """Worker bounds for intra-provider fan-out.

    Worker count is ``min(max(available_parallelism, worker_floor), worker_ceiling)``.
    Secondary pagination uses ``min(extra_pages, page_worker_ceiling)``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    worker_floor: Annotated[int, Field(ge=1, le=64)] = 8
    worker_ceiling: Annotated[int, Field(ge=1, le=64)] = 20
    page_worker_ceiling: Annotated[int, Field(ge=1, le=64)] = 8
    per_page: Annotated[int, Field(ge=1, le=100)] = 100
    max_pages: Annotated[int, Field(ge=1, le=1000)] = 100

    @model_validator(mode="after")
    def validate_bounds(self) -> "FanOutPolicy":
        """Ensure the ceiling is not below the floor."""
        if self.worker_ceiling < self.worker_floor:
            msg = (
                f"worker_ceiling ({self.worker_ceiling}) must be >= "
                f"worker_floor ({self.worker_floor})"
            )
            raise ValueError(msg)
        return self


def resolve_worker_count(
    policy: FanOutPolicy,
    task_count: int,
    available: int | None = None,
) -> int:
    """Compute the pool size for a fan-out.

    Args:
        policy: Worker bounds.
        task_count: Number of tasks to dispatch.
        available: Available parallelism (defaults to os.cpu_count()).

    Returns:
        Worker count, at least 1 and at most task_count.
    """
    if available is None:
        available = os.cpu_count() or 1
    workers = min(max(available, policy.worker_floor), policy.worker_ceiling)
    return max(1, min(workers, task_count))


@dataclass(frozen=True)
class TaskOutcome(Generic[T]):
    """Result slot owned by a single fan-out task."""

    index: int
    key: str
    value: T | None = None
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def ok(self) -> bool:
        """Check if the task completed without error."""
        return self.error is None


def run_fan_out(
    items: Sequence[K],
    task: Callable[[K], T],
    *,
    max_workers: int,
    key: Callable[[K], str] = str,
    log: structlog.stdlib.BoundLogger | None = None,
) -> list[TaskOutcome[T]]:
    """Run one task per item on a bounded pool and wait for all of them.

    A task that raises contributes an error string to its own slot; sibling
    tasks are unaffected and this function does not raise on their behalf.

    Args:
        items: Work items.
        task: Callable applied to each item.
        max_workers: Pool size.
        key: Label for each item used in logs and outcomes.
        log: Optional bound logger.

    Returns:
        One TaskOutcome per item, in input order.
    """
    log = log or logger
    if not items:
        return []

    keys = [key(item) for item in items]
    slots: list[TaskOutcome[T] | None] = [None] * len(items)

    def _run_slot(index: int, item: K) -> None:
        start_ns = time.perf_counter_ns()
        try:
            value = task(item)
        except Exception as e:  # noqa: BLE001
            slots[index] = TaskOutcome(
                index=index,
                key=keys[index],
                error=str(e) or type(e).__name__,
                duration_ms=(time.perf_counter_ns() - start_ns) / 1_000_000,
            )
            return
        slots[index] = TaskOutcome(
            index=index,
            key=keys[index],
            value=value,
            duration_ms=(time.perf_counter_ns() - start_ns) / 1_000_000,
        )

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [
            executor.submit(_run_slot, index, item) for index, item in enumerate(items)
        ]
        wait(futures)

    outcomes: list[TaskOutcome[T]] = []
    for index, slot in enumerate(slots):
        if slot is None:
            slot = TaskOutcome(index=index, key=keys[index], error="Task did not run")
        outcomes.append(slot)

    log.debug(
        "fan_out_complete",
        task_count=len(outcomes),
        failed_count=sum(1 for o in outcomes if not o.ok),
        max_workers=max_workers,
    )

    return outcomes


@dataclass
class PageFetch(Generic[T]):
    """One page of a paginated listing.

    ``total_pages`` is set when the platform reports it (Link header or
    count headers); ``has_more`` drives a sequential walk otherwise.
    """

    items: list[T]
    total_pages: int | None = None
    has_more: bool = False


@dataclass
class PaginationResult(Generic[T]):
    """Concatenated pages plus the pages that failed."""

    items: list[T] = field(default_factory=list)
    pages_fetched: int = 0
    failed_pages: list[int] = field(default_factory=list)


def fetch_all_pages(
    fetch_page: Callable[[int], PageFetch[T]],
    policy: FanOutPolicy,
    *,
    log: structlog.stdlib.BoundLogger | None = None,
) -> PaginationResult[T]:
    """Fetch every page of a listing endpoint.

    Page 1 is fetched synchronously to discover the page count; errors on
    page 1 propagate. Pages 2..N are fanned out when N is known, otherwise
    walked sequentially while the platform reports more. Items are
    concatenated in page order.

    Args:
        fetch_page: Callable returning one page (1-indexed).
        policy: Worker bounds and page limits.
        log: Optional bound logger.

    Returns:
        PaginationResult with all items retrieved.
    """
    log = log or logger
    first = fetch_page(1)
    result: PaginationResult[T] = PaginationResult(
        items=list(first.items), pages_fetched=1
    )

    if first.total_pages is not None:
        last_page = min(first.total_pages, policy.max_pages)
        if first.total_pages > policy.max_pages:
            log.warning(
                "pagination_limit_reached",
                total_pages=first.total_pages,
                max_pages=policy.max_pages,
            )
        pages = list(range(2, last_page + 1))
        if not pages:
            return result

        outcomes = run_fan_out(
            pages,
            fetch_page,
            max_workers=min(len(pages), policy.page_worker_ceiling),
            key=lambda page: f"page-{page}",
            log=log,
        )
        for page, outcome in zip(pages, outcomes, strict=True):
            if outcome.ok and outcome.value is not None:
                result.items.extend(outcome.value.items)
                result.pages_fetched += 1
            else:
                log.warning("page_fetch_failed", page=page, error=outcome.error)
                result.failed_pages.append(page)
        return result

    current = first
    page = 2
    while current.has_more:
        if page > policy.max_pages:
            log.warning("pagination_limit_reached", max_pages=policy.max_pages)
            break
        try:
            current = fetch_page(page)
        except Exception as e:  # noqa: BLE001
            log.warning("page_fetch_failed", page=page, error=str(e))
            result.failed_pages.append(page)
            break
        result.items.extend(current.items)
        result.pages_fetched += 1
        page += 1

    return result
