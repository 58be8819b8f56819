"""
Resource tracking and best-effort cleanup.

Every resource a tutorial creates is recorded here right after the create
call succeeds, together with a callable that deletes it. Cleanup walks the
records newest first so dependants go before the things they depend on
(an Elastic IP association before the instance, a subnet before its VPC).
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..utils.aws_helpers import is_not_found
from ..utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class TrackedResource:
    """A resource created during a tutorial run."""

    kind: str
    identifier: str
    delete: Callable[[], Any]
    hint: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def label(self) -> str:
        return f"{self.kind}: {self.identifier}"

    @property
    def display(self) -> str:
        """Label followed by any details, for summaries."""
        if not self.details:
            return self.label
        extras = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.label} ({extras})"


@dataclass
class CleanupReport:
    """Outcome of one cleanup pass."""

    deleted: List[TrackedResource] = field(default_factory=list)
    already_gone: List[TrackedResource] = field(default_factory=list)
    failed: List[Tuple[TrackedResource, Exception]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed

    @property
    def attempted(self) -> int:
        return len(self.deleted) + len(self.already_gone) + len(self.failed)

    def summary(self) -> str:
        return (
            f"{len(self.deleted)} deleted, {len(self.already_gone)} already gone, "
            f"{len(self.failed)} failed"
        )


class ResourceTracker:
    """Ordered record of created resources."""

    def __init__(self):
        self._resources: List[TrackedResource] = []

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self):
        return iter(list(self._resources))

    def __bool__(self) -> bool:
        return bool(self._resources)

    @property
    def resources(self) -> Tuple[TrackedResource, ...]:
        return tuple(self._resources)

    def track(
        self,
        kind: str,
        identifier: str,
        delete: Callable[[], Any],
        hint: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> TrackedResource:
        """
        Record a resource that now exists.

        Args:
            kind: Human readable kind, e.g. "EC2 Instance"
            identifier: ID, name or ARN of the resource
            delete: Zero-argument callable that deletes the resource
            hint: Command a user can run to delete it by hand
            details: Extra values worth showing in summaries

        Returns:
            The tracked resource.
        """
        resource = TrackedResource(
            kind=kind,
            identifier=identifier,
            delete=delete,
            hint=hint,
            details=dict(details or {}),
        )
        self._resources.append(resource)
        logger.debug(f"Tracking {resource.label}")
        return resource

    def forget(self, identifier: str) -> bool:
        """
        Stop tracking a resource the tutorial already removed itself.

        Returns:
            True if a resource with that identifier was tracked.
        """
        for index in range(len(self._resources) - 1, -1, -1):
            if self._resources[index].identifier == identifier:
                del self._resources[index]
                return True
        return False

    def _untrack(self, resource: TrackedResource) -> None:
        self._resources = [r for r in self._resources if r is not resource]

    def describe(self) -> List[str]:
        """Labels of tracked resources in creation order."""
        return [resource.label for resource in self._resources]

    def display_lines(self) -> List[str]:
        """Labels with details, in creation order."""
        return [resource.display for resource in self._resources]

    def manual_cleanup_hints(self) -> List[str]:
        """Manual delete commands, in the order they should be run."""
        return [r.hint for r in reversed(self._resources) if r.hint]

    def cleanup(self) -> CleanupReport:
        """
        Delete every tracked resource, newest first.

        A failed delete is logged and recorded; the remaining deletes still
        run. Each resource stops being tracked as soon as its delete returns, so
        an interrupted pass or a second call only retries what is left.

        Returns:
            CleanupReport for this pass.
        """
        report = CleanupReport()

        for resource in reversed(list(self._resources)):
            logger.info(f"Deleting {resource.label}...")
            try:
                resource.delete()
            except Exception as e:
                if not is_not_found(e):
                    logger.warning(f"Failed to delete {resource.label}: {e}")
                    report.failed.append((resource, e))
                    continue
                logger.info(f"{resource.label} already deleted")
                report.already_gone.append(resource)
            else:
                report.deleted.append(resource)
            self._untrack(resource)

        if report.ok:
            logger.info(f"Cleanup completed successfully ({report.summary()})")
        else:
            logger.warning(
                f"Cleanup completed with {len(report.failed)} failures. "
                "Some resources may not have been deleted."
            )
        return report
