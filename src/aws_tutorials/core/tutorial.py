"""
Tutorial lifecycle.

A tutorial is an ordered list of steps that create, wait on and exercise AWS
resources. ``Tutorial.run`` executes the steps, stops at the first failure,
and then applies the configured cleanup policy to whatever was tracked.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Collection, Dict, List, Optional, Tuple

from botocore.exceptions import BotoCoreError, ClientError

from ..config import CleanupMode, Config, config as default_config
from ..exceptions import TutorialError
from ..utils.aws_helpers import get_boto3_client
from ..utils.logger import get_logger, log_banner
from ..utils.naming import random_suffix, resource_name, standard_tags
from .tracker import CleanupReport, ResourceTracker
from .waiters import pause, poll_until, retry_call, wait_for

logger = get_logger(__name__)

Step = Tuple[str, Callable[[], Any]]

EXIT_SUCCESS = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


class TutorialStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    INTERRUPTED = "interrupted"


@dataclass
class TutorialResult:
    """Outcome of a tutorial run."""

    slug: str
    status: TutorialStatus
    completed_steps: List[str] = field(default_factory=list)
    failed_step: Optional[str] = None
    error: Optional[BaseException] = None
    resources: List[str] = field(default_factory=list)
    cleanup: Optional[CleanupReport] = None
    retained: List[str] = field(default_factory=list)
    outputs: Dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == TutorialStatus.SUCCEEDED

    @property
    def exit_code(self) -> int:
        if self.status == TutorialStatus.INTERRUPTED:
            return EXIT_INTERRUPTED
        if self.status == TutorialStatus.FAILED:
            return EXIT_FAILURE
        if self.cleanup is not None and not self.cleanup.ok:
            return EXIT_FAILURE
        return EXIT_SUCCESS


class Tutorial:
    """Base class for every tutorial."""

    slug: str = ""
    title: str = ""
    description: str = ""

    def __init__(
        self,
        settings: Optional[Config] = None,
        cleanup_mode: Optional[CleanupMode] = None,
        region: Optional[str] = None,
        suffix: Optional[str] = None,
    ):
        """
        Initialize a tutorial run.

        Args:
            settings: Configuration (defaults to the global config)
            cleanup_mode: Override the configured cleanup policy
            region: Override the configured AWS region
            suffix: Random suffix for resource names (generated if omitted)
        """
        self.config = settings or default_config
        self.region = region or self.config.aws.region
        self.cleanup_mode = CleanupMode(cleanup_mode or self.config.tutorial.cleanup_mode)
        self.suffix = suffix or random_suffix()
        self.tracker = ResourceTracker()
        self.outputs: Dict[str, Any] = {}
        self._clients: Dict[str, Any] = {}
        self._work_dir: Optional[Path] = None

    def steps(self) -> List[Step]:
        """Ordered (name, callable) pairs making up the tutorial."""
        raise NotImplementedError

    def client(self, service_name: str) -> Any:
        """Return a cached client for ``service_name`` in this run's region."""
        if service_name not in self._clients:
            self._clients[service_name] = get_boto3_client(service_name, self.region)
        return self._clients[service_name]

    def name(self, kind: str, **kwargs: Any) -> str:
        """Unique resource name for this run."""
        return resource_name(self.config.tutorial.resource_prefix, kind, self.suffix, **kwargs)

    def tags(self, name: str, key_style: str = "Key") -> List[Dict[str, str]]:
        return standard_tags(name, self.slug, key_style=key_style)

    # Waiting helpers bound to this run's settings

    def wait(self, client: Any, waiter_name: str, description: str, **params: Any) -> None:
        wait_for(
            client,
            waiter_name,
            description,
            delay=self.config.waiters.delay,
            max_attempts=self.config.waiters.max_attempts,
            **params,
        )

    def poll(
        self,
        fetch: Callable[[], str],
        target: Collection[str],
        description: str,
        failure_states: Collection[str] = (),
    ) -> str:
        return poll_until(
            fetch,
            target,
            description,
            failure_states=failure_states,
            interval=self.config.waiters.poll_interval,
            timeout=self.config.waiters.poll_timeout,
        )

    def retry(
        self,
        func: Callable[..., Any],
        *args: Any,
        retry_codes: Collection[str],
        description: str,
        **kwargs: Any,
    ) -> Any:
        return retry_call(
            func,
            *args,
            retry_codes=retry_codes,
            description=description,
            attempts=self.config.retry.attempts,
            delay=self.config.retry.delay,
            backoff=self.config.retry.backoff,
            **kwargs,
        )

    def pause(self, reason: str) -> None:
        pause(self.config.tutorial.pause_seconds, reason)

    @property
    def work_dir(self) -> Path:
        """Per-run directory for local files (created on first use)."""
        if self._work_dir is None:
            self._work_dir = Path(self.config.tutorial.work_dir) / f"{self.slug}-{self.suffix}"
            self._work_dir.mkdir(parents=True, exist_ok=True)
        return self._work_dir

    def local_file(self, filename: str, content: Any = None) -> Path:
        """
        Create a local file in the work directory and track it for removal.

        Args:
            filename: File name inside the work directory
            content: str or bytes to write; None creates an empty file

        Returns:
            Path to the file.
        """
        path = self.work_dir / filename
        if isinstance(content, bytes):
            path.write_bytes(content)
        elif content is None:
            path.touch()
        else:
            path.write_text(content, encoding="utf-8")
        self.track_local_file(path)
        return path

    def track_local_file(self, path: Path) -> None:
        self.tracker.track(
            "Local File",
            str(path),
            delete=lambda: path.unlink(missing_ok=True),
            hint=f"rm -f {path}",
        )

    def _should_clean_up(self, status: TutorialStatus) -> bool:
        if self.cleanup_mode == CleanupMode.ALWAYS:
            return True
        if self.cleanup_mode == CleanupMode.ON_ERROR:
            return status != TutorialStatus.SUCCEEDED
        return False

    def _log_retained(self) -> List[str]:
        retained = self.tracker.describe()
        if not retained:
            return retained
        log_banner(logger, "RESOURCES KEPT")
        for line in self.tracker.display_lines():
            logger.info(f"- {line}")
        hints = self.tracker.manual_cleanup_hints()
        if hints:
            logger.info("To clean up later, run:")
            for hint in hints:
                logger.info(f"  {hint}")
        return retained

    def run(self) -> TutorialResult:
        """
        Run every step, then apply the cleanup policy.

        Returns:
            TutorialResult describing what happened.
        """
        log_banner(logger, f"{self.title} ({self.slug})")
        logger.info(f"Region: {self.region}")
        logger.info(f"Resource suffix: {self.suffix}")
        logger.info(f"Cleanup mode: {self.cleanup_mode.value}")

        result = TutorialResult(slug=self.slug, status=TutorialStatus.SUCCEEDED, outputs=self.outputs)
        steps = self.steps()

        for index, (step_name, step_func) in enumerate(steps, start=1):
            logger.info(f"Step {index}/{len(steps)}: {step_name}")
            try:
                step_func()
            except KeyboardInterrupt:
                logger.warning("Tutorial interrupted by user")
                result.status = TutorialStatus.INTERRUPTED
                result.failed_step = step_name
                break
            except Exception as e:
                if isinstance(e, (ClientError, BotoCoreError, TutorialError, OSError)):
                    logger.error(f"Step '{step_name}' failed: {e}")
                else:
                    logger.error(f"Step '{step_name}' failed unexpectedly: {e}", exc_info=True)
                if isinstance(e, TutorialError) and e.step is None:
                    e.step = step_name
                result.status = TutorialStatus.FAILED
                result.failed_step = step_name
                result.error = e
                break
            result.completed_steps.append(step_name)

        result.resources = self.tracker.describe()
        if result.resources:
            log_banner(logger, "RESOURCES CREATED")
            for line in self.tracker.display_lines():
                logger.info(f"- {line}")

        if self._should_clean_up(result.status):
            log_banner(logger, "CLEANUP")
            try:
                result.cleanup = self.tracker.cleanup()
            except KeyboardInterrupt:
                logger.warning("Cleanup interrupted by user")
                result.status = TutorialStatus.INTERRUPTED
            result.retained = self._log_retained()
        else:
            logger.info("Skipping cleanup. Resources will remain in your AWS account.")
            result.retained = self._log_retained()

        if result.succeeded:
            logger.info("Tutorial completed successfully!")
        elif result.failed_step is None:
            logger.error(f"Tutorial {result.status.value} during cleanup")
        else:
            logger.error(f"Tutorial {result.status.value} at step: {result.failed_step}")
        return result
