"""
Waiting helpers.

SDK waiters are used wherever the service ships one. ``poll_until`` covers
resources without a waiter, and ``retry_call`` covers calls that fail until
an eventually consistent dependency (usually a new IAM role) has propagated.
"""

import time
from typing import Any, Callable, Collection, Optional

from botocore.exceptions import ClientError, WaiterError

from ..config import Backoff, config
from ..exceptions import ResourceStateError, WaitTimeoutError
from ..utils.aws_helpers import error_code
from ..utils.logger import get_logger

logger = get_logger(__name__)


def wait_for(
    client: Any,
    waiter_name: str,
    description: str,
    delay: Optional[int] = None,
    max_attempts: Optional[int] = None,
    **params: Any,
) -> None:
    """
    Block on an SDK waiter.

    Args:
        client: Boto3 client that owns the waiter
        waiter_name: Waiter name, e.g. "instance_running"
        description: What is being waited on, for log and error messages
        delay: Seconds between polls (default from config)
        max_attempts: Polls before giving up (default from config)
        **params: Parameters for the underlying describe call

    Raises:
        WaitTimeoutError: The waiter ran out of attempts
        ResourceStateError: The resource reached a failure state
    """
    delay = config.waiters.delay if delay is None else delay
    max_attempts = config.waiters.max_attempts if max_attempts is None else max_attempts

    logger.info(f"Waiting for {description}...")
    waiter = client.get_waiter(waiter_name)
    try:
        waiter.wait(WaiterConfig={"Delay": delay, "MaxAttempts": max_attempts}, **params)
    except WaiterError as e:
        reason = str(getattr(e, "kwargs", {}).get("reason", ""))
        if "Max attempts exceeded" in reason:
            raise WaitTimeoutError(description, waited=delay * max_attempts) from e
        if "terminal failure state" in reason:
            raise ResourceStateError(description, "terminal failure") from e
        raise
    logger.info(f"Done waiting for {description}")


def poll_until(
    fetch: Callable[[], str],
    target: Collection[str],
    description: str,
    failure_states: Collection[str] = (),
    interval: Optional[float] = None,
    timeout: Optional[float] = None,
) -> str:
    """
    Poll a status until it reaches one of the target values.

    Args:
        fetch: Returns the current status
        target: Statuses that end the wait successfully
        description: What is being waited on
        failure_states: Statuses that end the wait with an error
        interval: Seconds between polls (default from config)
        timeout: Seconds before giving up (default from config)

    Returns:
        The status that ended the wait.

    Raises:
        ResourceStateError: A failure state was observed
        WaitTimeoutError: Timeout elapsed
    """
    interval = config.waiters.poll_interval if interval is None else interval
    timeout = config.waiters.poll_timeout if timeout is None else timeout

    logger.info(f"Waiting for {description}...")
    start_time = time.monotonic()

    while True:
        status = fetch()
        if status in target:
            logger.info(f"{description}: {status}")
            return status
        if status in failure_states:
            raise ResourceStateError(description, status)

        elapsed = time.monotonic() - start_time
        if elapsed >= timeout:
            raise WaitTimeoutError(description, waited=elapsed)

        logger.info(f"{description} status: {status}, waiting...")
        time.sleep(interval)


def retry_call(
    func: Callable[..., Any],
    *args: Any,
    retry_codes: Collection[str],
    description: str,
    attempts: Optional[int] = None,
    delay: Optional[float] = None,
    backoff: Optional[Backoff] = None,
    **kwargs: Any,
) -> Any:
    """
    Call ``func`` until it stops failing with one of ``retry_codes``.

    Any other error propagates immediately.

    Args:
        func: The call to make
        retry_codes: ClientError codes worth retrying
        description: What the call does, for log messages
        attempts: Total attempts (default from config)
        delay: Base sleep between attempts (default from config)
        backoff: FIXED sleeps ``delay``; LINEAR sleeps ``delay * attempt``

    Returns:
        Whatever ``func`` returns.
    """
    attempts = config.retry.attempts if attempts is None else attempts
    delay = config.retry.delay if delay is None else delay
    backoff = config.retry.backoff if backoff is None else Backoff(backoff)

    for attempt in range(1, attempts + 1):
        try:
            return func(*args, **kwargs)
        except ClientError as e:
            code = error_code(e)
            if code not in retry_codes or attempt == attempts:
                raise
            sleep_time = delay * attempt if backoff == Backoff.LINEAR else delay
            logger.info(
                f"{description} failed with {code}. "
                f"Retry {attempt} of {attempts - 1}, waiting {sleep_time:.0f} seconds..."
            )
            time.sleep(sleep_time)

    raise ValueError("attempts must be at least 1")


def pause(seconds: float, reason: str) -> None:
    """Sleep for a fixed time, saying why."""
    if seconds <= 0:
        return
    logger.info(f"Pausing {seconds:.0f} seconds {reason}...")
    time.sleep(seconds)
