"""Configuration management for the AWS tutorials."""

import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class CleanupMode(str, Enum):
    """When a tutorial deletes the resources it created."""

    ALWAYS = "always"
    ON_ERROR = "on-error"
    NEVER = "never"


class Backoff(str, Enum):
    """Sleep growth between retry attempts."""

    FIXED = "fixed"
    LINEAR = "linear"


class AWSConfig(BaseModel):
    """AWS configuration settings."""

    region: str = Field(default_factory=lambda: os.getenv("AWS_REGION", "us-east-1"))
    account_id: Optional[str] = Field(default_factory=lambda: os.getenv("AWS_ACCOUNT_ID"))


class WaiterSettings(BaseModel):
    """Polling settings for SDK waiters and status polls."""

    delay: int = Field(default_factory=lambda: int(os.getenv("WAITER_DELAY", "15")))
    max_attempts: int = Field(default_factory=lambda: int(os.getenv("WAITER_MAX_ATTEMPTS", "40")))
    poll_interval: float = Field(default_factory=lambda: float(os.getenv("POLL_INTERVAL", "15")))
    poll_timeout: float = Field(default_factory=lambda: float(os.getenv("POLL_TIMEOUT", "600")))


class RetrySettings(BaseModel):
    """Retry settings for eventually consistent calls (IAM propagation)."""

    attempts: int = Field(default_factory=lambda: int(os.getenv("RETRY_ATTEMPTS", "12")))
    delay: float = Field(default_factory=lambda: float(os.getenv("RETRY_DELAY", "5")))
    backoff: Backoff = Field(
        default_factory=lambda: os.getenv("RETRY_BACKOFF", "linear").lower(),
        validate_default=True,
    )


class TutorialSettings(BaseModel):
    """Settings shared by every tutorial run."""

    resource_prefix: str = Field(default_factory=lambda: os.getenv("TUTORIAL_PREFIX", "tutorial"))
    cleanup_mode: CleanupMode = Field(
        default_factory=lambda: os.getenv("TUTORIAL_CLEANUP", "always").lower(),
        validate_default=True,
    )
    work_dir: Path = Field(
        default_factory=lambda: Path(
            os.getenv("TUTORIAL_WORK_DIR", os.path.join(tempfile.gettempdir(), "aws-tutorials"))
        )
    )
    pause_seconds: float = Field(default_factory=lambda: float(os.getenv("TUTORIAL_PAUSE", "10")))


class Config(BaseModel):
    """Main configuration object."""

    aws: AWSConfig = Field(default_factory=AWSConfig)
    waiters: WaiterSettings = Field(default_factory=WaiterSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    tutorial: TutorialSettings = Field(default_factory=TutorialSettings)

    # Project settings
    project_name: str = "aws-tutorials"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "dev"))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


# Global configuration instance
config = Config()
