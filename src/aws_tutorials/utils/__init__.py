"""Utility modules for the AWS tutorials."""

from .logger import get_logger, log_banner
from .aws_helpers import (
    get_boto3_client,
    get_account_id,
    error_code,
    is_not_found,
)
from .naming import random_suffix, resource_name, standard_tags

__all__ = [
    "get_logger",
    "log_banner",
    "get_boto3_client",
    "get_account_id",
    "error_code",
    "is_not_found",
    "random_suffix",
    "resource_name",
    "standard_tags",
]
