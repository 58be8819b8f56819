"""AWS helper functions using Boto3."""

from typing import Any, Optional
import boto3
from botocore.exceptions import ClientError

from ..config import config
from ..exceptions import TutorialError
from .logger import get_logger

logger = get_logger(__name__)

# Error codes meaning the resource is already gone
NOT_FOUND_CODES = frozenset({
    "404",
    "NotFound",
    "NoSuchBucket",
    "NoSuchKey",
    "NoSuchEntity",
    "NoSuchDistribution",
    "NoSuchOriginAccessControl",
    "NotFoundException",
    "ResourceNotFoundException",
    "ResourceNotFoundFault",
    "NonExistentQueue",
    "AWS.SimpleQueueService.NonExistentQueue",
    "InvalidAllocationID.NotFound",
    "InvalidAssociationID.NotFound",
    "InvalidGroup.NotFound",
    "InvalidInstanceID.NotFound",
    "InvalidKeyPair.NotFound",
    "InvalidRouteTableID.NotFound",
    "InvalidSubnetID.NotFound",
    "InvalidVpcID.NotFound",
    "InvalidVpcPeeringConnectionID.NotFound",
    "LexiconNotFoundException",
    "DBInstanceNotFound",
    "DBSubnetGroupNotFoundFault",
    "WAFNonexistentItemException",
})


def get_boto3_client(service_name: str, region: Optional[str] = None) -> Any:
    """
    Get a Boto3 client for the specified AWS service.

    Args:
        service_name: AWS service name (e.g., 's3', 'ec2', 'iam')
        region: AWS region. If None, uses config default.

    Returns:
        Boto3 client instance.
    """
    region = region or config.aws.region
    logger.debug(f"Creating Boto3 client for {service_name} in {region}")
    return boto3.client(service_name, region_name=region)


def get_account_id(sts_client: Any) -> str:
    """Return the account ID of the active credentials."""
    if config.aws.account_id:
        return config.aws.account_id
    return sts_client.get_caller_identity()["Account"]


def error_code(exc: BaseException) -> str:
    """
    Extract the service error code from an exception.

    Args:
        exc: Any exception

    Returns:
        The ``Error.Code`` of a ClientError, or an empty string.
    """
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code", ""))
    return ""


def is_not_found(exc: BaseException) -> bool:
    """Return True if the exception says the target resource does not exist."""
    code = error_code(exc)
    return code in NOT_FOUND_CODES or code.endswith(".NotFound")


def check_s3_bucket_exists(s3_client: Any, bucket: str) -> bool:
    """
    Check if an S3 bucket exists and is accessible.

    Args:
        s3_client: Boto3 S3 client
        bucket: S3 bucket name

    Returns:
        True if bucket exists and is accessible, False otherwise.
    """
    try:
        s3_client.head_bucket(Bucket=bucket)
        logger.info(f"Bucket {bucket} exists and is accessible")
        return True
    except ClientError as e:
        if is_not_found(e):
            logger.info(f"Bucket {bucket} does not exist")
        else:
            logger.error(f"Error checking bucket {bucket}: {e}")
        return False


def create_bucket(s3_client: Any, bucket: str, region: str) -> None:
    """
    Create an S3 bucket in the given region.

    us-east-1 rejects an explicit LocationConstraint, every other region
    requires one.

    Raises:
        TutorialError: If the bucket already exists, so a bucket this run did
            not create is never tracked for deletion.
    """
    if check_s3_bucket_exists(s3_client, bucket):
        raise TutorialError(f"Bucket {bucket} already exists")
    if region == "us-east-1":
        s3_client.create_bucket(Bucket=bucket)
    else:
        s3_client.create_bucket(
            Bucket=bucket,
            CreateBucketConfiguration={"LocationConstraint": region},
        )
    logger.info(f"Created bucket: {bucket}")


def empty_bucket(s3_client: Any, bucket: str) -> int:
    """
    Delete every object version and delete marker from a bucket.

    Args:
        s3_client: Boto3 S3 client
        bucket: S3 bucket name

    Returns:
        Number of versions and markers deleted.
    """
    logger.info(f"Deleting all object versions from bucket {bucket}...")

    to_delete = []
    paginator = s3_client.get_paginator("list_object_versions")
    for page in paginator.paginate(Bucket=bucket):
        for entry in page.get("Versions", []) + page.get("DeleteMarkers", []):
            to_delete.append({"Key": entry["Key"], "VersionId": entry["VersionId"]})

    deleted_count = 0
    batch_size = 1000

    for i in range(0, len(to_delete), batch_size):
        batch = to_delete[i:i + batch_size]
        response = s3_client.delete_objects(
            Bucket=bucket,
            Delete={"Objects": batch, "Quiet": False},
        )
        deleted_count += len(response.get("Deleted", []))

        if response.get("Errors"):
            logger.warning(f"Some versions could not be deleted: {response['Errors']}")

    logger.info(f"Deleted {deleted_count} versions from {bucket}")
    return deleted_count
