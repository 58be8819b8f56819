"""
Amazon S3 getting started.

Creates a locked-down, versioned, encrypted bucket, then uploads, downloads,
copies, lists and tags objects in it.
"""

from typing import List

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.aws_helpers import create_bucket, empty_bucket
from ..utils.logger import get_logger

logger = get_logger(__name__)

SAMPLE_TEXT = "This is a sample file for the S3 tutorial.\n"
DOCUMENT_TEXT = "This is a document with metadata.\n"
FOLDER_PREFIX = "favorite-files/"


@register
class S3GettingStarted(Tutorial):
    slug = "s3-getting-started"
    title = "Amazon S3 Getting Started"
    description = "Create a bucket, configure it, and work with objects."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.s3 = self.client("s3")
        self.bucket_name = self.name("bucket")

    def steps(self) -> List[Step]:
        return [
            ("Create bucket", self.create_bucket),
            ("Configure bucket", self.configure_bucket),
            ("Upload objects", self.upload_objects),
            ("Download object", self.download_object),
            ("Copy object to a folder", self.copy_object),
            ("List objects", self.list_objects),
            ("Tag bucket", self.tag_bucket),
        ]

    def create_bucket(self) -> None:
        create_bucket(self.s3, self.bucket_name, self.region)
        self.tracker.track(
            "S3 Bucket",
            self.bucket_name,
            delete=self.delete_bucket,
            hint=(
                f"aws s3 rm s3://{self.bucket_name} --recursive && "
                f"aws s3api delete-bucket --bucket {self.bucket_name}"
            ),
        )
        self.outputs["bucket"] = self.bucket_name

    def delete_bucket(self) -> None:
        empty_bucket(self.s3, self.bucket_name)
        self.s3.delete_bucket(Bucket=self.bucket_name)

    def configure_bucket(self) -> None:
        logger.info("Blocking public access...")
        self.s3.put_public_access_block(
            Bucket=self.bucket_name,
            PublicAccessBlockConfiguration={
                "BlockPublicAcls": True,
                "IgnorePublicAcls": True,
                "BlockPublicPolicy": True,
                "RestrictPublicBuckets": True,
            },
        )

        logger.info("Enabling versioning...")
        self.s3.put_bucket_versioning(
            Bucket=self.bucket_name,
            VersioningConfiguration={"Status": "Enabled"},
        )

        logger.info("Setting default encryption...")
        self.s3.put_bucket_encryption(
            Bucket=self.bucket_name,
            ServerSideEncryptionConfiguration={
                "Rules": [{"ApplyServerSideEncryptionByDefault": {"SSEAlgorithm": "AES256"}}]
            },
        )

    def upload_objects(self) -> None:
        sample = self.local_file("sample-file.txt", SAMPLE_TEXT)
        self.s3.upload_file(str(sample), self.bucket_name, "sample-file.txt")
        logger.info("Object uploaded successfully")

        document = self.local_file("sample-document.txt", DOCUMENT_TEXT)
        self.s3.upload_file(
            str(document),
            self.bucket_name,
            "documents/sample-document.txt",
            ExtraArgs={
                "ContentType": "text/plain",
                "Metadata": {"author": "AWSDocumentation", "purpose": "tutorial"},
            },
        )
        logger.info("Object with metadata uploaded successfully")

    def download_object(self) -> None:
        target = self.work_dir / "downloaded-sample-file.txt"
        self.s3.download_file(self.bucket_name, "sample-file.txt", str(target))
        self.track_local_file(target)

        downloaded = target.read_text(encoding="utf-8")
        if downloaded != SAMPLE_TEXT:
            raise VerificationError("Downloaded object does not match the uploaded file")
        logger.info("Object downloaded successfully")

        head = self.s3.head_object(Bucket=self.bucket_name, Key="sample-file.txt")
        self.outputs["sample_version_id"] = head.get("VersionId")
        logger.info(f"Object exists ({head['ContentLength']} bytes)")

    def copy_object(self) -> None:
        logger.info("Creating folder structure...")
        self.s3.put_object(Bucket=self.bucket_name, Key=FOLDER_PREFIX, Body=b"")

        self.s3.copy_object(
            Bucket=self.bucket_name,
            CopySource={"Bucket": self.bucket_name, "Key": "sample-file.txt"},
            Key=f"{FOLDER_PREFIX}sample-file.txt",
        )
        logger.info("Object copied successfully")

    def list_objects(self) -> None:
        response = self.s3.list_objects_v2(Bucket=self.bucket_name)
        keys = [obj["Key"] for obj in response.get("Contents", [])]
        logger.info(f"All objects: {keys}")

        response = self.s3.list_objects_v2(Bucket=self.bucket_name, Prefix=FOLDER_PREFIX)
        folder_keys = [obj["Key"] for obj in response.get("Contents", [])]
        logger.info(f"Objects in {FOLDER_PREFIX}: {folder_keys}")

        self.outputs["keys"] = keys
        self.outputs["folder_keys"] = folder_keys

    def tag_bucket(self) -> None:
        self.s3.put_bucket_tagging(
            Bucket=self.bucket_name,
            Tagging={
                "TagSet": [
                    {"Key": "Project", "Value": "S3Tutorial"},
                    {"Key": "Environment", "Value": "Demo"},
                ]
            },
        )
        logger.info("Tags added successfully")
