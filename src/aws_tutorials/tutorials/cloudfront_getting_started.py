"""
Amazon CloudFront getting started.

Serves a small static site from a private S3 bucket through a CloudFront
distribution that reaches the bucket with Origin Access Control.
"""

import json
import time
from typing import Any, Dict, List, Optional

import requests

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.aws_helpers import create_bucket, empty_bucket, get_account_id
from ..utils.logger import get_logger

logger = get_logger(__name__)

INDEX_HTML = """<!DOCTYPE html>
<html>
<head>
    <title>Hello World</title>
    <link rel="stylesheet" type="text/css" href="css/styles.css">
</head>
<body>
    <h1>Hello world!</h1>
</body>
</html>
"""

STYLES_CSS = """body {
    font-family: Arial, sans-serif;
    margin: 40px;
    background-color: #f5f5f5;
}
h1 {
    color: #333;
    text-align: center;
}
"""

SITE_FILES = {
    "index.html": (INDEX_HTML, "text/html"),
    "css/styles.css": (STYLES_CSS, "text/css"),
}


def distribution_config(
    caller_reference: str,
    bucket_name: str,
    region: str,
    oac_id: str,
) -> Dict[str, Any]:
    """Build a distribution config with a single private S3 origin."""
    origin_id = f"S3-{bucket_name}"
    return {
        "CallerReference": caller_reference,
        "Comment": "CloudFront distribution for tutorial",
        "Enabled": True,
        "DefaultRootObject": "index.html",
        "Origins": {
            "Quantity": 1,
            "Items": [
                {
                    "Id": origin_id,
                    "DomainName": f"{bucket_name}.s3.{region}.amazonaws.com",
                    "S3OriginConfig": {"OriginAccessIdentity": ""},
                    "OriginAccessControlId": oac_id,
                }
            ],
        },
        "DefaultCacheBehavior": {
            "TargetOriginId": origin_id,
            "ViewerProtocolPolicy": "redirect-to-https",
            "AllowedMethods": {
                "Quantity": 2,
                "Items": ["GET", "HEAD"],
                "CachedMethods": {"Quantity": 2, "Items": ["GET", "HEAD"]},
            },
            "DefaultTTL": 86400,
            "MinTTL": 0,
            "MaxTTL": 31536000,
            "Compress": True,
            "ForwardedValues": {"QueryString": False, "Cookies": {"Forward": "none"}},
        },
    }


@register
class CloudFrontGettingStarted(Tutorial):
    slug = "cloudfront-getting-started"
    title = "Amazon CloudFront Getting Started"
    description = "Serve private S3 content through a CloudFront distribution."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.s3 = self.client("s3")
        self.cloudfront = self.client("cloudfront")
        self.sts = self.client("sts")
        self.bucket_name = self.name("site")
        self.oac_id: Optional[str] = None
        self.distribution_id: Optional[str] = None
        self.domain_name: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create origin bucket", self.create_origin_bucket),
            ("Upload site content", self.upload_content),
            ("Create Origin Access Control", self.create_oac),
            ("Create distribution", self.create_distribution),
            ("Restrict bucket to the distribution", self.put_bucket_policy),
            ("Wait for deployment", self.wait_deployed),
            ("Fetch content through CloudFront", self.fetch_content),
        ]

    def create_origin_bucket(self) -> None:
        create_bucket(self.s3, self.bucket_name, self.region)
        self.tracker.track(
            "S3 Bucket",
            self.bucket_name,
            delete=self.delete_bucket,
            hint=f"aws s3 rb s3://{self.bucket_name} --force",
        )
        self.outputs["bucket"] = self.bucket_name

    def delete_bucket(self) -> None:
        empty_bucket(self.s3, self.bucket_name)
        self.s3.delete_bucket(Bucket=self.bucket_name)

    def upload_content(self) -> None:
        for key, (body, content_type) in SITE_FILES.items():
            self.s3.put_object(
                Bucket=self.bucket_name,
                Key=key,
                Body=body.encode("utf-8"),
                ContentType=content_type,
            )
            logger.info(f"Uploaded s3://{self.bucket_name}/{key}")

    def create_oac(self) -> None:
        response = self.cloudfront.create_origin_access_control(
            OriginAccessControlConfig={
                "Name": f"oac-for-{self.bucket_name}",
                "Description": "Origin Access Control for tutorial bucket",
                "SigningProtocol": "sigv4",
                "SigningBehavior": "always",
                "OriginAccessControlOriginType": "s3",
            }
        )
        self.oac_id = response["OriginAccessControl"]["Id"]
        self.tracker.track(
            "CloudFront Origin Access Control",
            self.oac_id,
            delete=self.delete_oac,
            hint=f"aws cloudfront delete-origin-access-control --id {self.oac_id} --if-match <ETag>",
        )
        logger.info(f"Created Origin Access Control with ID: {self.oac_id}")

    def delete_oac(self) -> None:
        etag = self.cloudfront.get_origin_access_control(Id=self.oac_id)["ETag"]
        self.cloudfront.delete_origin_access_control(Id=self.oac_id, IfMatch=etag)

    def create_distribution(self) -> None:
        config = distribution_config(
            caller_reference=f"{self.slug}-{self.suffix}-{int(time.time())}",
            bucket_name=self.bucket_name,
            region=self.region,
            oac_id=self.oac_id,
        )
        response = self.cloudfront.create_distribution(DistributionConfig=config)
        distribution = response["Distribution"]
        self.distribution_id = distribution["Id"]
        self.domain_name = distribution["DomainName"]
        self.tracker.track(
            "CloudFront Distribution",
            self.distribution_id,
            delete=self.delete_distribution,
            hint=(
                f"aws cloudfront update-distribution --id {self.distribution_id} (set Enabled=false), "
                f"then aws cloudfront delete-distribution --id {self.distribution_id} --if-match <ETag>"
            ),
            details={"arn": distribution["ARN"], "domain": self.domain_name},
        )
        self.outputs["distribution_id"] = self.distribution_id
        self.outputs["domain_name"] = self.domain_name
        logger.info(f"Created CloudFront distribution with ID: {self.distribution_id}")
        logger.info(f"CloudFront domain name: {self.domain_name}")

    def delete_distribution(self) -> None:
        """Disable the distribution, wait for it to redeploy, then delete it."""
        response = self.cloudfront.get_distribution_config(Id=self.distribution_id)
        config = response["DistributionConfig"]
        etag = response["ETag"]

        if config.get("Enabled"):
            logger.info(f"Disabling distribution {self.distribution_id}...")
            config["Enabled"] = False
            self.cloudfront.update_distribution(
                Id=self.distribution_id,
                IfMatch=etag,
                DistributionConfig=config,
            )
            self.wait(self.cloudfront, "distribution_deployed",
                      f"distribution {self.distribution_id} to be disabled",
                      Id=self.distribution_id)
            etag = self.cloudfront.get_distribution_config(Id=self.distribution_id)["ETag"]

        self.cloudfront.delete_distribution(Id=self.distribution_id, IfMatch=etag)

    def put_bucket_policy(self) -> None:
        account_id = get_account_id(self.sts)
        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Sid": "AllowCloudFrontServicePrincipal",
                    "Effect": "Allow",
                    "Principal": {"Service": "cloudfront.amazonaws.com"},
                    "Action": "s3:GetObject",
                    "Resource": f"arn:aws:s3:::{self.bucket_name}/*",
                    "Condition": {
                        "StringEquals": {
                            "AWS:SourceArn": f"arn:aws:cloudfront::{account_id}:distribution/{self.distribution_id}"
                        }
                    },
                }
            ],
        }
        self.s3.put_bucket_policy(Bucket=self.bucket_name, Policy=json.dumps(policy))
        logger.info("Bucket policy now only admits the distribution")

    def wait_deployed(self) -> None:
        logger.info("CloudFront deployment usually takes 5-10 minutes")
        self.wait(self.cloudfront, "distribution_deployed",
                  f"distribution {self.distribution_id} to deploy",
                  Id=self.distribution_id)

    def fetch_content(self) -> None:
        url = f"https://{self.domain_name}/index.html"
        response = requests.get(url, timeout=30)
        response.raise_for_status()
        if "Hello world!" not in response.text:
            raise VerificationError(f"Unexpected content served from {url}")
        self.outputs["url"] = url
        logger.info(f"You can access your content at: {url}")
