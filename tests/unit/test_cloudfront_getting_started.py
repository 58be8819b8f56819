"""Unit tests for the CloudFront tutorial."""

import json
from unittest.mock import Mock, patch

import pytest

from aws_tutorials.core.tutorial import TutorialStatus
from aws_tutorials.exceptions import VerificationError
from aws_tutorials.tutorials.cloudfront_getting_started import (
    INDEX_HTML,
    CloudFrontGettingStarted,
    distribution_config,
)


@pytest.fixture
def cf_clients(mock_clients, client_error):
    s3 = mock_clients.setdefault("s3", Mock(name="s3"))
    cloudfront = mock_clients.setdefault("cloudfront", Mock(name="cloudfront"))

    s3.head_bucket.side_effect = client_error("404")
    s3.get_paginator.return_value.paginate.return_value = [
        {"Versions": [{"Key": "index.html", "VersionId": "null"}]}
    ]
    s3.delete_objects.return_value = {"Deleted": [{"Key": "index.html"}]}

    cloudfront.create_origin_access_control.return_value = {"OriginAccessControl": {"Id": "OAC1"}}
    cloudfront.create_distribution.return_value = {
        "Distribution": {
            "Id": "EDIST1",
            "ARN": "arn:aws:cloudfront::123456789012:distribution/EDIST1",
            "DomainName": "d111111abcdef8.cloudfront.net",
        }
    }
    cloudfront.get_distribution_config.side_effect = [
        {"DistributionConfig": {"Enabled": True, "Comment": "c"}, "ETag": "ETAG1"},
        {"DistributionConfig": {"Enabled": False, "Comment": "c"}, "ETag": "ETAG3"},
    ]
    cloudfront.update_distribution.return_value = {"ETag": "ETAG2"}
    cloudfront.get_origin_access_control.return_value = {"ETag": "OACETAG"}

    with patch("aws_tutorials.tutorials.cloudfront_getting_started.get_account_id",
               return_value="123456789012"):
        yield s3, cloudfront


@pytest.fixture
def site_fetch():
    with patch("aws_tutorials.tutorials.cloudfront_getting_started.requests.get") as mock_get:
        mock_get.return_value.text = INDEX_HTML
        yield mock_get


class TestDistributionConfig:
    """Test the distribution config builder."""

    def test_single_private_origin(self):
        config = distribution_config("ref-1", "my-bucket", "us-west-2", "OAC1")

        origin = config["Origins"]["Items"][0]
        assert origin["Id"] == "S3-my-bucket"
        assert origin["DomainName"] == "my-bucket.s3.us-west-2.amazonaws.com"
        assert origin["OriginAccessControlId"] == "OAC1"
        assert origin["S3OriginConfig"] == {"OriginAccessIdentity": ""}
        behavior = config["DefaultCacheBehavior"]
        assert behavior["TargetOriginId"] == "S3-my-bucket"
        assert behavior["ViewerProtocolPolicy"] == "redirect-to-https"
        assert config["DefaultRootObject"] == "index.html"


class TestCloudFrontGettingStarted:
    """Test the tutorial flow against mocked clients."""

    def test_full_run(self, test_config, cf_clients, site_fetch):
        s3, cloudfront = cf_clients
        tutorial = CloudFrontGettingStarted(settings=test_config, region="us-east-1", suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        assert result.outputs["url"] == "https://d111111abcdef8.cloudfront.net/index.html"
        uploaded = [call.kwargs["Key"] for call in s3.put_object.call_args_list]
        assert uploaded == ["index.html", "css/styles.css"]

        policy = json.loads(s3.put_bucket_policy.call_args.kwargs["Policy"])
        condition = policy["Statement"][0]["Condition"]["StringEquals"]["AWS:SourceArn"]
        assert condition == "arn:aws:cloudfront::123456789012:distribution/EDIST1"
        cloudfront.get_waiter.assert_any_call("distribution_deployed")

    def test_cleanup_disables_before_delete(self, test_config, cf_clients, site_fetch):
        s3, cloudfront = cf_clients
        tutorial = CloudFrontGettingStarted(settings=test_config, region="us-east-1", suffix="abcd1234")

        result = tutorial.run()

        assert result.cleanup.ok
        update_kwargs = cloudfront.update_distribution.call_args.kwargs
        assert update_kwargs["IfMatch"] == "ETAG1"
        assert update_kwargs["DistributionConfig"]["Enabled"] is False
        cloudfront.delete_distribution.assert_called_once_with(Id="EDIST1", IfMatch="ETAG3")
        cloudfront.delete_origin_access_control.assert_called_once_with(Id="OAC1", IfMatch="OACETAG")
        s3.delete_bucket.assert_called_once_with(Bucket="test-site-abcd1234")

        names = [name for name, _, _ in cloudfront.mock_calls
                 if name in ("delete_distribution", "delete_origin_access_control")]
        assert names == ["delete_distribution", "delete_origin_access_control"]

    def test_wrong_content_fails(self, test_config, cf_clients, site_fetch):
        site_fetch.return_value.text = "<html>Access Denied</html>"
        tutorial = CloudFrontGettingStarted(settings=test_config, region="us-east-1", suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert isinstance(result.error, VerificationError)

    def test_existing_bucket_is_left_alone(self, test_config, cf_clients, site_fetch):
        s3, cloudfront = cf_clients
        s3.head_bucket.side_effect = None
        s3.head_bucket.return_value = {}
        tutorial = CloudFrontGettingStarted(settings=test_config, region="us-east-1", suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert result.failed_step == "Create origin bucket"
        assert result.resources == []
        s3.create_bucket.assert_not_called()
        s3.delete_bucket.assert_not_called()
