"""Unit tests for the RDS getting started tutorial."""

from unittest.mock import Mock, patch

import pytest

from aws_tutorials.core.tutorial import TutorialStatus
from aws_tutorials.exceptions import TutorialError
from aws_tutorials.tutorials.rds_getting_started import RDSGettingStarted

SUBNETS = [
    {"SubnetId": "subnet-a", "AvailabilityZone": "us-east-1a"},
    {"SubnetId": "subnet-b", "AvailabilityZone": "us-east-1b"},
]


@pytest.fixture
def rds_clients(mock_clients):
    rds = mock_clients.setdefault("rds", Mock(name="rds"))
    ec2 = mock_clients.setdefault("ec2", Mock(name="ec2"))

    ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-default"}]}
    ec2.describe_subnets.return_value = {"Subnets": SUBNETS}
    ec2.create_security_group.return_value = {"GroupId": "sg-db"}
    rds.describe_db_instances.return_value = {
        "DBInstances": [
            {
                "DBInstanceIdentifier": "test-db-abcd1234",
                "DBInstanceStatus": "available",
                "Endpoint": {"Address": "test-db.abc.us-east-1.rds.amazonaws.com", "Port": 5432},
                "DBName": "tutorial",
                "Engine": "postgres",
                "EngineVersion": "16.3",
                "MasterUsername": "tutorial_admin",
                "MasterUserSecret": {"SecretArn": "arn:aws:secretsmanager:us-east-1:123456789012:secret:rds"},
            }
        ]
    }
    with patch("aws_tutorials.tutorials.rds_getting_started.lookup_public_ip", return_value="192.0.2.10"):
        yield rds, ec2


class TestRDSGettingStarted:
    """Test the tutorial flow against mocked clients."""

    def test_full_run(self, test_config, rds_clients):
        rds, ec2 = rds_clients
        tutorial = RDSGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        assert result.outputs["endpoint"] == "test-db.abc.us-east-1.rds.amazonaws.com"
        assert result.outputs["port"] == 5432
        assert result.outputs["secret_arn"].endswith(":secret:rds")

        ingress = ec2.authorize_security_group_ingress.call_args.kwargs["IpPermissions"][0]
        assert ingress["FromPort"] == 5432
        assert ingress["IpRanges"][0]["CidrIp"] == "192.0.2.10/32"

        assert rds.create_db_subnet_group.call_args.kwargs["SubnetIds"] == ["subnet-a", "subnet-b"]
        create_kwargs = rds.create_db_instance.call_args.kwargs
        assert create_kwargs["Engine"] == "postgres"
        assert create_kwargs["ManageMasterUserPassword"] is True
        assert "MasterUserPassword" not in create_kwargs
        assert create_kwargs["PubliclyAccessible"] is False
        assert create_kwargs["StorageEncrypted"] is True
        assert create_kwargs["VpcSecurityGroupIds"] == ["sg-db"]
        rds.get_waiter.assert_any_call("db_instance_available")

    def test_cleanup_waits_for_instance_before_subnet_group(self, test_config, rds_clients):
        rds, ec2 = rds_clients
        tutorial = RDSGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.cleanup.ok
        rds.delete_db_instance.assert_called_once_with(
            DBInstanceIdentifier="test-db-abcd1234",
            SkipFinalSnapshot=True,
            DeleteAutomatedBackups=True,
        )
        calls = [name for name, args, _ in rds.mock_calls]
        deleted_waiter = calls.index("get_waiter", calls.index("delete_db_instance"))
        assert deleted_waiter < calls.index("delete_db_subnet_group")
        rds.get_waiter.assert_any_call("db_instance_deleted")
        ec2.delete_security_group.assert_called_once_with(GroupId="sg-db")

    def test_single_zone_vpc_fails_before_creating(self, test_config, rds_clients):
        rds, ec2 = rds_clients
        ec2.describe_subnets.return_value = {"Subnets": SUBNETS[:1]}
        tutorial = RDSGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert result.failed_step == "Find default VPC"
        assert isinstance(result.error, TutorialError)
        assert result.resources == []
        ec2.create_security_group.assert_not_called()

    def test_missing_default_vpc(self, test_config, rds_clients):
        rds, ec2 = rds_clients
        ec2.describe_vpcs.return_value = {"Vpcs": []}
        tutorial = RDSGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert "Default VPC not found" in str(result.error)
