"""Unit tests for the VPC Lattice getting started tutorial."""

from unittest.mock import Mock

import pytest

from aws_tutorials.core.tutorial import TutorialStatus
from aws_tutorials.exceptions import ResourceStateError
from aws_tutorials.tutorials.vpc_lattice_getting_started import VPCLatticeGettingStarted


def status(value):
    return {"status": value}


@pytest.fixture
def lattice_clients(mock_clients, no_sleep, client_error):
    lattice = mock_clients.setdefault("vpc-lattice", Mock(name="vpc-lattice"))
    ec2 = mock_clients.setdefault("ec2", Mock(name="ec2"))
    not_found = client_error("ResourceNotFoundException")

    lattice.create_service_network.return_value = {"id": "sn-1"}
    lattice.get_service_network.return_value = {"arn": "arn:aws:vpc-lattice:us-east-1:123456789012:servicenetwork/sn-1"}
    lattice.create_service.return_value = {
        "id": "svc-1",
        "dnsEntry": {"domainName": "svc-1.7d67968.vpc-lattice-svcs.us-east-1.on.aws"},
    }
    lattice.get_service.side_effect = [status("CREATE_IN_PROGRESS"), status("ACTIVE"), not_found]
    lattice.create_service_network_service_association.return_value = {"id": "snsa-1"}
    lattice.get_service_network_service_association.side_effect = [
        status("ACTIVE"),
        status("DELETE_IN_PROGRESS"),
        not_found,
    ]
    lattice.create_service_network_vpc_association.return_value = {"id": "snva-1"}
    lattice.get_service_network_vpc_association.side_effect = [status("ACTIVE"), not_found]
    lattice.list_service_network_service_associations.return_value = {
        "items": [{"id": "snsa-1", "serviceName": "test-service-abcd1234", "status": "ACTIVE"}]
    }
    lattice.list_service_network_vpc_associations.return_value = {
        "items": [{"id": "snva-1", "vpcId": "vpc-default", "status": "ACTIVE"}]
    }

    ec2.describe_vpcs.return_value = {"Vpcs": [{"VpcId": "vpc-default"}]}
    ec2.describe_security_groups.return_value = {"SecurityGroups": [{"GroupId": "sg-default"}]}
    return lattice, ec2


class TestVPCLatticeGettingStarted:
    """Test the tutorial flow against mocked clients."""

    def test_full_run(self, test_config, lattice_clients):
        lattice, ec2 = lattice_clients
        tutorial = VPCLatticeGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        assert result.outputs["vpc_id"] == "vpc-default"
        assert result.outputs["service_associations"] == 1
        assert result.outputs["vpc_associations"] == 1
        lattice.create_service_network_service_association.assert_called_once_with(
            serviceIdentifier="svc-1", serviceNetworkIdentifier="sn-1"
        )
        lattice.create_service_network_vpc_association.assert_called_once_with(
            serviceNetworkIdentifier="sn-1", vpcIdentifier="vpc-default", securityGroupIds=["sg-default"]
        )

    def test_associations_deleted_before_service_and_network(self, test_config, lattice_clients):
        lattice, ec2 = lattice_clients
        tutorial = VPCLatticeGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.cleanup.ok
        deletes = [name for name, _, _ in lattice.mock_calls if name.startswith("delete_")]
        assert deletes == [
            "delete_service_network_vpc_association",
            "delete_service_network_service_association",
            "delete_service",
            "delete_service_network",
        ]
        calls = [name for name, _, _ in lattice.mock_calls]
        last_association_poll = max(
            i for i, name in enumerate(calls) if name == "get_service_network_service_association"
        )
        assert last_association_poll < calls.index("delete_service")

    def test_no_default_vpc_skips_vpc_association(self, test_config, lattice_clients):
        lattice, ec2 = lattice_clients
        ec2.describe_vpcs.return_value = {"Vpcs": []}
        lattice.list_service_network_vpc_associations.return_value = {"items": []}
        tutorial = VPCLatticeGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        lattice.create_service_network_vpc_association.assert_not_called()
        assert result.outputs["vpc_associations"] == 0

    def test_failed_service_stops_run(self, test_config, lattice_clients, client_error):
        lattice, ec2 = lattice_clients
        lattice.get_service.side_effect = [status("CREATE_FAILED"), client_error("ResourceNotFoundException")]
        tutorial = VPCLatticeGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert result.failed_step == "Create service"
        assert isinstance(result.error, ResourceStateError)
        lattice.create_service_network_service_association.assert_not_called()
        assert result.cleanup.ok
