"""
Amazon VPC Lattice getting started.

Creates a service network and a service, associates the service with the
network, and associates the default VPC (through its default security group)
so clients in that VPC can reach the network's services.
"""

from typing import Callable, List, Optional

from botocore.exceptions import ClientError

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..utils.aws_helpers import is_not_found
from ..utils.logger import get_logger

logger = get_logger(__name__)

FAILED_STATES = {"CREATE_FAILED", "DELETE_FAILED", "UPDATE_FAILED"}


@register
class VPCLatticeGettingStarted(Tutorial):
    slug = "vpc-lattice-getting-started"
    title = "Amazon VPC Lattice Getting Started"
    description = "Create a service network, a service and their associations."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.lattice = self.client("vpc-lattice")
        self.ec2 = self.client("ec2")
        self.network_name = self.name("network")
        self.service_name = self.name("service")
        self.network_id: Optional[str] = None
        self.service_id: Optional[str] = None
        self.service_association_id: Optional[str] = None
        self.vpc_association_id: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create service network", self.create_service_network),
            ("Create service", self.create_service),
            ("Associate service with network", self.associate_service),
            ("Associate default VPC with network", self.associate_vpc),
            ("List associations", self.list_associations),
        ]

    def gone_or(self, fetch: Callable[[], str]) -> Callable[[], str]:
        """Wrap a status fetch so a deleted resource reports GONE."""
        def status() -> str:
            try:
                return fetch()
            except ClientError as e:
                if is_not_found(e):
                    return "GONE"
                raise
        return status

    def create_service_network(self) -> None:
        response = self.lattice.create_service_network(
            name=self.network_name,
            tags={"Name": self.network_name, "Tutorial": self.slug},
        )
        self.network_id = response["id"]
        self.tracker.track(
            "Service Network",
            self.network_id,
            delete=lambda: self.lattice.delete_service_network(serviceNetworkIdentifier=self.network_id),
            hint=f"aws vpc-lattice delete-service-network --service-network-identifier {self.network_id}",
            details={"name": self.network_name},
        )
        network = self.lattice.get_service_network(serviceNetworkIdentifier=self.network_id)
        self.outputs["service_network_arn"] = network["arn"]
        logger.info(f"Created service network: {self.network_id}")

    def service_status(self) -> str:
        return self.lattice.get_service(serviceIdentifier=self.service_id)["status"]

    def create_service(self) -> None:
        response = self.lattice.create_service(
            name=self.service_name,
            tags={"Name": self.service_name, "Tutorial": self.slug},
        )
        self.service_id = response["id"]
        self.tracker.track(
            "Service",
            self.service_id,
            delete=self.delete_service,
            hint=f"aws vpc-lattice delete-service --service-identifier {self.service_id}",
            details={"name": self.service_name},
        )
        self.poll(
            self.service_status,
            target={"ACTIVE"},
            description=f"service {self.service_id}",
            failure_states=FAILED_STATES,
        )
        self.outputs["service_dns"] = response.get("dnsEntry", {}).get("domainName")

    def delete_service(self) -> None:
        self.lattice.delete_service(serviceIdentifier=self.service_id)
        self.poll(self.gone_or(self.service_status), target={"GONE"},
                  description=f"service {self.service_id} to be deleted")

    def service_association_status(self) -> str:
        response = self.lattice.get_service_network_service_association(
            serviceNetworkServiceAssociationIdentifier=self.service_association_id
        )
        return response["status"]

    def associate_service(self) -> None:
        response = self.lattice.create_service_network_service_association(
            serviceIdentifier=self.service_id,
            serviceNetworkIdentifier=self.network_id,
        )
        self.service_association_id = response["id"]
        self.tracker.track(
            "Service Association",
            self.service_association_id,
            delete=self.delete_service_association,
            hint=(
                "aws vpc-lattice delete-service-network-service-association "
                f"--service-network-service-association-identifier {self.service_association_id}"
            ),
        )
        self.poll(
            self.service_association_status,
            target={"ACTIVE"},
            description=f"service association {self.service_association_id}",
            failure_states=FAILED_STATES,
        )

    def delete_service_association(self) -> None:
        self.lattice.delete_service_network_service_association(
            serviceNetworkServiceAssociationIdentifier=self.service_association_id
        )
        self.poll(self.gone_or(self.service_association_status), target={"GONE"},
                  description=f"service association {self.service_association_id} to be deleted",
                  failure_states={"DELETE_FAILED"})

    def vpc_association_status(self) -> str:
        response = self.lattice.get_service_network_vpc_association(
            serviceNetworkVpcAssociationIdentifier=self.vpc_association_id
        )
        return response["status"]

    def associate_vpc(self) -> None:
        vpcs = self.ec2.describe_vpcs(Filters=[{"Name": "isDefault", "Values": ["true"]}])["Vpcs"]
        if not vpcs:
            logger.warning("No default VPC found; skipping the VPC association")
            return
        vpc_id = vpcs[0]["VpcId"]
        groups = self.ec2.describe_security_groups(
            Filters=[
                {"Name": "vpc-id", "Values": [vpc_id]},
                {"Name": "group-name", "Values": ["default"]},
            ]
        )["SecurityGroups"]
        group_ids = [group["GroupId"] for group in groups]

        response = self.lattice.create_service_network_vpc_association(
            serviceNetworkIdentifier=self.network_id,
            vpcIdentifier=vpc_id,
            securityGroupIds=group_ids,
        )
        self.vpc_association_id = response["id"]
        self.tracker.track(
            "VPC Association",
            self.vpc_association_id,
            delete=self.delete_vpc_association,
            hint=(
                "aws vpc-lattice delete-service-network-vpc-association "
                f"--service-network-vpc-association-identifier {self.vpc_association_id}"
            ),
            details={"vpc": vpc_id},
        )
        self.poll(
            self.vpc_association_status,
            target={"ACTIVE"},
            description=f"VPC association {self.vpc_association_id}",
            failure_states=FAILED_STATES,
        )
        self.outputs["vpc_id"] = vpc_id

    def delete_vpc_association(self) -> None:
        self.lattice.delete_service_network_vpc_association(
            serviceNetworkVpcAssociationIdentifier=self.vpc_association_id
        )
        self.poll(self.gone_or(self.vpc_association_status), target={"GONE"},
                  description=f"VPC association {self.vpc_association_id} to be deleted",
                  failure_states={"DELETE_FAILED"})

    def list_associations(self) -> None:
        services = self.lattice.list_service_network_service_associations(
            serviceNetworkIdentifier=self.network_id
        )["items"]
        vpcs = self.lattice.list_service_network_vpc_associations(
            serviceNetworkIdentifier=self.network_id
        )["items"]
        for item in services:
            logger.info(f"Service association {item['id']}: {item.get('serviceName')} ({item['status']})")
        for item in vpcs:
            logger.info(f"VPC association {item['id']}: {item.get('vpcId')} ({item['status']})")
        self.outputs["service_associations"] = len(services)
        self.outputs["vpc_associations"] = len(vpcs)
