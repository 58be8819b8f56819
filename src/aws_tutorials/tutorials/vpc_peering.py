"""
Amazon VPC peering.

Creates two VPCs with a subnet and route table each, peers them, and routes
each VPC's traffic for the other's CIDR through the peering connection.
"""

from typing import Dict, List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..utils.logger import get_logger

logger = get_logger(__name__)

VPC_CIDRS = {"vpc1": "10.1.0.0/16", "vpc2": "10.2.0.0/16"}
SUBNET_CIDRS = {"vpc1": "10.1.1.0/24", "vpc2": "10.2.1.0/24"}


@register
class VPCPeering(Tutorial):
    slug = "vpc-peering"
    title = "Amazon VPC Peering"
    description = "Peer two VPCs and route traffic between them."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.ec2 = self.client("ec2")
        self.vpc_ids: Dict[str, str] = {}
        self.subnet_ids: Dict[str, str] = {}
        self.route_table_ids: Dict[str, str] = {}
        self.peering_id: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create VPCs", self.create_vpcs),
            ("Create subnets", self.create_subnets),
            ("Create route tables", self.create_route_tables),
            ("Create peering connection", self.create_peering),
            ("Accept peering connection", self.accept_peering),
            ("Add peering routes", self.add_routes),
        ]

    def create_vpcs(self) -> None:
        for key, cidr in VPC_CIDRS.items():
            name = self.name(key)
            response = self.ec2.create_vpc(
                CidrBlock=cidr,
                TagSpecifications=[{"ResourceType": "vpc", "Tags": self.tags(name)}],
            )
            vpc_id = response["Vpc"]["VpcId"]
            self.vpc_ids[key] = vpc_id
            self.tracker.track(
                "VPC",
                vpc_id,
                delete=lambda vpc_id=vpc_id: self.ec2.delete_vpc(VpcId=vpc_id),
                hint=f"aws ec2 delete-vpc --vpc-id {vpc_id}",
                details={"cidr": cidr},
            )
            logger.info(f"{name} created with ID: {vpc_id} ({cidr})")

        self.wait(self.ec2, "vpc_available", "VPCs to be available",
                  VpcIds=list(self.vpc_ids.values()))
        self.outputs["vpc_ids"] = dict(self.vpc_ids)

    def create_subnets(self) -> None:
        for key, cidr in SUBNET_CIDRS.items():
            response = self.ec2.create_subnet(
                VpcId=self.vpc_ids[key],
                CidrBlock=cidr,
                TagSpecifications=[{"ResourceType": "subnet", "Tags": self.tags(self.name(f"{key}-subnet"))}],
            )
            subnet_id = response["Subnet"]["SubnetId"]
            self.subnet_ids[key] = subnet_id
            self.tracker.track(
                "Subnet",
                subnet_id,
                delete=lambda subnet_id=subnet_id: self.ec2.delete_subnet(SubnetId=subnet_id),
                hint=f"aws ec2 delete-subnet --subnet-id {subnet_id}",
            )
            logger.info(f"Subnet {subnet_id} created in {self.vpc_ids[key]} ({cidr})")

    def create_route_tables(self) -> None:
        for key, vpc_id in self.vpc_ids.items():
            response = self.ec2.create_route_table(
                VpcId=vpc_id,
                TagSpecifications=[{"ResourceType": "route-table", "Tags": self.tags(self.name(f"{key}-rt"))}],
            )
            route_table_id = response["RouteTable"]["RouteTableId"]
            self.route_table_ids[key] = route_table_id
            self.tracker.track(
                "Route Table",
                route_table_id,
                delete=lambda rt=route_table_id: self.ec2.delete_route_table(RouteTableId=rt),
                hint=f"aws ec2 delete-route-table --route-table-id {route_table_id}",
            )

            association = self.ec2.associate_route_table(
                RouteTableId=route_table_id,
                SubnetId=self.subnet_ids[key],
            )
            association_id = association["AssociationId"]
            self.tracker.track(
                "Route Table Association",
                association_id,
                delete=lambda a=association_id: self.ec2.disassociate_route_table(AssociationId=a),
                hint=f"aws ec2 disassociate-route-table --association-id {association_id}",
            )
            logger.info(f"Route table {route_table_id} associated with {self.subnet_ids[key]}")

    def create_peering(self) -> None:
        response = self.ec2.create_vpc_peering_connection(
            VpcId=self.vpc_ids["vpc1"],
            PeerVpcId=self.vpc_ids["vpc2"],
            TagSpecifications=[
                {"ResourceType": "vpc-peering-connection", "Tags": self.tags(self.name("peering"))}
            ],
        )
        self.peering_id = response["VpcPeeringConnection"]["VpcPeeringConnectionId"]
        self.tracker.track(
            "VPC Peering Connection",
            self.peering_id,
            delete=lambda: self.ec2.delete_vpc_peering_connection(VpcPeeringConnectionId=self.peering_id),
            hint=f"aws ec2 delete-vpc-peering-connection --vpc-peering-connection-id {self.peering_id}",
        )
        self.outputs["peering_id"] = self.peering_id
        logger.info(f"Peering connection requested: {self.peering_id}")

        self.wait(self.ec2, "vpc_peering_connection_exists", f"peering connection {self.peering_id}",
                  VpcPeeringConnectionIds=[self.peering_id])

    def peering_status(self) -> str:
        response = self.ec2.describe_vpc_peering_connections(VpcPeeringConnectionIds=[self.peering_id])
        return response["VpcPeeringConnections"][0]["Status"]["Code"]

    def accept_peering(self) -> None:
        self.ec2.accept_vpc_peering_connection(VpcPeeringConnectionId=self.peering_id)
        self.outputs["peering_status"] = self.poll(
            self.peering_status,
            target={"active"},
            description=f"peering connection {self.peering_id} to become active",
            failure_states={"failed", "rejected", "expired", "deleted"},
        )

    def add_routes(self) -> None:
        routes = [
            ("vpc1", VPC_CIDRS["vpc2"]),
            ("vpc2", VPC_CIDRS["vpc1"]),
        ]
        for key, destination in routes:
            route_table_id = self.route_table_ids[key]
            self.ec2.create_route(
                RouteTableId=route_table_id,
                DestinationCidrBlock=destination,
                VpcPeeringConnectionId=self.peering_id,
            )
            self.tracker.track(
                "Route",
                f"{route_table_id}:{destination}",
                delete=lambda rt=route_table_id, dest=destination: self.ec2.delete_route(
                    RouteTableId=rt, DestinationCidrBlock=dest
                ),
                hint=(
                    f"aws ec2 delete-route --route-table-id {route_table_id} "
                    f"--destination-cidr-block {destination}"
                ),
            )
            logger.info(f"Route to {destination} via {self.peering_id} added to {route_table_id}")
