"""
Amazon EC2 basics.

Launches an Amazon Linux 2023 instance with IMDSv2 and an encrypted root
volume, stops and starts it, and shows that an Elastic IP survives a restart
while the auto-assigned public IP does not.
"""

import os
from typing import List, Optional

import requests

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import TutorialError, VerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

CHECKIP_URL = "https://checkip.amazonaws.com"
AMI_PARAMETER_PATH = "/aws/service/ami-amazon-linux-latest"
AMI_NAME_FRAGMENT = "al2023-ami-kernel-default-x86_64"
INSTANCE_TYPE = "t2.micro"


def lookup_public_ip(timeout: int = 10) -> str:
    """Return the caller's public IPv4 address."""
    response = requests.get(CHECKIP_URL, timeout=timeout)
    response.raise_for_status()
    return response.text.strip()


@register
class EC2Basics(Tutorial):
    slug = "ec2-basics"
    title = "Amazon EC2 Basics"
    description = "Launch, restart and re-address an EC2 instance."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.ec2 = self.client("ec2")
        self.ssm = self.client("ssm")
        self.key_name = self.name("key")
        self.group_name = self.name("sg")
        self.instance_id: Optional[str] = None
        self.allocation_id: Optional[str] = None
        self.elastic_ip: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create key pair", self.create_key_pair),
            ("Create security group", self.create_security_group),
            ("Find Amazon Linux 2023 AMI", self.find_ami),
            ("Launch instance", self.launch_instance),
            ("Stop and start instance", self.restart_instance),
            ("Allocate and associate Elastic IP", self.associate_elastic_ip),
            ("Verify Elastic IP persists", self.verify_elastic_ip),
        ]

    def create_key_pair(self) -> None:
        response = self.ec2.create_key_pair(KeyName=self.key_name)
        self.tracker.track(
            "Key Pair",
            self.key_name,
            delete=lambda: self.ec2.delete_key_pair(KeyName=self.key_name),
            hint=f"aws ec2 delete-key-pair --key-name {self.key_name}",
        )

        key_file = self.local_file(f"{self.key_name}.pem", response["KeyMaterial"])
        os.chmod(key_file, 0o400)
        self.outputs["key_file"] = str(key_file)
        logger.info(f"Created key pair and saved to {key_file}")

    def create_security_group(self) -> None:
        response = self.ec2.create_security_group(
            GroupName=self.group_name,
            Description="Security group for EC2 tutorial",
        )
        group_id = response["GroupId"]
        self.tracker.track(
            "Security Group",
            group_id,
            delete=lambda: self.ec2.delete_security_group(GroupId=group_id),
            hint=f"aws ec2 delete-security-group --group-id {group_id}",
        )
        self.outputs["security_group_id"] = group_id
        logger.info(f"Created security group: {group_id}")

        my_ip = lookup_public_ip()
        logger.info(f"Adding SSH ingress rule for IP {my_ip}...")
        self.ec2.authorize_security_group_ingress(
            GroupId=group_id,
            IpPermissions=[
                {
                    "IpProtocol": "tcp",
                    "FromPort": 22,
                    "ToPort": 22,
                    "IpRanges": [{"CidrIp": f"{my_ip}/32", "Description": "SSH from tutorial host"}],
                }
            ],
        )

    def find_ami(self) -> None:
        paginator = self.ssm.get_paginator("get_parameters_by_path")
        ami_id = None
        for page in paginator.paginate(Path=AMI_PARAMETER_PATH):
            for parameter in page.get("Parameters", []):
                if AMI_NAME_FRAGMENT in parameter["Name"]:
                    ami_id = parameter["Value"]
                    break
            if ami_id:
                break
        if not ami_id:
            raise TutorialError("Failed to find Amazon Linux 2023 AMI")

        image = self.ec2.describe_images(ImageIds=[ami_id])["Images"][0]
        self.outputs["ami_id"] = ami_id
        logger.info(f"Selected AMI: {ami_id} ({image['Architecture']})")

    def launch_instance(self) -> None:
        logger.info("Launching EC2 instance with IMDSv2 and encryption enabled...")
        response = self.ec2.run_instances(
            ImageId=self.outputs["ami_id"],
            InstanceType=INSTANCE_TYPE,
            KeyName=self.key_name,
            SecurityGroupIds=[self.outputs["security_group_id"]],
            MetadataOptions={"HttpTokens": "required", "HttpEndpoint": "enabled"},
            BlockDeviceMappings=[{"DeviceName": "/dev/xvda", "Ebs": {"Encrypted": True}}],
            TagSpecifications=[
                {"ResourceType": "instance", "Tags": self.tags(self.name("instance"))}
            ],
            MinCount=1,
            MaxCount=1,
        )
        self.instance_id = response["Instances"][0]["InstanceId"]
        self.tracker.track(
            "EC2 Instance",
            self.instance_id,
            delete=self.terminate_instance,
            hint=f"aws ec2 terminate-instances --instance-ids {self.instance_id}",
        )
        self.outputs["instance_id"] = self.instance_id

        self.wait(self.ec2, "instance_running", f"instance {self.instance_id} to run",
                  InstanceIds=[self.instance_id])
        public_ip = self.public_ip()
        logger.info(f"Instance public IP: {public_ip}")
        logger.info(f"To connect, run: ssh -i {self.outputs['key_file']} ec2-user@{public_ip}")

    def terminate_instance(self) -> None:
        self.ec2.terminate_instances(InstanceIds=[self.instance_id])
        self.wait(self.ec2, "instance_terminated", f"instance {self.instance_id} to terminate",
                  InstanceIds=[self.instance_id])

    def public_ip(self) -> Optional[str]:
        response = self.ec2.describe_instances(InstanceIds=[self.instance_id])
        return response["Reservations"][0]["Instances"][0].get("PublicIpAddress")

    def stop_and_start(self) -> None:
        logger.info(f"Stopping instance {self.instance_id}...")
        self.ec2.stop_instances(InstanceIds=[self.instance_id])
        self.wait(self.ec2, "instance_stopped", f"instance {self.instance_id} to stop",
                  InstanceIds=[self.instance_id])

        logger.info("Instance stopped. Starting instance again...")
        self.ec2.start_instances(InstanceIds=[self.instance_id])
        self.wait(self.ec2, "instance_running", f"instance {self.instance_id} to run",
                  InstanceIds=[self.instance_id])

    def restart_instance(self) -> None:
        self.stop_and_start()
        new_ip = self.public_ip()
        self.outputs["restarted_public_ip"] = new_ip
        logger.info(f"Instance restarted with new public IP: {new_ip}")

    def associate_elastic_ip(self) -> None:
        allocation = self.ec2.allocate_address(Domain="vpc")
        self.allocation_id = allocation["AllocationId"]
        self.elastic_ip = allocation["PublicIp"]
        self.tracker.track(
            "Elastic IP Allocation",
            self.allocation_id,
            delete=lambda: self.ec2.release_address(AllocationId=self.allocation_id),
            hint=f"aws ec2 release-address --allocation-id {self.allocation_id}",
            details={"ip": self.elastic_ip},
        )
        logger.info(f"Allocated Elastic IP: {self.elastic_ip} with ID: {self.allocation_id}")

        association = self.ec2.associate_address(
            InstanceId=self.instance_id,
            AllocationId=self.allocation_id,
        )
        association_id = association["AssociationId"]
        self.tracker.track(
            "Elastic IP Association",
            association_id,
            delete=lambda: self.ec2.disassociate_address(AssociationId=association_id),
            hint=f"aws ec2 disassociate-address --association-id {association_id}",
        )
        self.outputs["elastic_ip"] = self.elastic_ip
        logger.info(f"Associated Elastic IP with instance. Association ID: {association_id}")

    def verify_elastic_ip(self) -> None:
        self.stop_and_start()
        current_ip = self.public_ip()
        logger.info(f"Current public IP address: {current_ip}")
        logger.info(f"Elastic IP address: {self.elastic_ip}")
        if current_ip != self.elastic_ip:
            raise VerificationError("The Elastic IP is not associated with the instance")
        logger.info("Success! The Elastic IP is still associated with your instance.")
