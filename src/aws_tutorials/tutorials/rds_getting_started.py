"""
Amazon RDS getting started.

Creates a PostgreSQL instance in the default VPC that only the tutorial host
can reach. RDS generates the master password and keeps it in Secrets Manager.

Resources Created:
- Security group allowing PostgreSQL from the caller's IP
- DB subnet group over the default VPC's subnets
- RDS PostgreSQL instance (db.t4g.micro, 20 GB gp3, encrypted)
"""

from typing import Any, Dict, List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import TutorialError
from ..utils.logger import get_logger
from .ec2_basics import lookup_public_ip

logger = get_logger(__name__)

ENGINE = "postgres"
INSTANCE_CLASS = "db.t4g.micro"
ALLOCATED_STORAGE = 20
DATABASE_NAME = "tutorial"
MASTER_USERNAME = "tutorial_admin"
PORT = 5432
BACKUP_RETENTION_DAYS = 7


@register
class RDSGettingStarted(Tutorial):
    slug = "rds-getting-started"
    title = "Amazon RDS Getting Started"
    description = "Create a private PostgreSQL instance reachable from this host."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rds = self.client("rds")
        self.ec2 = self.client("ec2")
        self.instance_identifier = self.name("db")
        self.subnet_group_name = self.name("db-subnets")
        self.group_name = self.name("db-sg")
        self.vpc_id: Optional[str] = None
        self.subnet_ids: List[str] = []
        self.security_group_id: Optional[str] = None
        self.instance_info: Optional[Dict[str, Any]] = None

    def steps(self) -> List[Step]:
        return [
            ("Find default VPC", self.find_default_vpc),
            ("Create security group", self.create_security_group),
            ("Create DB subnet group", self.create_subnet_group),
            ("Create DB instance", self.create_instance),
            ("Wait for DB instance", self.wait_for_instance_available),
            ("Show connection details", self.print_summary),
        ]

    def find_default_vpc(self) -> None:
        vpcs = self.ec2.describe_vpcs(Filters=[{"Name": "isDefault", "Values": ["true"]}])
        if not vpcs["Vpcs"]:
            raise TutorialError("Default VPC not found")
        self.vpc_id = vpcs["Vpcs"][0]["VpcId"]
        logger.info(f"Using VPC: {self.vpc_id}")

        subnets = self.ec2.describe_subnets(Filters=[{"Name": "vpc-id", "Values": [self.vpc_id]}])["Subnets"]
        zones = {subnet["AvailabilityZone"] for subnet in subnets}
        if len(zones) < 2:
            raise TutorialError(f"VPC {self.vpc_id} needs subnets in at least two availability zones")
        self.subnet_ids = [subnet["SubnetId"] for subnet in subnets]
        logger.info(f"Found {len(self.subnet_ids)} subnets in {len(zones)} availability zones")

    def create_security_group(self) -> None:
        response = self.ec2.create_security_group(
            GroupName=self.group_name,
            Description=f"Security group for {self.instance_identifier}",
            VpcId=self.vpc_id,
        )
        group_id = response["GroupId"]
        self.security_group_id = group_id
        self.tracker.track(
            "Security Group",
            group_id,
            delete=lambda: self.ec2.delete_security_group(GroupId=group_id),
            hint=f"aws ec2 delete-security-group --group-id {group_id}",
        )
        logger.info(f"Created security group: {group_id}")

        my_ip = lookup_public_ip()
        self.ec2.authorize_security_group_ingress(
            GroupId=group_id,
            IpPermissions=[
                {
                    "IpProtocol": "tcp",
                    "FromPort": PORT,
                    "ToPort": PORT,
                    "IpRanges": [{"CidrIp": f"{my_ip}/32", "Description": "PostgreSQL access"}],
                }
            ],
        )
        logger.info(f"Added inbound rule for port {PORT} from {my_ip}")

    def create_subnet_group(self) -> None:
        self.rds.create_db_subnet_group(
            DBSubnetGroupName=self.subnet_group_name,
            DBSubnetGroupDescription="Subnet group for the RDS tutorial",
            SubnetIds=self.subnet_ids,
            Tags=self.tags(self.subnet_group_name),
        )
        self.tracker.track(
            "DB Subnet Group",
            self.subnet_group_name,
            delete=lambda: self.rds.delete_db_subnet_group(DBSubnetGroupName=self.subnet_group_name),
            hint=f"aws rds delete-db-subnet-group --db-subnet-group-name {self.subnet_group_name}",
        )
        logger.info(f"Created DB subnet group: {self.subnet_group_name}")

    def create_instance(self) -> None:
        logger.info(f"Creating RDS instance: {self.instance_identifier}")
        logger.info(f"  Database: {DATABASE_NAME}")
        logger.info(f"  Instance class: {INSTANCE_CLASS}")
        logger.info(f"  Storage: {ALLOCATED_STORAGE} GB")
        logger.info(f"  Port: {PORT}")

        self.rds.create_db_instance(
            DBInstanceIdentifier=self.instance_identifier,
            DBName=DATABASE_NAME,
            DBInstanceClass=INSTANCE_CLASS,
            Engine=ENGINE,
            MasterUsername=MASTER_USERNAME,
            ManageMasterUserPassword=True,
            AllocatedStorage=ALLOCATED_STORAGE,
            Port=PORT,
            VpcSecurityGroupIds=[self.security_group_id],
            DBSubnetGroupName=self.subnet_group_name,
            PubliclyAccessible=False,
            MultiAZ=False,
            BackupRetentionPeriod=BACKUP_RETENTION_DAYS,
            StorageType="gp3",
            StorageEncrypted=True,
            EnableCloudwatchLogsExports=["postgresql"],
            DeletionProtection=False,
            Tags=self.tags(self.instance_identifier),
        )
        self.tracker.track(
            "RDS Instance",
            self.instance_identifier,
            delete=self.delete_instance,
            hint=(
                f"aws rds delete-db-instance --db-instance-identifier {self.instance_identifier} "
                "--skip-final-snapshot"
            ),
        )
        logger.info("RDS instance creation initiated")

    def delete_instance(self) -> None:
        """Delete the instance and wait; the subnet group cannot go while it exists."""
        self.rds.delete_db_instance(
            DBInstanceIdentifier=self.instance_identifier,
            SkipFinalSnapshot=True,
            DeleteAutomatedBackups=True,
        )
        self.wait(self.rds, "db_instance_deleted", f"instance {self.instance_identifier} to be deleted",
                  DBInstanceIdentifier=self.instance_identifier)

    def wait_for_instance_available(self) -> None:
        logger.info("Instances usually take 10-15 minutes to become available")
        self.wait(self.rds, "db_instance_available", f"instance {self.instance_identifier}",
                  DBInstanceIdentifier=self.instance_identifier)
        self.instance_info = self.get_instance_info()

    def get_instance_info(self) -> Dict[str, Any]:
        response = self.rds.describe_db_instances(DBInstanceIdentifier=self.instance_identifier)
        instance = response["DBInstances"][0]
        return {
            "identifier": instance["DBInstanceIdentifier"],
            "status": instance["DBInstanceStatus"],
            "endpoint": instance.get("Endpoint", {}).get("Address", "N/A"),
            "port": instance.get("Endpoint", {}).get("Port", PORT),
            "database": instance.get("DBName", DATABASE_NAME),
            "engine": instance["Engine"],
            "engine_version": instance["EngineVersion"],
            "master_username": instance["MasterUsername"],
            "secret_arn": instance.get("MasterUserSecret", {}).get("SecretArn"),
        }

    def print_summary(self) -> None:
        info = self.instance_info or self.get_instance_info()
        self.outputs.update(
            endpoint=info["endpoint"],
            port=info["port"],
            secret_arn=info["secret_arn"],
        )
        logger.info(f"Identifier:        {info['identifier']}")
        logger.info(f"Status:            {info['status']}")
        logger.info(f"Endpoint:          {info['endpoint']}")
        logger.info(f"Port:              {info['port']}")
        logger.info(f"Database:          {info['database']}")
        logger.info(f"Engine:            {info['engine']} {info['engine_version']}")
        logger.info(f"Master Username:   {info['master_username']}")
        logger.info(f"Password secret:   {info['secret_arn']}")
        logger.info(
            f"Connect with: psql -h {info['endpoint']} -p {info['port']} "
            f"-U {info['master_username']} -d {info['database']}"
        )
