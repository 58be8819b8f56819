"""
Runnable tutorials.

Importing this package registers every tutorial with the registry.
"""

from .cloudfront_getting_started import CloudFrontGettingStarted
from .dynamodb_getting_started import DynamoDBGettingStarted
from .ec2_basics import EC2Basics
from .polly_getting_started import PollyGettingStarted
from .rds_getting_started import RDSGettingStarted
from .redshift_serverless import RedshiftServerless
from .s3_getting_started import S3GettingStarted
from .secrets_manager import SecretsManagerTutorial
from .sns_getting_started import SNSGettingStarted
from .vpc_lattice_getting_started import VPCLatticeGettingStarted
from .vpc_peering import VPCPeering
from .waf_getting_started import WAFGettingStarted

__all__ = [
    "CloudFrontGettingStarted",
    "DynamoDBGettingStarted",
    "EC2Basics",
    "PollyGettingStarted",
    "RDSGettingStarted",
    "RedshiftServerless",
    "S3GettingStarted",
    "SecretsManagerTutorial",
    "SNSGettingStarted",
    "VPCLatticeGettingStarted",
    "VPCPeering",
    "WAFGettingStarted",
]
