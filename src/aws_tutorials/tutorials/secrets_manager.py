"""
AWS Secrets Manager: move a hardcoded secret into Secrets Manager.

Creates an admin role and a runtime role, stores an API key as a secret,
restricts reads to the runtime role with a resource policy, then rotates the
value by hand.
"""

import json
from typing import Any, Dict, List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.aws_helpers import get_account_id
from ..utils.logger import get_logger

logger = get_logger(__name__)

ADMIN_POLICY_ARN = "arn:aws:iam::aws:policy/SecretsManagerReadWrite"

EC2_TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "ec2.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}

INITIAL_SECRET = {"ClientID": "my_client_id", "ClientSecret": "wJalrXUtnFEMI/K7MDENG/bPxRfiCYEXAMPLEKEY"}
UPDATED_SECRET = {"ClientID": "my_new_client_id", "ClientSecret": "bPxRfiCYEXAMPLEKEY/wJalrXUtnFEMI/K7MDENG"}

# Returned while a newly created role is not yet visible as a principal
PROPAGATION_ERROR_CODES = ("MalformedPolicyDocumentException",)


def secret_metadata(response: Dict[str, Any]) -> Dict[str, Any]:
    """Drop the secret value from a GetSecretValue response before logging it."""
    return {k: v for k, v in response.items() if k not in ("SecretString", "SecretBinary", "ResponseMetadata")}


@register
class SecretsManagerTutorial(Tutorial):
    slug = "secrets-manager"
    title = "Move Hardcoded Secrets to AWS Secrets Manager"
    description = "Store, protect, read and update a secret."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.iam = self.client("iam")
        self.secrets = self.client("secretsmanager")
        self.sts = self.client("sts")
        self.admin_role_name = self.name("sm-admin")
        self.runtime_role_name = self.name("sm-runtime")
        self.secret_name = self.name("api-key")
        self.secret_arn: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create IAM roles", self.create_roles),
            ("Create secret", self.create_secret),
            ("Add resource policy", self.add_resource_policy),
            ("Retrieve secret", self.retrieve_secret),
            ("Update secret", self.update_secret),
            ("Verify updated secret", self.verify_secret),
        ]

    def _create_role(self, role_name: str) -> str:
        response = self.iam.create_role(
            RoleName=role_name,
            AssumeRolePolicyDocument=json.dumps(EC2_TRUST_POLICY),
            Tags=self.tags(role_name),
        )
        self.tracker.track(
            "IAM Role",
            role_name,
            delete=lambda: self.iam.delete_role(RoleName=role_name),
            hint=f"aws iam delete-role --role-name {role_name}",
        )
        logger.info(f"Created role: {response['Role']['Arn']}")
        return response["Role"]["Arn"]

    def create_roles(self) -> None:
        self._create_role(self.admin_role_name)
        self.iam.attach_role_policy(RoleName=self.admin_role_name, PolicyArn=ADMIN_POLICY_ARN)
        self.tracker.track(
            "IAM Role Policy Attachment",
            f"{self.admin_role_name}/SecretsManagerReadWrite",
            delete=lambda: self.iam.detach_role_policy(
                RoleName=self.admin_role_name, PolicyArn=ADMIN_POLICY_ARN
            ),
            hint=(
                f"aws iam detach-role-policy --role-name {self.admin_role_name} "
                f"--policy-arn {ADMIN_POLICY_ARN}"
            ),
        )

        self.outputs["runtime_role_arn"] = self._create_role(self.runtime_role_name)
        self.pause("for IAM roles to propagate")

    def create_secret(self) -> None:
        response = self.secrets.create_secret(
            Name=self.secret_name,
            Description="API key for my application",
            SecretString=json.dumps(INITIAL_SECRET),
            Tags=self.tags(self.secret_name),
        )
        self.secret_arn = response["ARN"]
        self.tracker.track(
            "Secret",
            self.secret_name,
            delete=lambda: self.secrets.delete_secret(
                SecretId=self.secret_arn, ForceDeleteWithoutRecovery=True
            ),
            hint=(
                f"aws secretsmanager delete-secret --secret-id {self.secret_name} "
                "--force-delete-without-recovery"
            ),
        )
        self.outputs["secret_arn"] = self.secret_arn
        logger.info(f"Created secret: {self.secret_arn}")

    def add_resource_policy(self) -> None:
        account_id = get_account_id(self.sts)
        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": f"arn:aws:iam::{account_id}:role/{self.runtime_role_name}"},
                    "Action": "secretsmanager:GetSecretValue",
                    "Resource": "*",
                }
            ],
        }
        self.retry(
            self.secrets.put_resource_policy,
            retry_codes=PROPAGATION_ERROR_CODES,
            description="Attaching the resource policy",
            SecretId=self.secret_arn,
            ResourcePolicy=json.dumps(policy),
            BlockPublicPolicy=True,
        )
        logger.info("Resource policy added to secret")

    def _read_secret(self) -> Dict[str, Any]:
        response = self.secrets.get_secret_value(SecretId=self.secret_arn)
        logger.info(f"Secret retrieved successfully. Secret metadata: {secret_metadata(response)}")
        return json.loads(response["SecretString"])

    def retrieve_secret(self) -> None:
        value = self._read_secret()
        if value != INITIAL_SECRET:
            raise VerificationError("Stored secret does not match the value written")

    def update_secret(self) -> None:
        self.secrets.update_secret(SecretId=self.secret_arn, SecretString=json.dumps(UPDATED_SECRET))
        logger.info("Secret updated with new values")

    def verify_secret(self) -> None:
        value = self._read_secret()
        if value != UPDATED_SECRET:
            raise VerificationError("Secret still holds the old value after update")
        self.outputs["client_id"] = value["ClientID"]
