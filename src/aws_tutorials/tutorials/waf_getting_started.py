"""
AWS WAF getting started.

Creates a CloudFront-scoped web ACL, adds a string match rule on the
User-Agent header and the AWS managed common rule set, both in count mode,
and reads the ACL back to confirm the rules are in place.

CloudFront-scoped WAF resources only exist in us-east-1, so this tutorial
always runs there.
"""

from typing import Any, Dict, List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SCOPE = "CLOUDFRONT"
WAF_REGION = "us-east-1"
USER_AGENT = "MyAgent"
MANAGED_RULE_GROUP = "AWSManagedRulesCommonRuleSet"
LOCK_CONFLICT_CODES = {"WAFOptimisticLockException"}


def visibility(metric_name: str) -> Dict[str, Any]:
    return {
        "SampledRequestsEnabled": True,
        "CloudWatchMetricsEnabled": True,
        "MetricName": metric_name,
    }


def user_agent_rule(search_string: str = USER_AGENT) -> Dict[str, Any]:
    """Rule counting requests whose User-Agent is exactly ``search_string``."""
    return {
        "Name": "UserAgentRule",
        "Priority": 0,
        "Statement": {
            "ByteMatchStatement": {
                "SearchString": search_string.encode("utf-8"),
                "FieldToMatch": {"SingleHeader": {"Name": "user-agent"}},
                "TextTransformations": [{"Priority": 0, "Type": "NONE"}],
                "PositionalConstraint": "EXACTLY",
            }
        },
        "Action": {"Count": {}},
        "VisibilityConfig": visibility("UserAgentRuleMetric"),
    }


def managed_rule_group(name: str = MANAGED_RULE_GROUP) -> Dict[str, Any]:
    """Rule evaluating an AWS managed rule group with its actions overridden to count."""
    return {
        "Name": f"AWS-{name}",
        "Priority": 1,
        "Statement": {"ManagedRuleGroupStatement": {"VendorName": "AWS", "Name": name}},
        "OverrideAction": {"Count": {}},
        "VisibilityConfig": visibility(f"AWS-{name}"),
    }


@register
class WAFGettingStarted(Tutorial):
    slug = "waf-getting-started"
    title = "AWS WAF Getting Started"
    description = "Create a web ACL with a string match rule and managed rules."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        if self.region != WAF_REGION:
            logger.info(f"CloudFront web ACLs live in {WAF_REGION}; ignoring region {self.region}")
            self.region = WAF_REGION
        self.waf = self.client("wafv2")
        self.acl_name = self.name("web-acl")
        self.metric_name = self.name("web-acl-metrics", alphanumeric=True)
        self.acl_id: Optional[str] = None
        self.acl_arn: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create web ACL", self.create_web_acl),
            ("Add string match rule", self.add_user_agent_rule),
            ("Add AWS managed rules", self.add_managed_rules),
            ("Verify web ACL rules", self.verify_rules),
        ]

    def create_web_acl(self) -> None:
        response = self.waf.create_web_acl(
            Name=self.acl_name,
            Scope=SCOPE,
            DefaultAction={"Allow": {}},
            VisibilityConfig=visibility(self.metric_name),
            Tags=self.tags(self.acl_name),
        )
        summary = response["Summary"]
        self.acl_id = summary["Id"]
        self.acl_arn = summary["ARN"]
        self.tracker.track(
            "WAF Web ACL",
            self.acl_name,
            delete=self.delete_web_acl,
            hint=(
                f"aws wafv2 delete-web-acl --name {self.acl_name} --scope {SCOPE} "
                f"--id {self.acl_id} --lock-token <token> --region {WAF_REGION}"
            ),
            details={"id": self.acl_id},
        )
        self.outputs["web_acl_arn"] = self.acl_arn
        logger.info(f"Created web ACL: {self.acl_arn}")

    def get_web_acl(self) -> Dict[str, Any]:
        return self.waf.get_web_acl(Name=self.acl_name, Scope=SCOPE, Id=self.acl_id)

    def delete_web_acl(self) -> None:
        lock_token = self.get_web_acl()["LockToken"]
        self.waf.delete_web_acl(Name=self.acl_name, Scope=SCOPE, Id=self.acl_id, LockToken=lock_token)

    def update_rules(self, rules: List[Dict[str, Any]]) -> None:
        """Replace the ACL's rules using the current lock token."""
        lock_token = self.get_web_acl()["LockToken"]
        self.waf.update_web_acl(
            Name=self.acl_name,
            Scope=SCOPE,
            Id=self.acl_id,
            LockToken=lock_token,
            DefaultAction={"Allow": {}},
            Rules=rules,
            VisibilityConfig=visibility(self.metric_name),
        )

    def add_user_agent_rule(self) -> None:
        self.retry(
            self.update_rules,
            [user_agent_rule()],
            retry_codes=LOCK_CONFLICT_CODES,
            description="Adding string match rule",
        )
        logger.info(f"Added rule counting requests with User-Agent {USER_AGENT}")

    def add_managed_rules(self) -> None:
        self.retry(
            self.update_rules,
            [user_agent_rule(), managed_rule_group()],
            retry_codes=LOCK_CONFLICT_CODES,
            description="Adding AWS managed rules",
        )
        logger.info(f"Added managed rule group {MANAGED_RULE_GROUP}")

    def verify_rules(self) -> None:
        acl = self.get_web_acl()["WebACL"]
        names = [rule["Name"] for rule in acl.get("Rules", [])]
        expected = [user_agent_rule()["Name"], managed_rule_group()["Name"]]
        if names != expected:
            raise VerificationError(f"Web ACL rules are {names}, expected {expected}")
        self.outputs["rules"] = names
        logger.info(f"Web ACL {self.acl_name} has rules: {', '.join(names)}")
        logger.info("Associate it with a distribution using: aws wafv2 associate-web-acl "
                    f"--web-acl-arn {self.acl_arn} --resource-arn <distribution-arn> --region {WAF_REGION}")
