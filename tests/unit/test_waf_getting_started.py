"""Unit tests for the WAF getting started tutorial."""

from unittest.mock import Mock

import pytest

from aws_tutorials.core.tutorial import TutorialStatus
from aws_tutorials.exceptions import VerificationError
from aws_tutorials.tutorials.waf_getting_started import (
    WAFGettingStarted,
    managed_rule_group,
    user_agent_rule,
)

ACL_ARN = "arn:aws:wafv2:us-east-1:123456789012:global/webacl/test-web-acl-abcd1234/acl-1"


def web_acl(rule_names, token="token-1"):
    return {
        "WebACL": {"Name": "test-web-acl-abcd1234", "Rules": [{"Name": name} for name in rule_names]},
        "LockToken": token,
    }


@pytest.fixture
def waf(mock_clients, no_sleep):
    waf = mock_clients.setdefault("wafv2", Mock(name="wafv2"))
    waf.create_web_acl.return_value = {"Summary": {"Id": "acl-1", "ARN": ACL_ARN, "LockToken": "token-0"}}
    waf.get_web_acl.return_value = web_acl(["UserAgentRule", "AWS-AWSManagedRulesCommonRuleSet"])
    return waf


class TestRules:
    """Test rule builders."""

    def test_user_agent_rule_counts_exact_match(self):
        rule = user_agent_rule("MyAgent")

        match = rule["Statement"]["ByteMatchStatement"]
        assert match["SearchString"] == b"MyAgent"
        assert match["FieldToMatch"] == {"SingleHeader": {"Name": "user-agent"}}
        assert match["PositionalConstraint"] == "EXACTLY"
        assert rule["Action"] == {"Count": {}}

    def test_managed_rule_group_overrides_to_count(self):
        rule = managed_rule_group()

        assert rule["Statement"]["ManagedRuleGroupStatement"] == {
            "VendorName": "AWS",
            "Name": "AWSManagedRulesCommonRuleSet",
        }
        assert rule["OverrideAction"] == {"Count": {}}
        assert rule["Priority"] == 1


class TestWAFGettingStarted:
    """Test the tutorial flow against mocked clients."""

    def test_full_run(self, test_config, waf):
        tutorial = WAFGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        assert result.outputs["web_acl_arn"] == ACL_ARN
        assert result.outputs["rules"] == ["UserAgentRule", "AWS-AWSManagedRulesCommonRuleSet"]
        assert waf.create_web_acl.call_args.kwargs["Scope"] == "CLOUDFRONT"

        updates = [call.kwargs["Rules"] for call in waf.update_web_acl.call_args_list]
        assert [[rule["Name"] for rule in rules] for rules in updates] == [
            ["UserAgentRule"],
            ["UserAgentRule", "AWS-AWSManagedRulesCommonRuleSet"],
        ]
        waf.delete_web_acl.assert_called_once_with(
            Name="test-web-acl-abcd1234", Scope="CLOUDFRONT", Id="acl-1", LockToken="token-1"
        )

    def test_always_runs_in_us_east_1(self, test_config, waf):
        tutorial = WAFGettingStarted(settings=test_config, region="eu-west-1", suffix="abcd1234")
        assert tutorial.region == "us-east-1"

    def test_lock_conflict_is_retried_with_fresh_token(self, test_config, waf, client_error):
        waf.update_web_acl.side_effect = [client_error("WAFOptimisticLockException"), {}, {}]
        waf.get_web_acl.side_effect = [
            web_acl([], token="stale"),
            web_acl([], token="fresh"),
            web_acl(["UserAgentRule"], token="fresh-2"),
            web_acl(["UserAgentRule", "AWS-AWSManagedRulesCommonRuleSet"]),
            web_acl(["UserAgentRule", "AWS-AWSManagedRulesCommonRuleSet"]),
        ]
        tutorial = WAFGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        tokens = [call.kwargs["LockToken"] for call in waf.update_web_acl.call_args_list]
        assert tokens == ["stale", "fresh", "fresh-2"]

    def test_missing_rules_fail_verification(self, test_config, waf):
        waf.get_web_acl.return_value = web_acl(["UserAgentRule"])
        tutorial = WAFGettingStarted(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert isinstance(result.error, VerificationError)
        waf.delete_web_acl.assert_called_once()
