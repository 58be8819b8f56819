"""Unit tests for the Redshift Serverless tutorial."""

import json
from unittest.mock import Mock

import pytest

from aws_tutorials.core.tutorial import TutorialStatus
from aws_tutorials.exceptions import ResourceStateError
from aws_tutorials.tutorials.redshift_serverless import RedshiftServerless


def namespace(status):
    return {"namespace": {"namespaceName": "ns", "status": status}}


def workgroup(status, endpoint=None):
    body = {"workgroupName": "wg", "status": status}
    if endpoint:
        body["endpoint"] = endpoint
    return {"workgroup": body}


@pytest.fixture
def rs_clients(mock_clients, no_sleep, client_error):
    iam = mock_clients.setdefault("iam", Mock(name="iam"))
    redshift = mock_clients.setdefault("redshift-serverless", Mock(name="redshift-serverless"))
    data = mock_clients.setdefault("redshift-data", Mock(name="redshift-data"))

    iam.create_role.return_value = {"Role": {"Arn": "arn:aws:iam::123456789012:role/test-redshift-role"}}
    redshift.create_namespace.return_value = {
        "namespace": {
            "status": "MODIFYING",
            "adminPasswordSecretArn": "arn:aws:secretsmanager:us-east-1:123456789012:secret:redshift",
        }
    }
    redshift.get_namespace.side_effect = [
        namespace("MODIFYING"),
        namespace("AVAILABLE"),
        namespace("DELETING"),
        client_error("ResourceNotFoundException"),
    ]
    redshift.create_workgroup.return_value = workgroup("CREATING")
    redshift.get_workgroup.side_effect = [
        workgroup("CREATING"),
        workgroup("AVAILABLE"),
        workgroup("AVAILABLE", endpoint={"address": "wg.123456789012.us-east-1.redshift-serverless.amazonaws.com",
                                         "port": 5439}),
        workgroup("DELETING"),
        client_error("ResourceNotFoundException"),
    ]
    data.execute_statement.side_effect = [{"Id": f"stmt-{i}"} for i in range(1, 9)]
    data.describe_statement.return_value = {"Status": "FINISHED"}
    data.get_statement_result.side_effect = [
        {
            "ColumnMetadata": [{"name": "firstname"}, {"name": "lastname"}, {"name": "total_quantity"}],
            "Records": [
                [{"stringValue": "Jerry"}, {"stringValue": "Nichols"}, {"longValue": 67}],
                [{"stringValue": "Armando"}, {"isNull": True}, {"longValue": 64}],
            ],
        },
        {
            "ColumnMetadata": [{"name": "eventname"}, {"name": "total_price"}],
            "Records": [[{"stringValue": "Adriana Lecouvreur"}, {"stringValue": "51846.00"}]],
        },
    ]
    return iam, redshift, data


class TestRedshiftServerless:
    """Test the tutorial flow against mocked clients."""

    def test_full_run(self, test_config, rs_clients):
        iam, redshift, data = rs_clients
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.SUCCEEDED
        assert result.outputs["port"] == 5439
        assert result.outputs["endpoint"].startswith("wg.")
        assert result.outputs["admin_secret_arn"].endswith(":secret:redshift")

        ns_kwargs = redshift.create_namespace.call_args.kwargs
        assert ns_kwargs["manageAdminPassword"] is True
        assert "adminUserPassword" not in ns_kwargs
        assert ns_kwargs["iamRoles"] == ["arn:aws:iam::123456789012:role/test-redshift-role"]
        assert {"key": "Tutorial", "value": "redshift-serverless"} in ns_kwargs["tags"]

        wg_kwargs = redshift.create_workgroup.call_args.kwargs
        assert wg_kwargs["namespaceName"] == "test-ns-abcd1234"

    def test_workgroup_gone_before_namespace_deleted(self, test_config, rs_clients):
        iam, redshift, data = rs_clients
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.cleanup.ok
        calls = [name for name, _, _ in redshift.mock_calls]
        assert calls.index("delete_workgroup") < calls.index("delete_namespace")
        last_workgroup_poll = max(i for i, name in enumerate(calls) if name == "get_workgroup")
        assert last_workgroup_poll < calls.index("delete_namespace")

        iam_calls = [name for name, _, _ in iam.mock_calls if name in ("delete_role_policy", "delete_role")]
        assert iam_calls == ["delete_role_policy", "delete_role"]

    def test_namespace_failure_state(self, test_config, rs_clients, client_error):
        iam, redshift, data = rs_clients
        redshift.get_namespace.side_effect = [namespace("DELETING"), client_error("ResourceNotFoundException")]
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert result.failed_step == "Create namespace"
        assert isinstance(result.error, ResourceStateError)
        redshift.create_workgroup.assert_not_called()
        iam.delete_role.assert_called_once()
        assert result.cleanup.ok
        data.execute_statement.assert_not_called()

    def test_role_reads_sample_bucket(self, test_config, rs_clients):
        iam, redshift, data = rs_clients
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        tutorial.run()

        policy_kwargs = iam.put_role_policy.call_args.kwargs
        assert policy_kwargs["PolicyName"] == "S3Access"
        resources = json.loads(policy_kwargs["PolicyDocument"])["Statement"][0]["Resource"]
        assert resources == ["arn:aws:s3:::redshift-downloads", "arn:aws:s3:::redshift-downloads/*"]
        iam.delete_role_policy.assert_called_once_with(RoleName="test-redshift-role-abcd1234", PolicyName="S3Access")

    def test_tables_loaded_and_queried(self, test_config, rs_clients):
        iam, redshift, data = rs_clients
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        statements = [call.kwargs for call in data.execute_statement.call_args_list]
        assert all(s["WorkgroupName"] == "test-wg-abcd1234" and s["Database"] == "dev" for s in statements)
        sql = [s["Sql"] for s in statements]
        assert [text.split("(")[0].strip() for text in sql[:3]] == [
            "CREATE TABLE users",
            "CREATE TABLE event",
            "CREATE TABLE sales",
        ]
        assert "s3://redshift-downloads/tickit/allusers_pipe.txt" in sql[3]
        assert "DELIMITER '|'" in sql[4]
        assert "DELIMITER '\\t'" in sql[5]
        assert "TIMEFORMAT 'MM/DD/YYYY HH:MI:SS'" in sql[5]
        assert "IAM_ROLE 'arn:aws:iam::123456789012:role/test-redshift-role'" in sql[3]
        assert "IGNOREHEADER 1" in sql[4]

        assert data.get_statement_result.call_args_list[0].kwargs == {"Id": "stmt-7"}
        assert result.outputs["top_buyers"] == [
            {"firstname": "Jerry", "lastname": "Nichols", "total_quantity": 67},
            {"firstname": "Armando", "lastname": None, "total_quantity": 64},
        ]
        assert result.outputs["top_events"][0]["eventname"] == "Adriana Lecouvreur"

    def test_failed_statement_stops_run(self, test_config, rs_clients):
        iam, redshift, data = rs_clients
        data.describe_statement.return_value = {"Status": "FAILED", "Error": "permission denied"}
        tutorial = RedshiftServerless(settings=test_config, suffix="abcd1234")

        result = tutorial.run()

        assert result.status == TutorialStatus.FAILED
        assert result.failed_step == "Create tables"
        assert isinstance(result.error, ResourceStateError)
        assert data.execute_statement.call_count == 1
        data.get_statement_result.assert_not_called()
        assert result.cleanup.ok
