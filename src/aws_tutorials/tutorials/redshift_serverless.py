"""
Amazon Redshift Serverless.

Creates a namespace whose admin password is managed by Secrets Manager and a
workgroup serving it. Then it loads the TICKIT sample data from S3 and queries
it through the Redshift Data API.

Resources Created:
- IAM role the namespace uses to read the sample data, with an inline S3 policy
- Redshift Serverless namespace
- Redshift Serverless workgroup
"""

import json
from typing import Any, Dict, List, Optional

from botocore.exceptions import ClientError

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..utils.aws_helpers import is_not_found
from ..utils.logger import get_logger

logger = get_logger(__name__)

DATABASE_NAME = "dev"
ADMIN_USERNAME = "admin"
BASE_CAPACITY = 8
S3_POLICY_NAME = "S3Access"
SAMPLE_DATA_BUCKET = "redshift-downloads"

S3_READ_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Action": ["s3:GetObject", "s3:ListBucket"],
            "Resource": [
                f"arn:aws:s3:::{SAMPLE_DATA_BUCKET}",
                f"arn:aws:s3:::{SAMPLE_DATA_BUCKET}/*",
            ],
        }
    ],
}

REDSHIFT_TRUST_POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": "redshift.amazonaws.com"},
            "Action": "sts:AssumeRole",
        }
    ],
}

# TICKIT sample tables, created in this order
TABLES = {
    "users": """
        CREATE TABLE users(
            userid INTEGER NOT NULL DISTKEY SORTKEY,
            username CHAR(8),
            firstname VARCHAR(30),
            lastname VARCHAR(30),
            city VARCHAR(30),
            state CHAR(2),
            email VARCHAR(100),
            phone CHAR(14),
            likesports BOOLEAN,
            liketheatre BOOLEAN,
            likeconcerts BOOLEAN,
            likejazz BOOLEAN,
            likeclassical BOOLEAN,
            likeopera BOOLEAN,
            likerock BOOLEAN,
            likevegas BOOLEAN,
            likebroadway BOOLEAN,
            likemusicals BOOLEAN
        );""",
    "event": """
        CREATE TABLE event(
            eventid INTEGER NOT NULL DISTKEY,
            venueid SMALLINT NOT NULL,
            catid SMALLINT NOT NULL,
            dateid SMALLINT NOT NULL SORTKEY,
            eventname VARCHAR(200),
            starttime TIMESTAMP
        );""",
    "sales": """
        CREATE TABLE sales(
            salesid INTEGER NOT NULL,
            listid INTEGER NOT NULL DISTKEY,
            sellerid INTEGER NOT NULL,
            buyerid INTEGER NOT NULL,
            eventid INTEGER NOT NULL,
            dateid SMALLINT NOT NULL SORTKEY,
            qtysold SMALLINT NOT NULL,
            pricepaid DECIMAL(8,2),
            commission DECIMAL(8,2),
            saletime TIMESTAMP
        );""",
}

# table -> (object key, delimiter, time format)
SAMPLE_FILES = {
    "users": ("tickit/allusers_pipe.txt", "|", "YYYY-MM-DD HH:MI:SS"),
    "event": ("tickit/allevents_pipe.txt", "|", "YYYY-MM-DD HH:MI:SS"),
    "sales": ("tickit/sales_tab.txt", "\\t", "MM/DD/YYYY HH:MI:SS"),
}

TOP_BUYERS_SQL = """
    SELECT firstname, lastname, total_quantity
    FROM (SELECT buyerid, sum(qtysold) total_quantity
          FROM sales
          GROUP BY buyerid
          ORDER BY total_quantity desc limit 10) Q, users
    WHERE Q.buyerid = userid
    ORDER BY Q.total_quantity desc;"""

TOP_EVENTS_SQL = """
    SELECT eventname, total_price
    FROM (SELECT eventid, total_price, ntile(1000) over(order by total_price desc) as percentile
          FROM (SELECT eventid, sum(pricepaid) total_price
                FROM sales
                GROUP BY eventid)) Q, event E
    WHERE Q.eventid = E.eventid
    AND percentile = 1
    ORDER BY total_price desc;"""


def copy_sql(table: str, role_arn: str) -> str:
    """COPY statement loading one sample table from the public bucket."""
    key, delimiter, time_format = SAMPLE_FILES[table]
    return (
        f"COPY {table} FROM 's3://{SAMPLE_DATA_BUCKET}/{key}' "
        f"DELIMITER '{delimiter}' "
        f"TIMEFORMAT '{time_format}' "
        "IGNOREHEADER 1 "
        f"IAM_ROLE '{role_arn}';"
    )


def field_value(field: Dict[str, Any]) -> Any:
    """Plain value of one Data API result field."""
    if field.get("isNull"):
        return None
    return next(iter(field.values()))


def result_rows(response: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Turn a get_statement_result response into dicts keyed by column name."""
    columns = [column["name"] for column in response.get("ColumnMetadata", [])]
    return [
        dict(zip(columns, (field_value(field) for field in record)))
        for record in response.get("Records", [])
    ]


@register
class RedshiftServerless(Tutorial):
    slug = "redshift-serverless"
    title = "Amazon Redshift Serverless"
    description = "Create a serverless namespace and workgroup, load sample data and query it."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.iam = self.client("iam")
        self.redshift = self.client("redshift-serverless")
        self.data = self.client("redshift-data")
        self.role_name = self.name("redshift-role")
        self.namespace_name = self.name("ns")
        self.workgroup_name = self.name("wg")
        self.role_arn: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create IAM role", self.create_role),
            ("Create namespace", self.create_namespace),
            ("Create workgroup", self.create_workgroup),
            ("Show connection details", self.show_connection),
            ("Create tables", self.create_tables),
            ("Load sample data", self.load_sample_data),
            ("Run sample queries", self.run_queries),
        ]

    def create_role(self) -> None:
        response = self.iam.create_role(
            RoleName=self.role_name,
            AssumeRolePolicyDocument=json.dumps(REDSHIFT_TRUST_POLICY),
            Description="Role for the Redshift Serverless tutorial namespace",
            Tags=self.tags(self.role_name),
        )
        self.role_arn = response["Role"]["Arn"]
        self.tracker.track(
            "IAM Role",
            self.role_name,
            delete=lambda: self.iam.delete_role(RoleName=self.role_name),
            hint=f"aws iam delete-role --role-name {self.role_name}",
        )
        logger.info(f"Created role: {self.role_arn}")

        self.iam.put_role_policy(
            RoleName=self.role_name,
            PolicyName=S3_POLICY_NAME,
            PolicyDocument=json.dumps(S3_READ_POLICY),
        )
        self.tracker.track(
            "IAM Role Policy",
            f"{self.role_name}:{S3_POLICY_NAME}",
            delete=lambda: self.iam.delete_role_policy(
                RoleName=self.role_name, PolicyName=S3_POLICY_NAME
            ),
            hint=(
                f"aws iam delete-role-policy --role-name {self.role_name} "
                f"--policy-name {S3_POLICY_NAME}"
            ),
        )
        logger.info(f"Granted read access to s3://{SAMPLE_DATA_BUCKET}")
        self.pause("for the IAM role to propagate")

    def namespace_status(self) -> str:
        response = self.redshift.get_namespace(namespaceName=self.namespace_name)
        return response["namespace"]["status"]

    def workgroup_status(self) -> str:
        return self.get_workgroup()["status"]

    def get_workgroup(self) -> Dict[str, Any]:
        return self.redshift.get_workgroup(workgroupName=self.workgroup_name)["workgroup"]

    def create_namespace(self) -> None:
        logger.info(f"Creating Redshift Serverless namespace: {self.namespace_name}")
        logger.info(f"  Database: {DATABASE_NAME}")
        logger.info(f"  Admin username: {ADMIN_USERNAME}")

        response = self.redshift.create_namespace(
            namespaceName=self.namespace_name,
            dbName=DATABASE_NAME,
            adminUsername=ADMIN_USERNAME,
            manageAdminPassword=True,
            iamRoles=[self.role_arn],
            defaultIamRoleArn=self.role_arn,
            tags=self.tags(self.namespace_name, key_style="key"),
        )
        namespace = response["namespace"]
        self.tracker.track(
            "Redshift Serverless Namespace",
            self.namespace_name,
            delete=self.delete_namespace,
            hint=f"aws redshift-serverless delete-namespace --namespace-name {self.namespace_name}",
        )
        self.outputs["namespace"] = self.namespace_name
        secret_arn = namespace.get("adminPasswordSecretArn")
        if secret_arn:
            self.outputs["admin_secret_arn"] = secret_arn
            logger.info(f"Admin password stored in Secrets Manager: {secret_arn}")

        self.poll(
            self.namespace_status,
            target={"AVAILABLE"},
            description=f"namespace {self.namespace_name}",
            failure_states={"DELETING", "DELETED"},
        )

    def delete_namespace(self) -> None:
        self.redshift.delete_namespace(namespaceName=self.namespace_name)
        self.poll(
            self.namespace_gone,
            target={"GONE"},
            description=f"namespace {self.namespace_name} to be deleted",
        )

    def namespace_gone(self) -> str:
        try:
            return self.namespace_status()
        except ClientError as e:
            if is_not_found(e):
                return "GONE"
            raise

    def create_workgroup(self) -> None:
        logger.info(f"Creating Redshift Serverless workgroup: {self.workgroup_name}")
        logger.info(f"  Base capacity: {BASE_CAPACITY} RPU")

        self.redshift.create_workgroup(
            workgroupName=self.workgroup_name,
            namespaceName=self.namespace_name,
            baseCapacity=BASE_CAPACITY,
            publiclyAccessible=False,
            tags=self.tags(self.workgroup_name, key_style="key"),
        )
        self.tracker.track(
            "Redshift Serverless Workgroup",
            self.workgroup_name,
            delete=self.delete_workgroup,
            hint=f"aws redshift-serverless delete-workgroup --workgroup-name {self.workgroup_name}",
        )
        self.outputs["workgroup"] = self.workgroup_name

        self.poll(
            self.workgroup_status,
            target={"AVAILABLE"},
            description=f"workgroup {self.workgroup_name}",
            failure_states={"DELETING"},
        )

    def delete_workgroup(self) -> None:
        """Delete the workgroup and wait until it is gone; the namespace cannot go first."""
        self.redshift.delete_workgroup(workgroupName=self.workgroup_name)
        self.poll(
            self.workgroup_gone,
            target={"GONE"},
            description=f"workgroup {self.workgroup_name} to be deleted",
        )

    def workgroup_gone(self) -> str:
        try:
            return self.workgroup_status()
        except ClientError as e:
            if is_not_found(e):
                return "GONE"
            raise

    def show_connection(self) -> None:
        endpoint = self.get_workgroup().get("endpoint", {})
        self.outputs["endpoint"] = endpoint.get("address")
        self.outputs["port"] = endpoint.get("port")
        logger.info(f"Endpoint:          {endpoint.get('address')}")
        logger.info(f"Port:              {endpoint.get('port')}")
        logger.info(f"Database:          {DATABASE_NAME}")
        logger.info(f"Username:          {ADMIN_USERNAME}")

    # Redshift Data API

    def statement_status(self, statement_id: str) -> str:
        response = self.data.describe_statement(Id=statement_id)
        if response.get("Error"):
            logger.error(f"Statement {statement_id} failed: {response['Error']}")
        return response["Status"]

    def run_statement(self, sql: str, description: str) -> str:
        """
        Run one SQL statement on the workgroup and wait for it to finish.

        Args:
            sql: Statement text
            description: What the statement does, for logs

        Returns:
            The statement ID, for fetching results.

        Raises:
            ResourceStateError: The statement failed or was aborted
        """
        response = self.data.execute_statement(
            WorkgroupName=self.workgroup_name,
            Database=DATABASE_NAME,
            Sql=sql,
        )
        statement_id = response["Id"]
        logger.info(f"{description}: statement {statement_id}")
        self.poll(
            lambda: self.statement_status(statement_id),
            target={"FINISHED"},
            description=description,
            failure_states={"FAILED", "ABORTED"},
        )
        return statement_id

    def create_tables(self) -> None:
        for table, ddl in TABLES.items():
            self.run_statement(ddl, f"create table {table}")

    def load_sample_data(self) -> None:
        for table in TABLES:
            self.run_statement(copy_sql(table, self.role_arn), f"load {table} from S3")

    def query(self, sql: str, description: str) -> List[Dict[str, Any]]:
        statement_id = self.run_statement(sql, description)
        rows = result_rows(self.data.get_statement_result(Id=statement_id))
        logger.info(f"{description}: {len(rows)} rows")
        for row in rows:
            logger.info("  " + ", ".join(f"{key}={value}" for key, value in row.items()))
        return rows

    def run_queries(self) -> None:
        self.outputs["top_buyers"] = self.query(TOP_BUYERS_SQL, "top 10 buyers by quantity")
        self.outputs["top_events"] = self.query(TOP_EVENTS_SQL, "events in the top 0.1% of gross sales")
