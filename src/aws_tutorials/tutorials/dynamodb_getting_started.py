"""
Amazon DynamoDB getting started.

Creates a Music table and walks through writing, reading, updating and
querying items.
"""

from typing import Any, Dict, List

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SONGS = [
    ("No One You Know", "Call Me Today", "Somewhat Famous", 1),
    ("No One You Know", "Howdy", "Somewhat Famous", 2),
    ("Acme Band", "Happy Day", "Songs About Life", 10),
    ("Acme Band", "PartiQL Rocks", "Another Album Title", 8),
]


def song_item(artist: str, title: str, album: str, awards: int) -> Dict[str, Dict[str, str]]:
    return {
        "Artist": {"S": artist},
        "SongTitle": {"S": title},
        "AlbumTitle": {"S": album},
        "Awards": {"N": str(awards)},
    }


@register
class DynamoDBGettingStarted(Tutorial):
    slug = "dynamodb-getting-started"
    title = "Amazon DynamoDB Getting Started"
    description = "Create a table and write, read, update and query items."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.dynamodb = self.client("dynamodb")
        self.table_name = f"Music-{self.suffix}"

    def steps(self) -> List[Step]:
        return [
            ("Create table", self.create_table),
            ("Enable point-in-time recovery", self.enable_pitr),
            ("Write items", self.write_items),
            ("Read item", self.read_item),
            ("Update item", self.update_item),
            ("Query items", self.query_items),
        ]

    def create_table(self) -> None:
        self.dynamodb.create_table(
            TableName=self.table_name,
            AttributeDefinitions=[
                {"AttributeName": "Artist", "AttributeType": "S"},
                {"AttributeName": "SongTitle", "AttributeType": "S"},
            ],
            KeySchema=[
                {"AttributeName": "Artist", "KeyType": "HASH"},
                {"AttributeName": "SongTitle", "KeyType": "RANGE"},
            ],
            BillingMode="PAY_PER_REQUEST",
            TableClass="STANDARD",
            Tags=self.tags(self.table_name),
        )
        self.tracker.track(
            "DynamoDB Table",
            self.table_name,
            delete=self.delete_table,
            hint=f"aws dynamodb delete-table --table-name {self.table_name}",
        )
        self.outputs["table_name"] = self.table_name
        self.wait(self.dynamodb, "table_exists", f"table {self.table_name} to become ACTIVE",
                  TableName=self.table_name)

    def delete_table(self) -> None:
        self.dynamodb.delete_table(TableName=self.table_name)
        self.wait(self.dynamodb, "table_not_exists", f"table {self.table_name} to be deleted",
                  TableName=self.table_name)

    def enable_pitr(self) -> None:
        self.dynamodb.update_continuous_backups(
            TableName=self.table_name,
            PointInTimeRecoverySpecification={"PointInTimeRecoveryEnabled": True},
        )
        logger.info("Point-in-time recovery enabled")

    def write_items(self) -> None:
        for song in SONGS:
            self.dynamodb.put_item(TableName=self.table_name, Item=song_item(*song))
        logger.info(f"Wrote {len(SONGS)} items to {self.table_name}")

    def read_item(self) -> None:
        response = self.dynamodb.get_item(
            TableName=self.table_name,
            Key={"Artist": {"S": "Acme Band"}, "SongTitle": {"S": "Happy Day"}},
            ConsistentRead=True,
        )
        item = response.get("Item")
        if not item:
            raise VerificationError("Item written in the previous step was not found")
        self.outputs["read_item"] = item
        logger.info(f"Retrieved item: {item}")

    def update_item(self) -> None:
        response = self.dynamodb.update_item(
            TableName=self.table_name,
            Key={"Artist": {"S": "Acme Band"}, "SongTitle": {"S": "Happy Day"}},
            UpdateExpression="SET AlbumTitle = :newval",
            ExpressionAttributeValues={":newval": {"S": "Updated Album Title"}},
            ReturnValues="ALL_NEW",
        )
        attributes: Dict[str, Any] = response["Attributes"]
        self.outputs["updated_album"] = attributes["AlbumTitle"]["S"]
        logger.info(f"Updated item: {attributes}")

    def query_items(self) -> None:
        response = self.dynamodb.query(
            TableName=self.table_name,
            KeyConditionExpression="Artist = :name",
            ExpressionAttributeValues={":name": {"S": "Acme Band"}},
        )
        titles = [item["SongTitle"]["S"] for item in response.get("Items", [])]
        self.outputs["query_titles"] = titles
        logger.info(f"Query returned {response['Count']} items: {titles}")
