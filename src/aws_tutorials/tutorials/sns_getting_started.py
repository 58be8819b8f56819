"""
Amazon SNS getting started.

Creates a topic, subscribes an SQS queue to it, publishes a message and reads
it back from the queue.
"""

import json
from datetime import datetime, timezone
from typing import List, Optional

from ..core.registry import register
from ..core.tutorial import Step, Tutorial
from ..exceptions import VerificationError
from ..utils.logger import get_logger

logger = get_logger(__name__)

RECEIVE_WAIT_SECONDS = 10
RECEIVE_ATTEMPTS = 3


@register
class SNSGettingStarted(Tutorial):
    slug = "sns-getting-started"
    title = "Amazon SNS Getting Started"
    description = "Create a topic, subscribe a queue, publish and receive a message."

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.sns = self.client("sns")
        self.sqs = self.client("sqs")
        self.topic_name = self.name("topic")
        self.queue_name = self.name("queue")
        self.topic_arn: Optional[str] = None
        self.queue_url: Optional[str] = None
        self.queue_arn: Optional[str] = None

    def steps(self) -> List[Step]:
        return [
            ("Create topic", self.create_topic),
            ("Create subscriber queue", self.create_queue),
            ("Subscribe queue to topic", self.subscribe),
            ("Publish message", self.publish),
            ("Receive message", self.receive),
        ]

    def create_topic(self) -> None:
        response = self.sns.create_topic(Name=self.topic_name, Tags=self.tags(self.topic_name))
        self.topic_arn = response["TopicArn"]
        self.tracker.track(
            "SNS Topic",
            self.topic_arn,
            delete=lambda: self.sns.delete_topic(TopicArn=self.topic_arn),
            hint=f"aws sns delete-topic --topic-arn {self.topic_arn}",
        )
        self.outputs["topic_arn"] = self.topic_arn
        logger.info(f"Successfully created topic with ARN: {self.topic_arn}")

    def create_queue(self) -> None:
        response = self.sqs.create_queue(QueueName=self.queue_name)
        self.queue_url = response["QueueUrl"]
        self.tracker.track(
            "SQS Queue",
            self.queue_url,
            delete=lambda: self.sqs.delete_queue(QueueUrl=self.queue_url),
            hint=f"aws sqs delete-queue --queue-url {self.queue_url}",
        )

        attributes = self.sqs.get_queue_attributes(
            QueueUrl=self.queue_url, AttributeNames=["QueueArn"]
        )
        self.queue_arn = attributes["Attributes"]["QueueArn"]

        policy = {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"Service": "sns.amazonaws.com"},
                    "Action": "sqs:SendMessage",
                    "Resource": self.queue_arn,
                    "Condition": {"ArnEquals": {"aws:SourceArn": self.topic_arn}},
                }
            ],
        }
        self.sqs.set_queue_attributes(
            QueueUrl=self.queue_url,
            Attributes={"Policy": json.dumps(policy)},
        )
        logger.info(f"Created queue {self.queue_arn} and allowed the topic to send to it")

    def subscribe(self) -> None:
        response = self.sns.subscribe(
            TopicArn=self.topic_arn,
            Protocol="sqs",
            Endpoint=self.queue_arn,
            ReturnSubscriptionArn=True,
        )
        subscription_arn = response["SubscriptionArn"]
        self.tracker.track(
            "SNS Subscription",
            subscription_arn,
            delete=lambda: self.sns.unsubscribe(SubscriptionArn=subscription_arn),
            hint=f"aws sns unsubscribe --subscription-arn {subscription_arn}",
        )
        self.outputs["subscription_arn"] = subscription_arn

        subscriptions = self.sns.list_subscriptions_by_topic(TopicArn=self.topic_arn)
        for subscription in subscriptions.get("Subscriptions", []):
            logger.info(f"Subscription: {subscription['Protocol']} -> {subscription['Endpoint']}")

    def publish(self) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        message = f"Hello from Amazon SNS! This is a test message sent at {timestamp}."
        response = self.sns.publish(TopicArn=self.topic_arn, Message=message)
        self.outputs["message"] = message
        self.outputs["message_id"] = response["MessageId"]
        logger.info(f"Message published successfully with ID: {response['MessageId']}")

    def receive(self) -> None:
        for attempt in range(1, RECEIVE_ATTEMPTS + 1):
            response = self.sqs.receive_message(
                QueueUrl=self.queue_url,
                MaxNumberOfMessages=1,
                WaitTimeSeconds=RECEIVE_WAIT_SECONDS,
            )
            messages = response.get("Messages", [])
            if messages:
                break
            logger.info(f"No message yet (attempt {attempt} of {RECEIVE_ATTEMPTS})")
        else:
            raise VerificationError("Published message never reached the queue")

        received = messages[0]
        envelope = json.loads(received["Body"])
        if envelope.get("Message") != self.outputs["message"]:
            raise VerificationError("Received message does not match the published message")

        self.sqs.delete_message(QueueUrl=self.queue_url, ReceiptHandle=received["ReceiptHandle"])
        self.outputs["received_message_id"] = envelope.get("MessageId")
        logger.info("Message delivered to the queue successfully")
