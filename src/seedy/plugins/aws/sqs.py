"""Amazon SQS queue used to receive the ECR push notifications."""
from typing import List

from botocore.exceptions import BotoCoreError, ClientError

from seedy.core.consumer import Message, MessageSource
from seedy.core.errors import QueueError


def resolve_queue_url(client, queue_name: str) -> str:
    """Gets the URL of a queue from its name.

    Arguments:
        client: the boto3 SQS client.
        queue_name: name of the queue.

    Returns:
        The queue's URL.

    Raises:
        QueueError: if the queue does not exist or SQS cannot be reached.
    """
    try:
        res = client.get_queue_url(QueueName=queue_name)

    except (BotoCoreError, ClientError) as exc:
        raise QueueError(f"failed to retrieve URL for queue {queue_name}: {exc}") from exc

    return res["QueueUrl"]


class SqsMessageSource(MessageSource):
    """Receives messages from an SQS queue.

    Arguments:
        client: the boto3 SQS client.
        queue_url: URL of the queue.
    """

    def __init__(self, client, queue_url: str):
        self.client = client
        self.queue_url = queue_url

    @classmethod
    def from_name(cls, client, queue_name: str) -> "SqsMessageSource":
        """Creates a message source resolving the queue URL from its name.

        Arguments:
            client: the boto3 SQS client.
            queue_name: name of the queue.

        Raises:
            QueueError: if the queue does not exist or SQS cannot be reached.
        """
        return cls(client, resolve_queue_url(client, queue_name))

    def receive(self, wait_time: int, max_messages: int) -> List[Message]:
        try:
            res = self.client.receive_message(
                QueueUrl=self.queue_url,
                WaitTimeSeconds=wait_time,
                MaxNumberOfMessages=max_messages,
            )

        except (BotoCoreError, ClientError) as exc:
            raise QueueError(f"polling for events on {self.queue_url} failed: {exc}") from exc

        return [
            Message(
                message_id=message["MessageId"],
                receipt_handle=message["ReceiptHandle"],
                body=message.get("Body", ""),
            )
            for message in res.get("Messages", [])
        ]

    def acknowledge(self, message: Message):
        try:
            self.client.delete_message(
                QueueUrl=self.queue_url,
                ReceiptHandle=message.receipt_handle,
            )

        except (BotoCoreError, ClientError) as exc:
            raise QueueError(
                f"failed to delete message {message.message_id} from {self.queue_url}: {exc}"
            ) from exc
