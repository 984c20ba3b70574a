"""The loop pulling push notifications from a queue and feeding them to the
reconciler."""
import abc
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from attrs import define

from seedy.core.errors import QueueError
from seedy.core.reconcile import Reconciler, ReconcileResult, ReconcileStatus
from seedy.utils import debug, error, print_exception


@define(frozen=True, kw_only=True)
class Message:
    """A raw message received from a queue.

    Arguments:
        message_id: the identifier assigned by the queue.
        receipt_handle: the handle used to acknowledge this delivery.
        body: the message payload.
    """

    message_id: str
    receipt_handle: str
    body: str


class MessageSource(abc.ABC):
    """Base class for all the queues seedy can pull notifications from."""

    @abc.abstractmethod
    def receive(self, wait_time: int, max_messages: int) -> List[Message]:
        """Waits for a batch of messages.

        Arguments:
            wait_time: maximum number of seconds to wait for a message.
            max_messages: maximum number of messages to return.

        Returns:
            The received messages, possibly none.

        Raises:
            QueueError: if the queue cannot be reached.
        """
        raise NotImplementedError

    @abc.abstractmethod
    def acknowledge(self, message: Message):
        """Removes a message from the queue so it won't be delivered again.

        Arguments:
            message: the message to acknowledge.

        Raises:
            QueueError: if the queue cannot be reached.
        """
        raise NotImplementedError


class Consumer:
    """Pulls batches of notifications and reconciles each one of them.

    Every message is acknowledged once processed, whatever the outcome of
    the processing. Redelivering a message is left to the queue's own
    retention settings.

    Any number of consumers can share the same queue, they don't coordinate
    in any way.

    Arguments:
        source: the queue to pull notifications from.
        reconciler: the pipeline processing each notification.
        wait_time: maximum number of seconds to wait for a batch.
        max_messages: maximum size of a batch.
        concurrency: maximum number of messages processed at the same time.
        retry_delay: seconds to wait before polling again after the queue
            could not be reached.
    """

    def __init__(
        self,
        source: MessageSource,
        reconciler: Reconciler,
        wait_time: int = 20,
        max_messages: int = 10,
        concurrency: int = 4,
        retry_delay: float = 5,
    ):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")

        self.source = source
        self.reconciler = reconciler
        self.wait_time = wait_time
        self.max_messages = max_messages
        self.concurrency = concurrency
        self.retry_delay = retry_delay

        self._stopped = threading.Event()

    def stop(self):
        """Stops the loop once the current batch is completed."""
        self._stopped.set()

    @property
    def stopped(self) -> bool:
        """Returns True once `stop()` has been called."""
        return self._stopped.is_set()

    def process(self, message: Message) -> ReconcileResult:
        """Reconciles a single message and acknowledges it.

        Arguments:
            message: the message to process.

        Returns:
            The summary of the processing.
        """
        debug(f"processing message message_id={message.message_id}")

        try:
            result = self.reconciler.reconcile(message.body)

        except Exception:  # pylint: disable=broad-except
            print_exception(f"unexpected failure processing message message_id={message.message_id}")
            result = ReconcileResult(status=ReconcileStatus.FAILED)

        try:
            self.source.acknowledge(message)

        except QueueError as exc:
            error(f"failed to acknowledge message message_id={message.message_id}: {exc}")

        else:
            debug(f"acknowledged message message_id={message.message_id}")

        return result

    def poll_once(self) -> List[ReconcileResult]:
        """Receives a batch of messages and processes all of them.

        Returns:
            The summary of the processing of each message, in the order
            they have been received.
        """
        try:
            messages = self.source.receive(self.wait_time, self.max_messages)

        except QueueError as exc:
            error(f"failed to receive messages: {exc}")
            self._stopped.wait(self.retry_delay)
            return []

        if not messages:
            return []

        debug(f"received batch size={len(messages)}")

        if self.concurrency == 1 or len(messages) == 1:
            return [self.process(message) for message in messages]

        with ThreadPoolExecutor(max_workers=min(self.concurrency, len(messages))) as pool:
            return list(pool.map(self.process, messages))

    def run(self, max_batches: Optional[int] = None):
        """Polls the queue until stopped.

        Arguments:
            max_batches: stop after polling this many times. Runs forever
                if None.
        """
        polled = 0

        while not self.stopped:
            if max_batches is not None and polled >= max_batches:
                break

            self.poll_once()
            polled += 1
