import json
import threading
import time
from typing import List, Optional

from testfixtures import ShouldRaise, compare

from seedy.core.consumer import Consumer, Message, MessageSource
from seedy.core.dispatch import Dispatcher, ErrorKind
from seedy.core.errors import DispatchError, InventoryError, QueueError
from seedy.core.events import ImagePushEvent
from seedy.core.inventory import InventoryClient, ServiceDescriptor
from seedy.core.reconcile import Reconciler, ReconcileResult, ReconcileStatus
from seedy.core.reference import ImageReference


class FakeSource(MessageSource):
    def __init__(self, batches: List[List[Message]], fail_receive=False, fail_ack=False):
        self.batches = list(batches)
        self.fail_receive = fail_receive
        self.fail_ack = fail_ack
        self.acked: List[str] = []
        self.receives = 0
        self._lock = threading.Lock()

    def receive(self, wait_time: int, max_messages: int) -> List[Message]:
        self.receives += 1

        if self.fail_receive:
            raise QueueError("queue unreachable")

        if not self.batches:
            return []

        return self.batches.pop(0)

    def acknowledge(self, message: Message):
        if self.fail_ack:
            raise QueueError("queue unreachable")

        with self._lock:
            self.acked.append(message.message_id)


class FakeInventory(InventoryClient):
    def __init__(self, fail: bool = False):
        self.fail = fail

    def list_services(self) -> List[ServiceDescriptor]:
        if self.fail:
            raise InventoryError("connection refused")

        return [
            ServiceDescriptor(
                service_id="s1",
                name="s1",
                image_ref=ImageReference(repository="svc-a", tag="latest"),
            )
        ]


class FakeDispatcher(Dispatcher):
    def __init__(self, fail: bool = False):
        super().__init__()

        self.fail = fail
        self.calls: List[str] = []
        self._lock = threading.Lock()

    def update(self, service: ServiceDescriptor, image: str, event: ImagePushEvent):
        with self._lock:
            self.calls.append(service.service_id)

        if self.fail:
            raise DispatchError("timed out", service_id=service.service_id, kind=ErrorKind.TIMEOUT)


class SlowReconciler(Reconciler):
    def __init__(self):  # pylint: disable=super-init-not-called
        self.running = 0
        self.max_running = 0
        self._lock = threading.Lock()

    def reconcile(self, payload) -> ReconcileResult:
        with self._lock:
            self.running += 1
            self.max_running = max(self.max_running, self.running)

        time.sleep(0.05)

        with self._lock:
            self.running -= 1

        return ReconcileResult(status=ReconcileStatus.NO_MATCH)


class ExplodingReconciler(Reconciler):
    def __init__(self):  # pylint: disable=super-init-not-called
        pass

    def reconcile(self, payload) -> ReconcileResult:
        raise RuntimeError("unexpected")


def _message(message_id: str, body: Optional[str] = None) -> Message:
    if body is None:
        body = json.dumps(
            {
                "account": "123456789012",
                "region": "rp-north-1",
                "detail": {
                    "action-type": "PUSH",
                    "result": "SUCCESS",
                    "repository-name": "svc-a",
                    "image-tag": "latest",
                    "image-digest": "sha256:aaa",
                },
            }
        )

    return Message(message_id=message_id, receipt_handle=f"handle-{message_id}", body=body)


def _consumer(source, inventory=None, dispatcher=None, **kwargs) -> Consumer:
    reconciler = Reconciler(inventory or FakeInventory(), dispatcher or FakeDispatcher())

    return Consumer(source, reconciler, retry_delay=0, **kwargs)


def test_poll_once__acknowledges_processed_messages():
    source = FakeSource([[_message("m1"), _message("m2")]])
    dispatcher = FakeDispatcher()

    res = _consumer(source, dispatcher=dispatcher).poll_once()

    compare([r.status for r in res], [ReconcileStatus.DISPATCHED] * 2)
    compare(sorted(source.acked), ["m1", "m2"])
    compare(dispatcher.calls, ["s1", "s1"])


def test_poll_once__acknowledges_malformed_message():
    source = FakeSource([[_message("m1", body="not json")]])

    res = _consumer(source).poll_once()

    compare(res[0].status, ReconcileStatus.MALFORMED)
    compare(source.acked, ["m1"])


def test_poll_once__acknowledges_message_when_inventory_fails():
    source = FakeSource([[_message("m1")]])
    dispatcher = FakeDispatcher()

    res = _consumer(source, inventory=FakeInventory(fail=True), dispatcher=dispatcher).poll_once()

    compare(res[0].status, ReconcileStatus.INVENTORY_FAILED)
    compare(source.acked, ["m1"])
    compare(dispatcher.calls, [])


def test_poll_once__acknowledges_message_when_update_fails():
    source = FakeSource([[_message("m1")]])

    res = _consumer(source, dispatcher=FakeDispatcher(fail=True)).poll_once()

    compare(res[0].status, ReconcileStatus.DISPATCHED)
    compare(res[0].failed[0].error, ErrorKind.TIMEOUT)
    compare(source.acked, ["m1"])


def test_poll_once__acknowledges_message_on_unexpected_error():
    source = FakeSource([[_message("m1")]])
    consumer = Consumer(source, ExplodingReconciler())

    res = consumer.poll_once()

    compare(res[0].status, ReconcileStatus.FAILED)
    compare(source.acked, ["m1"])


def test_poll_once__acknowledge_failure_does_not_raise():
    source = FakeSource([[_message("m1")]], fail_ack=True)

    res = _consumer(source).poll_once()

    compare(res[0].status, ReconcileStatus.DISPATCHED)
    compare(source.acked, [])


def test_poll_once__receive_failure_returns_empty_batch():
    source = FakeSource([], fail_receive=True)

    compare(_consumer(source).poll_once(), [])


def test_poll_once__empty_batch():
    source = FakeSource([])

    compare(_consumer(source).poll_once(), [])


def test_poll_once__duplicate_delivery_updates_twice():
    source = FakeSource([[_message("m1")], [_message("m1")]])
    dispatcher = FakeDispatcher()
    consumer = _consumer(source, dispatcher=dispatcher)

    consumer.poll_once()
    consumer.poll_once()

    compare(dispatcher.calls, ["s1", "s1"])
    compare(source.acked, ["m1", "m1"])


def test_poll_once__concurrency_is_bounded():
    source = FakeSource([[_message(f"m{idx}") for idx in range(6)]])
    reconciler = SlowReconciler()
    consumer = Consumer(source, reconciler, concurrency=2)

    res = consumer.poll_once()

    compare(len(res), 6)
    compare(reconciler.max_running <= 2, True)
    compare(len(source.acked), 6)


def test_poll_once__keeps_order_of_results():
    source = FakeSource([[_message("m1"), _message("m2", body="nope"), _message("m3")]])

    res = _consumer(source, concurrency=3).poll_once()

    compare(
        [r.status for r in res],
        [ReconcileStatus.DISPATCHED, ReconcileStatus.MALFORMED, ReconcileStatus.DISPATCHED],
    )


def test_run__stops_after_max_batches():
    source = FakeSource([[_message("m1")], [_message("m2")], [_message("m3")]])

    _consumer(source).run(max_batches=2)

    compare(source.receives, 2)
    compare(source.acked, ["m1", "m2"])


def test_run__stops_when_requested():
    source = FakeSource([])
    consumer = _consumer(source)
    consumer.stop()

    consumer.run()

    compare(source.receives, 0)
    compare(consumer.stopped, True)


def test_Consumer__raises_ValueError_if_concurrency_is_invalid():
    with ShouldRaise(ValueError):
        Consumer(FakeSource([]), ExplodingReconciler(), concurrency=0)
