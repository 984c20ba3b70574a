from typing import List, Set, Tuple

from testfixtures import compare

from seedy.core.dispatch import Dispatcher, ErrorKind, UpdateOutcome, dispatch_all
from seedy.core.errors import DispatchError
from seedy.core.events import ImagePushEvent
from seedy.core.inventory import ServiceDescriptor
from seedy.core.reference import ImageReference


class RecordingDispatcher(Dispatcher):
    def __init__(
        self,
        failing: Set[str] = frozenset(),
        crashing: Set[str] = frozenset(),
        qualified: bool = False,
    ):
        super().__init__(qualified=qualified)

        self.failing = failing
        self.crashing = crashing
        self.calls: List[Tuple[str, str]] = []

    def update(self, service: ServiceDescriptor, image: str, event: ImagePushEvent):
        self.calls.append((service.service_id, image))

        if service.service_id in self.failing:
            raise DispatchError("boom", service_id=service.service_id, kind=ErrorKind.TIMEOUT)

        if service.service_id in self.crashing:
            raise KeyError("authorizationToken")


EVENT = ImagePushEvent(
    registry_id="123456789012",
    region="rp-north-1",
    repository_name="svc-a",
    image_tag="latest",
    image_digest="sha256:aaa",
)


def _service(service_id: str) -> ServiceDescriptor:
    return ServiceDescriptor(
        service_id=service_id,
        name=service_id,
        image_ref=ImageReference(repository="svc-a", tag="latest"),
    )


def test_dispatch__sends_image_pinned_to_digest():
    dispatcher = RecordingDispatcher()

    res = dispatcher.dispatch(_service("s1"), EVENT)

    compare(res, UpdateOutcome(service_id="s1", image="svc-a:latest@sha256:aaa", succeeded=True))
    compare(dispatcher.calls, [("s1", "svc-a:latest@sha256:aaa")])


def test_dispatch__qualified_sends_full_image():
    dispatcher = RecordingDispatcher(qualified=True)

    dispatcher.dispatch(_service("s1"), EVENT)

    compare(
        dispatcher.calls,
        [("s1", "123456789012.dkr.ecr.rp-north-1.amazonaws.com/svc-a:latest@sha256:aaa")],
    )


def test_dispatch__failure_is_reported_in_outcome():
    dispatcher = RecordingDispatcher(failing={"s1"})

    res = dispatcher.dispatch(_service("s1"), EVENT)

    compare(
        res,
        UpdateOutcome(
            service_id="s1",
            image="svc-a:latest@sha256:aaa",
            succeeded=False,
            error=ErrorKind.TIMEOUT,
            message="boom",
        ),
    )


def test_dispatch_all__failure_does_not_stop_other_updates():
    dispatcher = RecordingDispatcher(failing={"s2"})

    res = dispatch_all(dispatcher, [_service("s1"), _service("s2"), _service("s3")], EVENT)

    compare([outcome.succeeded for outcome in res], [True, False, True])
    compare([call[0] for call in dispatcher.calls], ["s1", "s2", "s3"])


def test_dispatch_all__no_services_sends_nothing():
    dispatcher = RecordingDispatcher()

    compare(dispatch_all(dispatcher, [], EVENT), [])
    compare(dispatcher.calls, [])


def test_dispatch__unexpected_error_is_reported_in_outcome():
    dispatcher = RecordingDispatcher(crashing={"s1"})

    res = dispatcher.dispatch(_service("s1"), EVENT)

    compare(res.succeeded, False)
    compare(res.error, ErrorKind.UNEXPECTED)
    compare(res.message, "'authorizationToken'")


def test_dispatch_all__unexpected_error_does_not_stop_other_updates():
    dispatcher = RecordingDispatcher(crashing={"s1"})

    res = dispatch_all(dispatcher, [_service("s1"), _service("s2")], EVENT)

    compare([outcome.error for outcome in res], [ErrorKind.UNEXPECTED, None])
    compare([call[0] for call in dispatcher.calls], ["s1", "s2"])
