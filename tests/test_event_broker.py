import asyncio
import threading

import pytest

from launcher.events.broker import StatusMessageEventBroker
from launcher.events.models import LaunchState, StatusEventKind, StatusMessageEvent


def _event(job_id: str, target: LaunchState = LaunchState.REGISTERING_HOOK) -> StatusMessageEvent:
    return StatusMessageEvent.transition(job_id, LaunchState.CREATING_REPOSITORY, target)


def test_send_without_subscribers_does_not_raise():
    broker = StatusMessageEventBroker()
    broker.send(_event("job-1"))
    assert broker.subscriber_count == 0


@pytest.mark.asyncio
async def test_fan_out_filters_by_job():
    broker = StatusMessageEventBroker()
    await broker.initialize()
    everything = broker.subscribe()
    job_a = broker.subscribe("a")

    broker.send(_event("a"))
    broker.send(_event("b"))

    assert (await everything.get(timeout=1)).job_id == "a"
    assert (await everything.get(timeout=1)).job_id == "b"
    assert (await job_a.get(timeout=1)).job_id == "a"
    with pytest.raises(asyncio.TimeoutError):
        await job_a.get(timeout=0.05)
    await broker.close()


@pytest.mark.asyncio
async def test_events_keep_transition_order():
    broker = StatusMessageEventBroker()
    targets = [LaunchState.REGISTERING_HOOK, LaunchState.DEPLOYING, LaunchState.LAUNCHED]
    with broker.subscribe("job") as subscription:
        for target in targets:
            broker.send(_event("job", target))
        received = [await subscription.get(timeout=1) for _ in targets]
    assert [e.target for e in received] == targets
    assert received[-1].kind is StatusEventKind.LAUNCH_COMPLETED
    assert broker.subscriber_count == 0


@pytest.mark.asyncio
async def test_send_from_other_thread_is_delivered():
    broker = StatusMessageEventBroker()
    subscription = broker.subscribe("job")

    thread = threading.Thread(target=broker.send, args=(_event("job"),))
    thread.start()
    thread.join()

    event = await subscription.get(timeout=1)
    assert event.job_id == "job"


@pytest.mark.asyncio
async def test_full_queue_drops_instead_of_blocking():
    broker = StatusMessageEventBroker(max_queue_size=1)
    subscription = broker.subscribe("job")
    broker.send(_event("job", LaunchState.REGISTERING_HOOK))
    broker.send(_event("job", LaunchState.DEPLOYING))

    assert (await subscription.get(timeout=1)).target is LaunchState.REGISTERING_HOOK
    with pytest.raises(asyncio.TimeoutError):
        await subscription.get(timeout=0.05)


@pytest.mark.asyncio
async def test_close_ends_iteration():
    broker = StatusMessageEventBroker()
    subscription = broker.subscribe()
    broker.send(_event("job"))

    async def consume():
        return [event async for event in subscription]

    consumer = asyncio.create_task(consume())
    await asyncio.sleep(0)
    await broker.close()
    events = await asyncio.wait_for(consumer, timeout=1)

    assert [e.job_id for e in events] == ["job"]
    assert subscription.closed


def test_failure_event_carries_cause():
    event = StatusMessageEvent.failure("job", KeyError("missing"), source=LaunchState.DEPLOYING)
    data = event.to_dict()
    assert event.is_terminal
    assert data["kind"] == "step-failed"
    assert data["source"] == "DEPLOYING"
    assert data["target"] == "FAILED"
    assert data["error"] == {"type": "KeyError", "message": "'missing'"}
