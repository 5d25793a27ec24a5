"""Tests for draft event fan-out."""

import uuid
from unittest.mock import MagicMock

from draftroom.processing.events import DraftEvent, EventBroadcaster, EventType, notify


def _event(draft_id, event_type=EventType.PICK_MADE) -> DraftEvent:
    return DraftEvent(event_type=event_type, draft_id=draft_id, data={"overall_pick": 1})


def test_publish_reaches_only_that_drafts_subscribers():
    broadcaster = EventBroadcaster()
    draft_id = uuid.uuid4()
    mine = broadcaster.subscribe(draft_id)
    other = broadcaster.subscribe(uuid.uuid4())

    delivered = broadcaster.publish(_event(draft_id))

    assert delivered == 1
    assert mine.get_nowait().data == {"overall_pick": 1}
    assert other.empty()


def test_full_queue_drops_event():
    broadcaster = EventBroadcaster(queue_size=1)
    draft_id = uuid.uuid4()
    queue = broadcaster.subscribe(draft_id)

    assert broadcaster.publish(_event(draft_id)) == 1
    assert broadcaster.publish(_event(draft_id)) == 0
    assert queue.qsize() == 1


def test_unsubscribe():
    broadcaster = EventBroadcaster()
    draft_id = uuid.uuid4()
    queue = broadcaster.subscribe(draft_id)

    broadcaster.unsubscribe(draft_id, queue)
    broadcaster.unsubscribe(draft_id, queue)

    assert broadcaster.subscriber_count(draft_id) == 0
    assert broadcaster.publish(_event(draft_id)) == 0


def test_event_to_dict():
    draft_id = uuid.uuid4()

    payload = _event(draft_id, EventType.TRADE_EXECUTED).to_dict()

    assert payload["type"] == "TradeExecuted"
    assert payload["draft_id"] == str(draft_id)
    assert "created_at" in payload


def test_notify_without_broadcaster_is_noop():
    notify(None, _event(uuid.uuid4()))


def test_notify_swallows_publish_failure():
    """A broken broadcaster never fails the change that triggered it."""
    broadcaster = MagicMock()
    broadcaster.publish.side_effect = RuntimeError("boom")

    notify(broadcaster, _event(uuid.uuid4()))

    broadcaster.publish.assert_called_once()
