"""Tests for the event log and audit trail."""

from datetime import datetime, timezone

import pydantic
import pytest

from moderation_core.lib.errors import ContentNotFoundError, ValidationError
from moderation_core.models.content import StatusAssignment
from moderation_core.models.enums import AuditAction, EventType, MediaType, Status
from moderation_core.models.review import Audit, ModerationEvent, UpdatedPayload


def test_event_reads_are_stable(services):
    content = services.content.create_content(text="hello", image="https://cdn.example/a.png")
    services.recorder.record_result(content.id, MediaType.TXT, Status.APPROVED, 0.1)
    services.recorder.record_result(content.id, MediaType.IMG, Status.FLAGGED, 0.6)
    services.content.mark_reviewed(content.id, "checked the image")

    first = services.events.list_events(content.id)
    second = services.events.list_events(content.id)
    assert [e.id for e in first] == [e.id for e in second]
    assert [e.event_type for e in first] == [EventType.CREATED, EventType.MODERATED, EventType.MODERATED]
    assert [e.created_at for e in first] == sorted(e.created_at for e in first)


def test_later_operations_do_not_touch_history(services):
    content = services.content.create_content(text="hello")
    services.recorder.record_result(content.id, MediaType.TXT, Status.REJECTED, 0.9)
    services.content.override_statuses(
        content.id,
        StatusAssignment(
            text_status=Status.REJECTED, image_status=Status.PENDING,
            video_status=Status.PENDING, final_status=Status.APPROVED,
        ),
        "manual clearance",
    )
    events_before = services.events.list_events(content.id)
    audits_before = services.audits.list_audits(content.id)

    services.recorder.record_result(content.id, MediaType.TXT, Status.APPROVED, 0.1)
    services.content.mark_reviewed(content.id, "")

    events_after = services.events.list_events(content.id)
    audits_after = services.audits.list_audits(content.id)
    assert events_after[:len(events_before)] == events_before
    assert audits_after[:len(audits_before)] == audits_before
    assert [a.action for a in audits_after] == [AuditAction.OVERRIDDEN, AuditAction.REVIEWED]


def test_same_instant_is_ordered_by_id(store, services):
    content = services.content.create_content(text="hello")
    instant = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    for audit_id in ("c", "a", "b"):
        store.append_audit(Audit(id=audit_id, content_id=content.id, action=AuditAction.REVIEWED, created_at=instant))

    assert [a.id for a in services.audits.list_audits(content.id)] == ["a", "b", "c"]


def test_records_are_immutable(services):
    content = services.content.create_content(text="hello")
    event = services.events.list_events(content.id)[0]
    with pytest.raises(pydantic.ValidationError):
        event.event_type = EventType.UPDATED

    audit = services.content.mark_reviewed(content.id, "ok")
    with pytest.raises(pydantic.ValidationError):
        audit.reason = "rewritten"


def test_mutating_returned_list_does_not_affect_store(services):
    content = services.content.create_content(text="hello")
    services.events.list_events(content.id).clear()
    assert len(services.events.list_events(content.id)) == 1


def test_override_audit_requires_reason(services):
    content = services.content.create_content(text="hello")
    with pytest.raises(ValidationError):
        services.audits.record(content.id, AuditAction.OVERRIDDEN, " ")
    assert services.audits.record(content.id, AuditAction.REVIEWED).reason == ""


def test_unknown_content_histories(services):
    with pytest.raises(ContentNotFoundError):
        services.events.list_events("missing")
    with pytest.raises(ContentNotFoundError):
        services.audits.list_audits("missing")


def test_payload_must_match_event_type():
    statuses = StatusAssignment(
        text_status=Status.PENDING, image_status=Status.PENDING,
        video_status=Status.PENDING, final_status=Status.PENDING,
    )
    with pytest.raises(pydantic.ValidationError):
        ModerationEvent(
            content_id="c1",
            event_type=EventType.MODERATED,
            payload=UpdatedPayload(old_statuses=statuses, new_statuses=statuses),
        )
    with pytest.raises(pydantic.ValidationError):
        ModerationEvent(content_id="c1", event_type=EventType.CREATED, payload={"unexpected": 1})


def test_payload_parsed_from_stored_json():
    event = ModerationEvent.model_validate({
        "id": "e1",
        "content_id": "c1",
        "event_type": "MODERATED",
        "payload": {
            "mediaType": "IMG",
            "status": "REJECTED",
            "riskScore": 0.97,
            "previousFinalStatus": "PENDING",
            "finalStatus": "REJECTED",
        },
        "created_at": "2024-05-01T12:00:00+00:00",
    })
    assert event.payload.media_type == MediaType.IMG
    assert event.transition() == (Status.PENDING, Status.REJECTED)
    assert event.model_dump(by_alias=True, mode="json")["payload"]["finalStatus"] == "REJECTED"
