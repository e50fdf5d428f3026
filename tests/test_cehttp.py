import io

import pytest

from tektonrelay.cehttp import CloudEventError, from_request


def test_valid_cloud_event():
    event = from_request(
        {
            "Ce-Id": "123",
            "Ce-Type": "test.event",
            "Ce-Source": "test",
            "Ce-Specversion": "1.0",
        },
        b'{"key":"value"}',
    )
    assert event.id == "123"
    assert event.type == "test.event"
    assert event.source == "test"
    assert event.spec_version == "1.0"


def test_missing_id():
    with pytest.raises(CloudEventError, match="Ce-Id"):
        from_request({"Ce-Type": "test.event", "Ce-Source": "test"})


def test_missing_type():
    with pytest.raises(CloudEventError, match="Ce-Type"):
        from_request({"Ce-Id": "123", "Ce-Source": "test"})


def test_missing_source():
    with pytest.raises(CloudEventError, match="Ce-Source"):
        from_request({"Ce-Id": "123", "Ce-Type": "test.event"})


def test_empty_header_counts_as_missing():
    with pytest.raises(CloudEventError, match="Ce-Id"):
        from_request({"Ce-Id": "", "Ce-Type": "test.event", "Ce-Source": "test"})


def test_with_body():
    body = b'{"pipeline":"run-123"}'
    event = from_request(
        {"Ce-Id": "456", "Ce-Type": "pipeline.completed", "Ce-Source": "tekton"},
        body,
    )
    assert event.data == body


def test_body_from_stream_and_lowercase_headers():
    event = from_request(
        {"ce-id": "456", "ce-type": "pipeline.completed", "ce-source": "tekton"},
        io.BytesIO(b'{"pipeline":"run-123"}'),
    )
    assert event.id == "456"
    assert event.data == b'{"pipeline":"run-123"}'


def test_missing_body_and_optional_headers():
    event = from_request({"Ce-Id": "1", "Ce-Type": "t", "Ce-Source": "s"})
    assert event.data == b""
    assert event.subject == ""
    assert event.time == ""