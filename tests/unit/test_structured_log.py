"""
Unit tests for the JSONL invocation audit trail.
"""

import pytest

from hollow.utils import structured_log


@pytest.mark.unit
@pytest.mark.fast
def test_logging_is_noop_until_configured(tmp_path):
    """Test log calls without configuration write nothing."""
    assert not structured_log.is_configured()

    structured_log.log_invocation("f", "success")
    structured_log.log_attempt("f", 1, "success")

    assert list(tmp_path.iterdir()) == []


@pytest.mark.unit
@pytest.mark.fast
def test_events_are_written_as_json_lines(tmp_path):
    """Test attempt and invocation events land in invocations.jsonl."""
    path = structured_log.configure_run_logging(str(tmp_path / "audit"))

    structured_log.log_attempt("f", 1, "failed", error_kind="DecodeError", raw_response="I'm not sure.")
    structured_log.log_invocation(
        "f",
        "failed",
        key="a" * 64,
        error_kind="DecodeError",
        error="No structured fragment found",
        attempts=1,
        latency_ms=12,
    )

    events = structured_log.load_events_from_jsonl(str(path))
    assert path.name == structured_log.AUDIT_FILE_NAME
    assert [e["event"] for e in events] == ["attempt", "invocation"]
    assert events[0]["raw_response"] == "I'm not sure."
    assert events[1]["key"] == "a" * 16
    assert events[1]["attempts"] == 1
    assert "cache_hit" not in events[1]
    assert events[1]["level"] == "info"
    assert "timestamp" in events[1]


@pytest.mark.unit
@pytest.mark.fast
def test_long_raw_response_is_previewed(tmp_path):
    """Test large raw replies are truncated to a preview field."""
    path = structured_log.configure_run_logging(str(tmp_path))

    structured_log.log_attempt("f", 2, "failed", raw_response="x" * 1000)

    event = structured_log.load_events_from_jsonl(str(path))[0]
    assert "raw_response" not in event
    assert event["raw_response_preview"] == "x" * 200 + "..."


@pytest.mark.unit
@pytest.mark.fast
def test_configure_is_idempotent(tmp_path):
    """Test a second configure call keeps the first file."""
    first = structured_log.configure_run_logging(str(tmp_path / "one"))
    structured_log.configure_run_logging(str(tmp_path / "two"))
    structured_log.log_invocation("f", "success", cache_hit=True, coalesced=True)

    events = structured_log.load_events_from_jsonl(str(first))
    assert events[0]["cache_hit"] is True
    assert events[0]["coalesced"] is True
    assert not (tmp_path / "two").exists()


@pytest.mark.unit
@pytest.mark.fast
def test_reset_closes_file(tmp_path):
    """Test reset returns to the unconfigured state."""
    structured_log.configure_run_logging(str(tmp_path))
    structured_log.reset_run_logging()

    assert not structured_log.is_configured()


@pytest.mark.unit
@pytest.mark.fast
def test_load_events_skips_bad_lines(tmp_path):
    """Test unparseable lines and missing files are tolerated."""
    path = tmp_path / "invocations.jsonl"
    path.write_text('{"event": "invocation"}\nnot json\n\n{"event": "attempt"}\n')

    assert [e["event"] for e in structured_log.load_events_from_jsonl(str(path))] == [
        "invocation",
        "attempt",
    ]
    assert structured_log.load_events_from_jsonl(str(tmp_path / "missing.jsonl")) == []
