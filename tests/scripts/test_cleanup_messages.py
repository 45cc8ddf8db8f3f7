"""Tests for the message retention cleanup CLI."""

import json
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from scripts.cleanup_messages import cleanup_messages, main
from tests.app.messages.fakes import FakeMessageRepository
from tests.app.messages.test_message_service import received


def aged(msg_id, project, days):
    message = received(msg_id, f"provider-{msg_id}", project=project)
    message.received_at = datetime.now(timezone.utc) - timedelta(days=days)
    return message


@pytest.fixture
def repository():
    return FakeMessageRepository(
        received=[
            aged("old-1", "proj-1", 40),
            aged("new-1", "proj-1", 2),
            aged("old-2", "proj-2", 45),
        ]
    )


def test_cleans_every_project_by_default(repository):
    result = cleanup_messages(30, repository=repository)

    assert result["project"] == "*"
    assert result["deleted_count"] == 2
    assert [m.id for m in repository.received] == ["new-1"]


def test_limits_to_one_project(repository):
    result = cleanup_messages(30, "proj-2", repository=repository)

    assert result["deleted_count"] == 1
    assert repository.delete_calls[0][0] == "proj-2"


def test_rejects_non_positive_days(repository):
    with pytest.raises(ValueError):
        cleanup_messages(0, repository=repository)


def test_main_prints_json(capsys):
    with patch("scripts.cleanup_messages.cleanup_messages") as mock_cleanup:
        mock_cleanup.return_value = {"project": "proj-1", "cutoff": "x", "deleted_count": 3}

        main(["--days", "7", "--project", "proj-1"])

    mock_cleanup.assert_called_once_with(7, "proj-1")
    captured = capsys.readouterr()
    assert json.loads(captured.out)["deleted_count"] == 3
    assert "Logging initialized" in captured.err
