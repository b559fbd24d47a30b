import pytest


from datetime import datetime, timedelta, timezone
from . import mock_iam
from . import mock_ses
from library.config import Config
from library.key_audit import AuditStatus
import notify_iam_stale_keys
import clean_iam_stale_keys


@pytest.fixture
def later(monkeypatch):
    """ Move configured `now` the given number of days forward """
    def move(days):
        moved = datetime.now(timezone.utc) + timedelta(days=days)
        monkeypatch.setattr(Config, "now", property(lambda self: moved))
    return move


def test_lambda_notifies_and_deletes(aws, monkeypatch, later):
    mock_ses.create_env()
    keys = mock_iam.create_env({
        "alice": {"Tags": {"email": "a@x.com"}},
        "bob": {},
    })
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", mock_ses.SENDER)
    monkeypatch.setenv("DRY_RUN", "--dry-run")
    later(120)

    response = notify_iam_stale_keys.lambda_handler({}, None)

    assert response['status'] == "ok"
    assert [notice['username'] for notice in response['notices']] == ["alice"]
    assert response['notices'][0]['older_than'] == "57"
    assert response['notified'] == 1
    assert response['deleted'] == keys["alice"]
    assert mock_iam.access_keys("alice") == []
    assert mock_iam.access_keys("bob") == keys["bob"]


def test_lambda_without_sentinel_keeps_keys(aws, monkeypatch, later):
    mock_ses.create_env()
    keys = mock_iam.create_env({"alice": {"Tags": {"email": "a@x.com"}}})
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", mock_ses.SENDER)
    monkeypatch.setenv("DRY_RUN", "true")
    later(120)

    response = notify_iam_stale_keys.lambda_handler({}, None)

    assert response['status'] == "ok"
    assert response['notified'] == 1
    assert response['deleted'] == []
    assert mock_iam.access_keys("alice") == keys["alice"]


def test_lambda_without_sender_still_deletes(aws, monkeypatch, later):
    keys = mock_iam.create_env({"alice": {"Tags": {"email": "a@x.com"}}})
    monkeypatch.setenv("DRY_RUN", "--dry-run")
    later(120)

    response = notify_iam_stale_keys.lambda_handler({}, None)

    assert response['status'] == "partial_failure"
    assert [notice['username'] for notice in response['notices']] == ["alice"]
    assert [failure['action'] for failure in response['failures']] == ["notify"]
    assert response['deleted'] == keys["alice"]
    assert mock_iam.access_keys("alice") == []


def test_lambda_never_raises(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("boom")
    monkeypatch.setattr(notify_iam_stale_keys, "Config", broken)

    response = notify_iam_stale_keys.lambda_handler({}, None)

    assert response['status'] == "aborted"
    assert response['reason'] == "unexpected error"


def test_runner_batch(aws, monkeypatch, later):
    mock_ses.create_env()
    mock_iam.create_env({"carol": {"Tags": {"email": "c@x.com"}}})
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", mock_ses.SENDER)
    monkeypatch.setenv("DRY_RUN", "--dry-run")
    later(120)

    result = clean_iam_stale_keys.clean_iam_stale_keys(Config(), batch=True)

    assert result.status == AuditStatus.Ok
    assert mock_iam.access_keys("carol") == []


def test_runner_asks_confirmation(aws, monkeypatch, later):
    mock_ses.create_env()
    mock_iam.create_env({"carol": {"Tags": {"email": "c@x.com"}}})
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", mock_ses.SENDER)
    monkeypatch.setenv("DRY_RUN", "--dry-run")
    later(120)
    questions = []

    def confirm(question, default=None):
        questions.append(question)
        return False
    monkeypatch.setattr(clean_iam_stale_keys, "confirm", confirm)

    result = clean_iam_stale_keys.clean_iam_stale_keys(Config(), batch=False, older_than=100)

    assert len(questions) == 1
    assert "carol" in questions[0]
    assert result.deleted == []
    assert len(mock_iam.access_keys("carol")) == 1


def test_runner_exit_codes(aws, monkeypatch, later):
    mock_iam.create_env({"carol": {"Tags": {"email": "c@x.com"}}})
    later(120)

    # no sender, so notification fails
    assert clean_iam_stale_keys.main(["--batch"]) == 2

    mock_ses.create_env()
    monkeypatch.setenv("EMAIL_FROM_ADDRESS", mock_ses.SENDER)
    assert clean_iam_stale_keys.main(["--batch"]) == 0


def test_runner_unexpected_error(monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("boom")
    monkeypatch.setattr(clean_iam_stale_keys, "Config", broken)

    assert clean_iam_stale_keys.main(["--batch"]) == 1
