import os
import logging
import pytest


from library.logger import set_logging
from moto import mock_aws


REGION = "us-east-1"


def pytest_sessionstart(session):
    if session.config.option.verbose > 2:
        set_logging(level=logging.DEBUG) #, logfile="tests.log")

    # never touch real AWS account
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = REGION


@pytest.fixture
def aws():
    """ Fresh moto backends (IAM, SES, STS) for each test """
    with mock_aws():
        yield


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """ Isolate tests from notification settings and config files of the environment """
    monkeypatch.delenv("EMAIL_FROM_ADDRESS", raising=False)
    monkeypatch.delenv("DRY_RUN", raising=False)
    monkeypatch.chdir(tmp_path)
