"""
Stale IAM access keys audit: find keys older than notification thresholds,
notify owners by email and delete keys past deletion criteria.
"""
import logging

from enum import Enum
from datetime import datetime, timezone
from botocore.exceptions import BotoCoreError, ClientError
from library.aws.iam import StaleKeyChecker, DELETION_CRITERIA_DAYS
from library.aws.ses import SESOperations


# the only value of dry run flag which allows stale keys deletion
DELETION_SENTINEL = "--dry-run"

NOTIFICATION_SUBJECT = "Secret Key Expiration Warning"
NOTIFICATION_BODY = "Your secret keys are older than {days} days and will be deleted."


class DeletionMode(Enum):
    # keys past deletion criteria are deleted after notification
    EnableDestructiveAction = "enable_destructive_action"
    # notifications only
    Default = "default"

    @classmethod
    def from_flag(cls, flag):
        """
        :param flag: raw dry run flag value

        :return: `EnableDestructiveAction` if flag exactly matches deletion sentinel, `Default` otherwise
        """
        return cls.EnableDestructiveAction if flag == DELETION_SENTINEL else cls.Default


class AuditStatus(Enum):
    # all notices were processed without errors
    Ok = "ok"
    # some notifications/deletions failed
    PartialFailure = "partial_failure"
    # configuration or enumeration failed, nothing was processed
    Aborted = "aborted"


class AuditResult(object):
    """
    Outcome of one audit run.
    Distinguishes completed run from the run where all work succeeded.
    """
    def __init__(self):
        # all `StaleKeyNotice` found
        self.notices = []
        # notices owners were notified about
        self.notified = []
        # notices which keys were deleted
        self.deleted = []
        # notices for whitelisted users/keys
        self.skipped = []
        # list of (notice, action, error message)
        self.failures = []
        # reason of aborting the run
        self.abort_reason = None

    def __str__(self):
        return (f"{self.__class__.__name__}("
                f"Status={self.status.value}, "
                f"Notices={len(self.notices)}, "
                f"Notified={len(self.notified)}, "
                f"Deleted={len(self.deleted)}, "
                f"Skipped={len(self.skipped)}, "
                f"Failures={len(self.failures)}"
                f")")

    def abort(self, reason):
        self.abort_reason = reason

    def add_failure(self, notice, action, error):
        self.failures.append((notice, action, str(error)))

    @property
    def status(self):
        if self.abort_reason is not None:
            return AuditStatus.Aborted
        elif self.failures:
            return AuditStatus.PartialFailure
        return AuditStatus.Ok

    def as_dict(self):
        """ :return: dict with run summary ready to be returned from lambda """
        return {
            'status': self.status.value,
            'reason': self.abort_reason,
            'notices': [
                {'username': notice.username,
                 'key_id': notice.key.id,
                 'create_date': notice.key.create_date.isoformat(),
                 'older_than': notice.older_than}
                for notice in self.notices
            ],
            'notified': len(self.notified),
            'deleted': [notice.key.id for notice in self.deleted],
            'skipped': [notice.key.id for notice in self.skipped],
            'failures': [
                {'username': notice.username,
                 'key_id': notice.key.id,
                 'action': action,
                 'error': error}
                for notice, action, error in self.failures
            ],
        }


class StaleKeysAudit(object):
    """ Enumerate stale access keys in account, then notify and delete for each of them """
    def __init__(self, account, email_from_address,
                 deletion_mode=DeletionMode.Default,
                 now=None,
                 older_than=None,
                 in_whitelist=None,
                 confirm_deletion=None):
        """
        :param account: `Account` instance to audit
        :param email_from_address: sender address of notifications
        :param deletion_mode: `DeletionMode`
        :param now: `datetime` to measure keys age at, current time when omitted
        :param older_than: number of days to check before default 57/50 days thresholds, can be omitted
        :param in_whitelist: function (account_id, user name or key id) -> boolean to skip whitelisted keys
        :param confirm_deletion: function (notice) -> boolean to ask for each deletion, can be omitted
        """
        self.account = account
        self.email_from_address = email_from_address
        self.deletion_mode = deletion_mode
        self.now = now if now is not None else datetime.now(timezone.utc)
        self.older_than = older_than
        self.in_whitelist = in_whitelist
        self.confirm_deletion = confirm_deletion
        # resolved on run, only when whitelist is set
        self.account_id = None

    def run(self):
        """
        :return: `AuditResult` instance
        """
        result = AuditResult()

        if not self.email_from_address:
            # every notification fails then, deletions still go on
            logging.warning("Sender email address is not configured")

        try:
            credentials = self.account.credentials
            # whitelist is kept by account id
            self.account_id = self.account.id if self.in_whitelist is not None else None
        except (ClientError, BotoCoreError):
            logging.exception(f"Couldn't load AWS configuration for {self.account}")
            result.abort("failed to load AWS configuration")
            return result
        if credentials is None:
            logging.error("Couldn't load AWS configuration, no credentials available")
            result.abort("no AWS credentials available")
            return result

        result.notices = self.find_candidates(result)
        if result.status == AuditStatus.Aborted:
            return result

        self.act(result)
        logging.debug(f"Audit of {self.account} finished: {result}")
        return result

    def find_candidates(self, result):
        """
        :param result: `AuditResult` to mark as aborted in case of failure

        :return: list with `StaleKeyNotice` in discovery order
        """
        checker = StaleKeyChecker(account=self.account,
                                  now=self.now,
                                  older_than=self.older_than)
        try:
            checked = checker.check()
        except (ClientError, BotoCoreError):
            logging.exception(f"Failed to check IAM access keys in {self.account}")
            checked = False

        if not checked:
            result.abort(f"failed to enumerate IAM users access keys in {self.account}")
            return []
        return checker.notices

    def whitelisted(self, notice):
        if self.in_whitelist is None:
            return False
        return self.in_whitelist(self.account_id, notice.username) or \
               self.in_whitelist(self.account_id, notice.key.id)

    def act(self, result):
        """
        Notify owner and delete key (if allowed) for each notice in `result`.
        Failure on any step is recorded and does not stop processing.

        :param result: `AuditResult` with notices

        :return: nothing
        """
        ses_client = self.account.client("ses")
        iam_client = self.account.client("iam")

        for notice in result.notices:
            key_id = notice.key.id
            username = notice.username

            if self.whitelisted(notice):
                logging.debug(f"Skipping '{key_id} / {username}' (in whitelist)")
                result.skipped.append(notice)
                continue

            self.notify(ses_client, notice, result)

            if not notice.key.deletion_due:
                continue

            if self.deletion_mode != DeletionMode.EnableDestructiveAction:
                logging.debug(f"Skipping deletion of '{key_id} / {username}' (deletion is disabled)")
                continue

            if self.confirm_deletion is not None and not self.confirm_deletion(notice):
                logging.debug(f"Skipping deletion of '{key_id} / {username}' (not confirmed)")
                continue

            self.delete(iam_client, notice, result)

    def notify(self, ses_client, notice, result):
        try:
            message_id = SESOperations.send_text_email(
                ses_client,
                source=self.email_from_address,
                to_address=notice.email,
                subject=NOTIFICATION_SUBJECT,
                body=NOTIFICATION_BODY.format(days=notice.older_than)
            )
        except (ClientError, BotoCoreError) as err:
            logging.exception(f"Failed to notify {notice.email} about '{notice.key.id} / {notice.username}'")
            result.add_failure(notice, "notify", err)
            return

        logging.info(f"Notified {notice.email} about '{notice.key.id} / {notice.username}' ({message_id})")
        result.notified.append(notice)

    def delete(self, iam_client, notice, result):
        try:
            notice.key.delete(iam_client)
        except (ClientError, BotoCoreError) as err:
            logging.exception(f"Failed to delete '{notice.key.id} / {notice.username}' access key")
            result.add_failure(notice, "delete", err)
            return

        logging.info(f"Deleted '{notice.key.id} / {notice.username}' access key "
                     f"(older than {DELETION_CRITERIA_DAYS} days)")
        result.deleted.append(notice)
