"""
Notify owners of stale IAM access keys and delete the oldest keys from command line.
Unlike lambda, each deletion is confirmed on terminal unless run in batch mode.
"""
import sys
import logging
import argparse


from library.logger import set_logging, add_cw_logging
from library.config import Config
from library.aws.utility import Account
from library.key_audit import StaleKeysAudit, AuditStatus
from library.utility import confirm


def ask_deletion(notice):
    return confirm(f"Delete access key '{notice.key.id}' of '{notice.username}' "
                   f"(older than {notice.older_than} days)?", False)


def clean_iam_stale_keys(config, batch=False, older_than=None):
    """
    Audit stale access keys of the current account.

    :param config: `Config` instance
    :param batch: boolean, delete without confirmation
    :param older_than: number of days to check before default 57/50 days thresholds, can be omitted

    :return: `AuditResult` instance
    """
    account = Account(region=config.region)
    logging.debug(f"Auditing stale access keys in {account}")
    audit = StaleKeysAudit(account=account,
                           email_from_address=config.staleKeys.email_from_address,
                           deletion_mode=config.staleKeys.deletion_mode,
                           now=config.now,
                           older_than=older_than,
                           in_whitelist=config.staleKeys.in_whitelist,
                           confirm_deletion=None if batch else ask_deletion)
    result = audit.run()
    if result.status != AuditStatus.Ok:
        logging.error(f"Audit of {account} finished with '{result.status.value}' status")
    return result


def main(argv=None):
    """ :return: exit code, 0 - all keys processed, 2 - audit was not clean, 1 - unexpected error """
    parser = argparse.ArgumentParser(description="Notify about and delete stale IAM access keys")
    parser.add_argument('--batch', action='store_true', help='Do not ask confirmation for deletion')
    parser.add_argument('--older-than', type=int, dest='older_than', default=None,
                        help='Number of days to check access keys age against before default 57/50 days')
    parser.add_argument('--log-file', dest='log_file', default=None, help='File to write log to')
    parser.add_argument('--debug', action='store_true', help='Log debug messages')
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.debug else logging.INFO
    set_logging(level=level, logfile=args.log_file)

    try:
        config = Config()
        add_cw_logging(config.staleKeys.log_group,
                       log_stream="clean_iam_stale_keys",
                       level=level,
                       region=config.region)
        result = clean_iam_stale_keys(config, batch=args.batch, older_than=args.older_than)
    except Exception:
        logging.exception("Failed to clean stale IAM user keys")
        return 1

    logging.info(f"Stale keys cleanup done: {result}")
    return 0 if result.status == AuditStatus.Ok else 2


if __name__ == "__main__":
    sys.exit(main())
