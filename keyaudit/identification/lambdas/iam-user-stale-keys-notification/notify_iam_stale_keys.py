import logging


from botocore.exceptions import BotoCoreError, ClientError
from library.logger import set_logging
from library.config import Config
from library.aws.utility import Account
from library.key_audit import StaleKeysAudit, AuditResult


def lambda_handler(event, context):
    """ Lambda handler to notify IAM users about stale access keys and delete the oldest ones """
    set_logging(level=logging.INFO)
    logging.debug("Initiating IAM user stale keys notification")

    try:
        config = Config()

        if not config.staleKeys.enabled:
            logging.debug("IAM user stale keys notification disabled")
            result = AuditResult()
            result.abort("disabled")
            return result.as_dict()

        account = Account(region=config.region)
        audit = StaleKeysAudit(account=account,
                               email_from_address=config.staleKeys.email_from_address,
                               deletion_mode=config.staleKeys.deletion_mode,
                               now=config.now,
                               in_whitelist=config.staleKeys.in_whitelist)
        result = audit.run()
    except (ClientError, BotoCoreError):
        logging.exception("Couldn't load AWS configuration")
        result = AuditResult()
        result.abort("failed to load AWS configuration")
    except Exception:
        logging.exception("Failed to check IAM user stale keys")
        result = AuditResult()
        result.abort("unexpected error")

    logging.info(f"IAM user stale keys notification done: {result}")
    return result.as_dict()
