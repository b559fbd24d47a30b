import logging

from botocore.exceptions import ClientError
from library.utility import jsonDumps
from library.utility import timeit
from collections import namedtuple
from datetime import timedelta


# IAM user tag with address to send notifications to
EMAIL_TAG = "email"
# keys older than this number of days can be deleted
DELETION_CRITERIA_DAYS = 100


# stale access key to notify user about
StaleKeyNotice = namedtuple('StaleKeyNotice', [
    # IAM user name
    'username',
    # address from user email tag
    'email',
    # `IAMKey` instance
    'key',
    # label of the age threshold crossed ("57", "50" or explicitly requested number of days)
    'older_than'
    ])


def is_key_old(create_date, now, older_than=None):
    """
    Classify access key by its creation date.
    Thresholds are checked one by one and first match wins:
    `older_than` (only if supplied), then 57 days, then 50 days.

    :param create_date: `datetime` when access key was created
    :param now: `datetime` to measure key age at
    :param older_than: number of days to check before default thresholds, can be omitted

    :return: tuple (boolean, string), True and label of the crossed threshold - if key is old,
                                      False and empty string - otherwise
    """
    if older_than is not None and create_date + timedelta(days=older_than) < now:
        return True, f"{older_than}"
    elif create_date + timedelta(days=57) < now:
        return True, "57"
    elif create_date + timedelta(days=50) < now:
        return True, "50"
    else:
        return False, ""


class IAMOperations:
    @staticmethod
    def paginate(iam_client, operation_name, result_key, **kwargs):
        """
        Lazily walk through all pages of IAM list API call following `Marker` until it is absent.

        :param iam_client: IAM boto3 client
        :param operation_name: name of paginated client method (e.g. 'list_users')
        :param result_key: response key with list of items
        :param kwargs: API call parameters

        :return: generator over items of all pages in page order
        """
        paginator = iam_client.get_paginator(operation_name)
        for page in paginator.paginate(**kwargs):
            yield from page.get(result_key, [])

    @classmethod
    @timeit
    def list_users(cls, iam_client):
        """ :return: list with all IAM users in account as AWS returns """
        return list(cls.paginate(iam_client, "list_users", "Users"))

    @classmethod
    def get_user_tag(cls, iam_client, user_name, tag_key):
        """
        Search for user tag value by exact tag key, stops listing tags as soon as tag is found.

        :return: string with tag value or None if user has no such tag
        """
        for tag in cls.paginate(iam_client, "list_user_tags", "Tags", UserName=user_name):
            if tag["Key"] == tag_key:
                return tag["Value"]
        return None

    @classmethod
    def list_access_keys(cls, iam_client, user_name):
        """ :return: list with access keys metadata of the user as AWS returns """
        return list(cls.paginate(iam_client, "list_access_keys", "AccessKeyMetadata", UserName=user_name))

    @staticmethod
    def delete_access_key(iam_client, user_name, key_id):
        iam_client.delete_access_key(
            UserName=user_name,
            AccessKeyId=key_id
        )


class User(object):
    """ IAM user with notification address and its access keys """
    def __init__(self, username, email, now):
        """
        :param username: name of IAM user
        :param email: value of user email tag
        :param now: `datetime` to measure keys age at
        """
        self.id = username
        self.email = email
        self.now = now
        self.keys = []

    def __str__(self):
        return f"{self.__class__.__name__}(Name={self.id}, Email={self.email}, Keys={len(self.keys)})"

    def add_key(self, metadata):
        """ :return: `IAMKey` built from `ListAccessKeys` item and added to user keys """
        key = IAMKey(self, metadata)
        self.keys.append(key)
        return key


class IAMKey(object):
    """ Access key of `User`, keeps metadata AWS returns for it """
    def __init__(self, user, metadata):
        self.user = user
        self.metadata = metadata
        self.id = metadata["AccessKeyId"]
        # 'Active' / 'Inactive', keys are audited regardless of it
        self.status = metadata["Status"]
        self.create_date = metadata["CreateDate"]

    def __str__(self):
        return f"{self.__class__.__name__}(Id={self.id}, Status={self.status}, Created={self.create_date})"

    def classify(self, older_than=None):
        """ :return: tuple (boolean, string) as `is_key_old` returns """
        return is_key_old(self.create_date, self.user.now, older_than)

    @property
    def deletion_due(self):
        """ :return: boolean, True - if key was created more than `DELETION_CRITERIA_DAYS` ago """
        return self.create_date + timedelta(days=DELETION_CRITERIA_DAYS) < self.user.now

    def delete(self, iam_client):
        IAMOperations.delete_access_key(iam_client, self.user.id, self.id)


class StaleKeyChecker(object):
    """
    Finds stale access keys of IAM users with email tag.
    Fills `users` with users having email tag and `notices` with one notice per stale key.
    """
    def __init__(self, account, now, older_than=None):
        """
        :param account: `Account` instance with IAM users to check
        :param now: `datetime` to measure keys age at
        :param older_than: number of days to check before default 57/50 days thresholds, can be omitted
        """
        self.account = account
        self.now = now
        self.older_than = older_than
        self.users = []
        self.notices = []

    def _log_error(self, err, msg):
        if err.response['Error']['Code'] in ["AccessDenied", "UnauthorizedOperation"]:
            logging.error(f"{msg}: access denied (iam:{err.operation_name})")
        else:
            logging.exception(msg)

    def check(self):
        """
        Notices are ordered as users and then their keys were listed.
        Any listing failure stops the check.

        :return: boolean. True - if check was successful,
                          False - otherwise
        """
        iam_client = self.account.client("iam")
        try:
            users = IAMOperations.list_users(iam_client)
        except ClientError as err:
            self._log_error(err, f"Failed to list users in {self.account}")
            return False

        logging.debug(f"Listed {len(users)} users in {self.account}")
        for user_response in users:
            username = user_response["UserName"]
            try:
                email = IAMOperations.get_user_tag(iam_client, username, EMAIL_TAG)
            except ClientError as err:
                self._log_error(err, f"Failed to list tags of '{username}'")
                return False

            if not email:
                logging.debug(f"Skipping '{username}' (no '{EMAIL_TAG}' tag)")
                continue

            user = User(username, email, self.now)
            self.users.append(user)

            try:
                access_keys = IAMOperations.list_access_keys(iam_client, user.id)
            except ClientError as err:
                self._log_error(err, f"Failed to list access keys of '{user.id}'")
                return False

            logging.debug(f"Access keys of '{user.id}'\n{jsonDumps(access_keys)}")
            for access_key in access_keys:
                key = user.add_key(access_key)
                old, older_than = key.classify(self.older_than)
                if not old:
                    continue
                logging.info(f"Access key '{key.id}' for user '{user.id}' is older than {older_than} days")
                self.notices.append(StaleKeyNotice(
                    username=user.id,
                    email=user.email,
                    key=key,
                    older_than=older_than
                ))
        return True
