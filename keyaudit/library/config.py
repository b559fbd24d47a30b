import json
import logging
import os


from datetime import datetime, timezone
from library.key_audit import DeletionMode


class Config(object):
    """
    Key audit settings.
    Lambda is configured with environment variables only, `config.json` and `whitelist.json`
    are optional and lose to environment where both define a value.
    """
    def __init__(self,
                 configFile="config.json",
                 whitelistFile="whitelist.json"):
        """
        :param configFile: local path to json file with `region` and `stale_keys` section
        :param whitelistFile: local path to json file {"stale_keys": {"account id": ["user or key id", ...]}}
        """
        self._config = self.load_json(configFile)
        whitelist = self.load_json(whitelistFile)
        self.staleKeys = StaleKeysConfig(self._config.get("stale_keys", {}),
                                         whitelist.get("stale_keys", {}))

    @property
    def region(self):
        """ :return: region to audit in, `AWS_DEFAULT_REGION` wins """
        return os.environ.get("AWS_DEFAULT_REGION") or self._config.get("region")

    @property
    def now(self):
        return datetime.now(timezone.utc)

    @staticmethod
    def load_json(filename):
        """
        :param filename: json file to read

        :return: dict with file content, empty dict if there is no such file

        .. note:: malformed file is logged and raised
        """
        try:
            with open(filename, "rb") as fh:
                return json.load(fh)
        except FileNotFoundError:
            return {}
        except ValueError:
            logging.error(f"Can't parse config from {filename}")
            raise


class StaleKeysConfig(object):
    """ `stale_keys` section of config.json with environment overrides """
    def __init__(self, section, whitelist):
        self._config = section
        # user names and key ids to leave alone, by account id
        self._whitelist = whitelist

    @property
    def enabled(self):
        return self._config.get("enabled", True)

    @property
    def email_from_address(self):
        return os.environ.get("EMAIL_FROM_ADDRESS") or self._config.get("email_from_address")

    @property
    def dry_run(self):
        """ :return: raw dry run flag, set but empty `DRY_RUN` still overrides config """
        if "DRY_RUN" in os.environ:
            return os.environ["DRY_RUN"]
        return self._config.get("dry_run", "")

    @property
    def deletion_mode(self):
        return DeletionMode.from_flag(self.dry_run)

    @property
    def log_group(self):
        """ :return: CloudWatch log group for command line runs, None to skip """
        return self._config.get("log_group")

    def in_whitelist(self, account_id, name):
        """
        :param account_id: AWS account Id
        :param name: user name or access key Id

        :return: boolean, if keys of the user (or the key itself) must not be touched
        """
        return name in self._whitelist.get(account_id, [])
