import logging
import time


from boto3.session import Session


class Account(object):
    """
    AWS account the audit runs in, i.e. the one ambient credentials belong to.
    Lambda containers are reused between invocations, so the boto3 session is recreated after `session_ttl`.
    """
    session_ttl = 1800

    def __init__(self, region=None):
        """
        :param region: region for SES/IAM clients, boto3 default resolution is used when omitted
        """
        self.region = region
        self._id = None
        self._session = None
        self._session_created = 0

    def __str__(self):
        region = f", region='{self.region}'" if self.region else ""
        return f"{self.__class__.__name__}(id='{self._id or 'current'}'{region})"

    @property
    def session(self):
        """ :return: cached `boto3.session.Session` """
        if self._session is None or time.time() - self._session_created > self.session_ttl:
            args = {'region_name': self.region} if self.region else {}
            self._session = Session(**args)
            self._session_created = time.time()
            logging.debug(f"Created session for {self}")
        return self._session

    @property
    def credentials(self):
        """ :return: botocore credentials from the default chain, None if there are none """
        return self.session.get_credentials()

    @property
    def id(self):
        """ :return: account id, asked from STS once """
        if self._id is None:
            self._id = self.client("sts").get_caller_identity()['Account']
        return self._id

    def client(self, service_name, **args):
        """
        :param service_name: name of AWS service

        :return: low-level service client bound to account session
        """
        return self.session.client(service_name, **args)
