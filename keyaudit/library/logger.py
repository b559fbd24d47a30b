import sys
import logging
import logging.handlers
try:
    # only command line runs ship logs with watchtower, lambda runtime does it on its own
    import watchtower
except ImportError:
    pass


from boto3.session import Session


# libraries logging every request
QUIET_LOGGERS = ['boto3', 'botocore', 'urllib3']


def get_formatter(level):
    """ :return: `logging.Formatter`, debug one points to source line """
    if level == logging.DEBUG:
        return logging.Formatter("[%(levelname)s]\t%(asctime)s\t%(module)s.%(funcName)s:%(lineno)d\t%(message)s")
    return logging.Formatter("[%(levelname)s]\t%(asctime)s\t%(message)s")


def set_logging(level=logging.ERROR, logfile=None):
    """
    Configure root logger for lambda or command line run.
    Lambda runtime installs its own handler, only its format is changed for debug runs.

    :param level: logging level
    :param logfile: file to log to besides console, can be omitted

    :return: root logger
    """
    root = logging.getLogger()
    root.setLevel(level)
    formatter = get_formatter(level)

    if not root.handlers:
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        root.addHandler(console)
    elif level == logging.DEBUG and type(root.handlers[0]).__name__ == "LambdaLoggerHandler":
        root.handlers[0].setFormatter(formatter)

    if logfile:
        rotating = logging.handlers.RotatingFileHandler(logfile, maxBytes=1048576, backupCount=2)
        rotating.setFormatter(formatter)
        root.addHandler(rotating)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.CRITICAL)

    return root


def add_cw_logging(log_group, log_stream="default", level=logging.ERROR, region=None):
    """
    Ship root logger records to precreated CloudWatch log group.

    :param log_group: CloudWatch log group name, nothing is done when empty
    :param log_stream: CloudWatch log stream name
    :param level: logging level, selects formatter
    :param region: region of log group

    :return: nothing
    """
    if not log_group:
        return

    if "watchtower" not in sys.modules:
        logging.error(f"Logging to '{log_group}' requested, but 'watchtower' is not installed")
        return

    try:
        handler = watchtower.CloudWatchLogHandler(
            log_group_name=log_group,
            log_stream_name=log_stream,
            create_log_group=False,
            send_interval=3,
            boto3_client=Session(region_name=region).client("logs"),
        )
    except Exception:
        logging.exception(f"Failed to set up logging to '{log_group}'")
        return
    handler.setFormatter(get_formatter(level))
    logging.getLogger().addHandler(handler)
