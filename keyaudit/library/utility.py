import json
import time
import logging
import functools

from datetime import datetime


def jsonEncoder(obj):
    """ AWS responses carry datetimes, dump them as ISO strings """
    if isinstance(obj, datetime):
        return obj.isoformat()
    return None


def jsonDumps(obj, **kwargs):
    """ :return: indented json of AWS response for debug logs """
    return json.dumps(obj, indent=4, default=jsonEncoder, **kwargs)


def timeit(method):
    """ Log duration of decorated call at debug level """
    @functools.wraps(method)
    def timed(*args, **kwargs):
        started = time.perf_counter()
        try:
            return method(*args, **kwargs)
        finally:
            logging.debug(f"'{method.__name__}' took {time.perf_counter() - started:.2f}s")
    return timed


ANSWERS = {"y": True, "yes": True, "n": False, "no": False}


def confirm(question, default=None):
    """
    Ask yes/no question on terminal until it is answered.

    :param question: text to show
    :param default: answer for empty input, None requires explicit answer

    :return: boolean answer, `default` (or False) when input is closed
    """
    hint = {None: "[y/n]", True: "[Y/n]", False: "[y/N]"}[default]
    while True:
        try:
            answer = input(f"{question} {hint} ").strip().lower()
        except EOFError:
            print()
            return bool(default)
        if not answer and default is not None:
            return default
        if answer in ANSWERS:
            return ANSWERS[answer]
        print("Please respond with 'yes' or 'no'")
