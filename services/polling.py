import logging
import time

from services.hackerrank_service import sync_all_linked_hackerrank_users
from services.leetcode_service import sync_all_leetcode_users

logger = logging.getLogger(__name__)


def run_polling(interval, iterations=None, sleep=time.sleep):
    """Poll the external feeds one user at a time, forever or ``iterations`` times.

    Must run inside an application context.
    """
    count = 0
    while iterations is None or count < iterations:
        logger.info("Polling iteration %s started", count + 1)
        try:
            sync_all_linked_hackerrank_users()
        except Exception:
            logger.exception("HackerRank polling pass failed")
        try:
            sync_all_leetcode_users()
        except Exception:
            logger.exception("LeetCode polling pass failed")

        count += 1
        if iterations is not None and count >= iterations:
            break
        sleep(interval)
    return count
