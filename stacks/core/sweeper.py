#!/usr/bin/env python

"""
    Background expiry sweep for Stacks.

    The sweeper is a worker thread fed through a message queue. A tick
    arrives either when the interval elapses with nothing else to do or
    when `trigger()` is called; each tick runs `StacksAPI.sweep_expired`,
    which takes per-item locks like any other write. The timer itself
    never touches circulation state.

    Every `reminder_interval` seconds a tick also runs
    `StacksAPI.send_reminders`, sending overdue reminders and notices for
    holds about to expire.

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
import queue
import threading
import time
from stacks.configs import SWEEP_INTERVAL_SECONDS, REMINDER_INTERVAL_SECONDS

logger = logging.getLogger(__name__)

SWEEP = "sweep"
STOP = "stop"


class Sweeper(threading.Thread):

    def __init__(self, api, interval=SWEEP_INTERVAL_SECONDS, on_result=None,
                 reminder_interval=REMINDER_INTERVAL_SECONDS, on_reminders=None):
        super().__init__(name="stacks-sweeper", daemon=True)
        self.api = api
        self.interval = interval
        self.on_result = on_result
        self.reminder_interval = reminder_interval
        self.on_reminders = on_reminders
        self.last_reminded = None
        self.inbox = queue.Queue()

    def trigger(self):
        self.inbox.put(SWEEP)

    def stop(self, timeout=None):
        self.inbox.put(STOP)
        if self.is_alive():
            self.join(timeout)

    def run(self):
        logger.info(f"Sweeper started, interval {self.interval}s")
        while True:
            try:
                message = self.inbox.get(timeout=self.interval)
            except queue.Empty:
                message = SWEEP
            if message == STOP:
                break
            self.sweep()
            if self.reminders_due():
                self.remind()
        logger.info("Sweeper stopped")

    def sweep(self):
        try:
            result = self.api.sweep_expired()
        except Exception:
            logger.exception("Reservation sweep crashed")
            return None
        if result.ok:
            if result.value:
                logger.info(f"Sweep expired {len(result.value)} reservation(s)")
        else:
            logger.error(f"Sweep failed: {result.error.reason}: {result.error.message}")
        if self.on_result:
            self.on_result(result)
        return result

    def reminders_due(self, now=None) -> bool:
        if self.reminder_interval is None:
            return False
        if self.last_reminded is None:
            return True
        now = time.monotonic() if now is None else now
        return now - self.last_reminded >= self.reminder_interval

    def remind(self):
        self.last_reminded = time.monotonic()
        try:
            result = self.api.send_reminders()
        except Exception:
            logger.exception("Reminder pass crashed")
            return None
        if result.ok:
            logger.info(f"Sent {len(result.value)} reminder(s)")
        else:
            logger.error(f"Reminder pass failed: {result.error.reason}: {result.error.message}")
        if self.on_reminders:
            self.on_reminders(result)
        return result
