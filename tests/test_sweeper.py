#!/usr/bin/env python
# -*- coding: utf-8 -*-

"""
    tests.test_sweeper
    ~~~~~~~~~~~~~~~~~~

    This module tests the background reservation sweep.

    :copyright: (c) 2025 by Authors.
    :license: see LICENSE for more details.
"""

import queue
from unittest.mock import MagicMock
from stacks.core.models import ReservationStatus
from stacks.core.sweeper import Sweeper
from stacks.schemas.result import Result


def test_triggered_sweep_expires_holds(api, clock):
    item = api.register_item(1).unwrap()
    api.issue(item.id, "A").unwrap()
    api.reserve(item.id, "B", 1).unwrap()
    clock.advance(days=2)

    results = queue.Queue()
    sweeper = Sweeper(api, interval=60, on_result=results.put)
    sweeper.start()
    try:
        sweeper.trigger()
        result = results.get(timeout=10)
    finally:
        sweeper.stop(timeout=10)

    assert not sweeper.is_alive()
    assert result.ok
    assert [r.status for r in result.value] == [ReservationStatus.EXPIRED]
    assert api.queue_for(item.id).unwrap() == []

def test_interval_elapsing_runs_a_sweep():
    api = MagicMock()
    api.sweep_expired.return_value = Result.success([])
    results = queue.Queue()
    sweeper = Sweeper(api, interval=0.01, on_result=results.put)
    sweeper.start()
    try:
        assert results.get(timeout=10).ok
    finally:
        sweeper.stop(timeout=10)
    assert api.sweep_expired.called

def test_sweep_survives_crashing_api():
    api = MagicMock()
    api.sweep_expired.side_effect = RuntimeError("database went away")
    on_result = MagicMock()
    sweeper = Sweeper(api, on_result=on_result)
    assert sweeper.sweep() is None
    on_result.assert_not_called()

def test_stop_before_start_is_harmless():
    sweeper = Sweeper(MagicMock(), interval=60)
    sweeper.stop(timeout=1)
    assert not sweeper.is_alive()

def test_tick_sends_reminders_on_their_own_schedule():
    api = MagicMock()
    api.sweep_expired.return_value = Result.success([])
    api.send_reminders.return_value = Result.success([])
    reminders = queue.Queue()
    sweeper = Sweeper(api, interval=60, reminder_interval=3600, on_reminders=reminders.put)
    sweeper.start()
    try:
        sweeper.trigger()
        assert reminders.get(timeout=10).ok
        sweeper.trigger()
        sweeper.trigger()
    finally:
        sweeper.stop(timeout=10)
    assert api.sweep_expired.call_count == 3
    assert api.send_reminders.call_count == 1

def test_reminders_due():
    sweeper = Sweeper(MagicMock(), reminder_interval=100)
    assert sweeper.reminders_due()
    sweeper.last_reminded = 1000.0
    assert not sweeper.reminders_due(now=1050.0)
    assert sweeper.reminders_due(now=1100.0)
    assert not Sweeper(MagicMock(), reminder_interval=None).reminders_due()

def test_reminder_pass_survives_crashing_api():
    api = MagicMock()
    api.send_reminders.side_effect = RuntimeError("database went away")
    on_reminders = MagicMock()
    sweeper = Sweeper(api, on_reminders=on_reminders)
    assert sweeper.remind() is None
    on_reminders.assert_not_called()
