#!/usr/bin/env python

"""
    Configurations for Stacks

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import os


def _flag(name, default):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


# Determine environment
TESTING = _flag("TESTING", "false")
DEBUG = bool(int(os.environ.get('STACKS_DEBUG', 0)))
LOG_LEVEL = os.environ.get('STACKS_LOG_LEVEL', 'info')

DB_CONFIG = {
    'user': os.environ.get('DB_USER', 'postgres'),
    'password': os.environ.get('DB_PASSWORD'),
    'host': os.environ.get('DB_HOST', 'localhost'),
    'port': int(os.environ.get('DB_PORT', '5432')),
    'dbname': os.environ.get('DB_NAME', 'stacks'),
}

# Database configuration
DB_URI = os.environ.get('STACKS_DB_URI') or (
    "sqlite:///:memory:" if TESTING else
    'postgresql+psycopg2://{user}:{password}@{host}:{port}/{dbname}'.format(**DB_CONFIG)
)

# Circulation policy
LOAN_PERIOD_DAYS = int(os.environ.get('STACKS_LOAN_PERIOD_DAYS', 14))
HOLD_PERIOD_DAYS = int(os.environ.get('STACKS_HOLD_PERIOD_DAYS', 7))
LOAN_LIMIT = int(os.environ.get('STACKS_LOAN_LIMIT', 5))
MAX_RENEWALS = int(os.environ.get('STACKS_MAX_RENEWALS', 2))
FINE_DAILY_RATE = os.environ.get('STACKS_FINE_DAILY_RATE', '0.50')
FINE_CAP = os.environ.get('STACKS_FINE_CAP', '50.00')
BLOCK_EXTEND_ON_HOLDS = _flag('STACKS_BLOCK_EXTEND_ON_HOLDS', 'true')
ALLOW_HOLD_WHEN_AVAILABLE = _flag('STACKS_ALLOW_HOLD_WHEN_AVAILABLE', 'false')
EXPIRY_NOTICE_HOURS = int(os.environ.get('STACKS_EXPIRY_NOTICE_HOURS', 24))

# Background jobs & transactions
SWEEP_INTERVAL_SECONDS = float(os.environ.get('STACKS_SWEEP_INTERVAL', 3600))
REMINDER_INTERVAL_SECONDS = float(os.environ.get('STACKS_REMINDER_INTERVAL', 86400))
TX_RETRIES = int(os.environ.get('STACKS_TX_RETRIES', 3))

__all__ = [
    'TESTING', 'DEBUG', 'LOG_LEVEL', 'DB_URI', 'DB_CONFIG',
    'LOAN_PERIOD_DAYS', 'HOLD_PERIOD_DAYS', 'LOAN_LIMIT', 'MAX_RENEWALS',
    'FINE_DAILY_RATE', 'FINE_CAP', 'BLOCK_EXTEND_ON_HOLDS',
    'ALLOW_HOLD_WHEN_AVAILABLE', 'EXPIRY_NOTICE_HOURS', 'SWEEP_INTERVAL_SECONDS',
    'REMINDER_INTERVAL_SECONDS', 'TX_RETRIES',
]
