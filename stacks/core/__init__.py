#!/usr/bin/env python

"""
    Core module for Stacks, db & circulation services

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

import logging
from stacks.configs import LOG_LEVEL
from stacks.core import db as database
from stacks.core import models

logging.getLogger("stacks").setLevel(LOG_LEVEL.upper())

session = database.init()

__all__ = ["session", "database", "models"]
