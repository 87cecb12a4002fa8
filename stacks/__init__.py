#!/usr/bin/env python

"""
    Stacks, a circulation and reservation engine for lending libraries

    :copyright: (c) 2025 by AUTHORS
    :license: see LICENSE for more details
"""

__version__ = '0.1.0'
