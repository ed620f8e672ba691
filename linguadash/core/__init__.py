# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Core package for LinguaDash.

This package contains cross-cutting application concerns:
- config: Application configuration and settings
"""
