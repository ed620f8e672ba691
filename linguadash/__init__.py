"""LinguaDash Backend.

Teacher-facing analytics and enrollment API for a language-learning
platform: per-skill score reports, cohort statistics, and the student
invitation lifecycle backed by Clerk.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
