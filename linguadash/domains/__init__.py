# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services for LinguaDash.

- auth: Clerk session token verification
- organization: Organization membership and identity enrichment
- analytics: Aggregation helpers and per-domain reports
- enrollment: Course catalogue, enrollment workflow and webhooks
- classes: Teacher classes
"""
