# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Domain services layer for the provisioning service.

Domains:
    auth: JWT access token validation.
    provisioning: Teacher and student account provisioning.
"""
