"""EduSynapse account provisioning service.

Turns rows of human-entered identity data into paired identity-provider
accounts and directory records, one at a time or in bulk.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
