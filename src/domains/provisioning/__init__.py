# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Provisioning domain: teacher and student accounts.

Creates an identity-provider account and its directory record as one
compensated unit, one person at a time or in bulk from tabular rows.

Identity provider and directory store are consumed through the
capability sets in ports; concrete adapters live in src.infrastructure.
"""

from src.domains.provisioning.batch import BatchImportService
from src.domains.provisioning.credentials import generate_password, generate_username
from src.domains.provisioning.exceptions import (
    DirectoryInsertFailedError,
    DirectoryStoreError,
    DuplicatePhoneError,
    GenerationExhaustedError,
    IdentityCreateFailedError,
    IdentityProviderError,
    OrphanedIdentityError,
    ProvisioningError,
    ProvisioningUnavailableError,
    RowValidationError,
)
from src.domains.provisioning.ports import DirectoryStore, IdentityMetadata, IdentityProvider
from src.domains.provisioning.saga import ProvisioningSaga
from src.domains.provisioning.service import (
    ProvisioningResult,
    ProvisioningService,
    UsernamePool,
)
from src.domains.provisioning.validation import (
    find_duplicate_phones,
    parse_raw_row,
    validate_row,
)

__all__ = [
    "BatchImportService",
    "DirectoryInsertFailedError",
    "DirectoryStore",
    "DirectoryStoreError",
    "DuplicatePhoneError",
    "GenerationExhaustedError",
    "IdentityCreateFailedError",
    "IdentityMetadata",
    "IdentityProvider",
    "IdentityProviderError",
    "OrphanedIdentityError",
    "ProvisioningError",
    "ProvisioningResult",
    "ProvisioningSaga",
    "ProvisioningService",
    "ProvisioningUnavailableError",
    "RowValidationError",
    "UsernamePool",
    "find_duplicate_phones",
    "generate_password",
    "generate_username",
    "parse_raw_row",
    "validate_row",
]
