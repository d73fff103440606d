# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Lifecycle of a single two-system provisioning write.

Each provisioning attempt gets its own ProvisioningSaga. The machine only
tracks and validates progress; the orchestrator performs the writes and
fires the matching event after each one.

    started --identity_ok--> identity_created --directory_ok--> directory_written
       |                          |
       |                          +--compensated--> rolled_back
       |                          +--compensation_failed--> orphaned
       +--identity_failed--> failed

``orphaned`` means the identity exists without a directory record and
rollback could not delete it.
"""

from statemachine import State, StateMachine


class ProvisioningSaga(StateMachine):
    """Six-state saga for one identity + directory record pair.

    States:
        started           -- Nothing written yet.
        identity_created  -- Identity exists, directory record pending.
        directory_written -- Both records exist (success).
        rolled_back       -- Directory write failed, identity deleted.
        orphaned          -- Directory write failed, identity delete failed.
        failed            -- Nothing was written (username or identity step).
    """

    started = State("started", initial=True, value="started")
    identity_created = State("identity_created", value="identity_created")
    directory_written = State("directory_written", final=True, value="directory_written")
    rolled_back = State("rolled_back", final=True, value="rolled_back")
    orphaned = State("orphaned", final=True, value="orphaned")
    failed = State("failed", final=True, value="failed")

    identity_ok = started.to(identity_created)
    identity_failed = started.to(failed)
    directory_ok = identity_created.to(directory_written)
    compensated = identity_created.to(rolled_back)
    compensation_failed = identity_created.to(orphaned)

    @property
    def state_name(self) -> str:
        """Identifier of the current state."""
        return self.current_state.id

    @property
    def is_terminal(self) -> bool:
        """True once the saga reached a final state."""
        return self.current_state.final
