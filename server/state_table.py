"""
Server-side state table: latest sample per participant.
Single source of truth for what gets broadcast. Not thread-safe on its
own, the relay server serialises access.
"""

from typing import Dict, Hashable, List, Set

from shared.protocol import PositionSample, StateTable as TableDict


class StateTable:
    """
    Authoritative merged view of all participants.
    Also remembers which connection reported which ids so a disconnect
    can clean them up.
    """

    def __init__(self):
        self.samples: Dict[str, PositionSample] = {}
        self.connection_ids: Dict[Hashable, Set[str]] = {}  # connection -> ids it reported
        self.owners: Dict[str, Hashable] = {}  # id -> connection that last reported it

    def upsert(self, connection: Hashable, participant_id: str, sample: PositionSample):
        """Last write wins per id."""
        previous_owner = self.owners.get(participant_id)
        if previous_owner is not None and previous_owner != connection:
            # The id moved to another connection, the old one no longer owns it
            self.connection_ids.get(previous_owner, set()).discard(participant_id)

        self.samples[participant_id] = sample
        self.owners[participant_id] = connection
        self.connection_ids.setdefault(connection, set()).add(participant_id)

    def remove_connection(self, connection: Hashable) -> List[str]:
        """Forget a connection and drop every id it reported. Returns the dropped ids."""
        ids = self.connection_ids.pop(connection, set())
        removed = []
        for participant_id in sorted(ids):
            self.owners.pop(participant_id, None)
            if self.samples.pop(participant_id, None) is not None:
                removed.append(participant_id)
        return removed

    def participant_ids(self, connection: Hashable) -> Set[str]:
        return set(self.connection_ids.get(connection, ()))

    def snapshot(self) -> TableDict:
        """Copy of the table, safe to encode after the lock is released."""
        return dict(self.samples)

    def __len__(self) -> int:
        return len(self.samples)

    def __contains__(self, participant_id: str) -> bool:
        return participant_id in self.samples
