"""
Client-side sync agent.
Decides when the local player gets sent, and turns incoming state
tables into create/update/replace/remove actions for the renderer.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from shared.errors import MalformedMessage
from shared.identity import generate_participant_id
from shared.protocol import (
    Payload, PositionSample, StateTable, decode_table, encode_sample
)
from client.presentation import PresentationLayer

logger = logging.getLogger(__name__)


class ActionKind(str, Enum):
    """What the presentation layer should do with a remote entity."""
    CREATE = "create"    # First time we see this id
    UPDATE = "update"    # Known id, move the existing handle
    REPLACE = "replace"  # Known id but the handle went bad, destroy and recreate
    REMOVE = "remove"    # Id is no longer in the table


@dataclass(frozen=True)
class ReconciliationAction:
    kind: ActionKind
    participant_id: str
    sample: Optional[PositionSample] = None


class ClientSyncAgent:
    """
    Owns the local participant id, the outgoing sample policy and the
    registry of remote entity handles.

    Not thread-safe: call everything from the tick loop. Received
    payloads should be queued by the network thread and handed to
    on_receive from there, so a batch of actions is always applied in
    one go before the next frame is drawn.
    """

    def __init__(self, presentation: PresentationLayer,
                 participant_id: Optional[str] = None,
                 prune_missing: bool = True):
        self.presentation = presentation
        self.participant_id = participant_id or generate_participant_id()
        self.prune_missing = prune_missing
        self.registry: Dict[str, Any] = {}  # participant_id -> presentation handle
        self.connected = True

    # =========================================================================
    # OUTGOING
    # =========================================================================

    def sample_if_moved(self) -> Optional[PositionSample]:
        """Current local sample, or None if we didn't move this tick."""
        vx, vy = self.presentation.get_local_velocity()
        if vx == 0 and vy == 0:
            return None
        return self.presentation.get_local_sample()

    def encode_outgoing(self, sample: PositionSample) -> str:
        return encode_sample(self.participant_id, sample)

    def tick(self, send: Callable[[str], Any]) -> Optional[PositionSample]:
        """
        Sample and, if we moved, hand the encoded message to ``send``.
        Fire and forget, nothing waits for the server.
        """
        sample = self.sample_if_moved()
        if sample is None:
            return None
        send(self.encode_outgoing(sample))
        return sample

    # =========================================================================
    # INCOMING
    # =========================================================================

    def reconcile(self, table: StateTable) -> List[ReconciliationAction]:
        """Diff a received table against the registry. Doesn't touch anything."""
        actions = []
        for participant_id, sample in table.items():
            if participant_id == self.participant_id:
                continue

            handle = self.registry.get(participant_id)
            if participant_id not in self.registry:
                kind = ActionKind.CREATE
            elif not self.presentation.is_handle_valid(handle):
                kind = ActionKind.REPLACE
            else:
                kind = ActionKind.UPDATE
            actions.append(ReconciliationAction(kind, participant_id, sample))

        if self.prune_missing:
            for participant_id in self.registry:
                if participant_id not in table:
                    actions.append(ReconciliationAction(ActionKind.REMOVE, participant_id))

        return actions

    def apply(self, actions: List[ReconciliationAction]):
        """Run a batch of actions against the presentation layer and registry."""
        for action in actions:
            pid = action.participant_id
            if action.kind == ActionKind.CREATE:
                self.registry[pid] = self.presentation.create_remote_entity(pid, action.sample)
            elif action.kind == ActionKind.UPDATE:
                self.presentation.update_remote_entity(self.registry[pid], action.sample)
            elif action.kind == ActionKind.REPLACE:
                self.presentation.destroy_remote_entity(self.registry[pid])
                self.registry[pid] = self.presentation.create_remote_entity(pid, action.sample)
            elif action.kind == ActionKind.REMOVE:
                handle = self.registry.pop(pid, None)
                if handle is not None:
                    self.presentation.destroy_remote_entity(handle)

    def on_receive(self, raw: Payload) -> List[ReconciliationAction]:
        """Decode a state table, reconcile and apply it. Malformed payloads are dropped."""
        try:
            table = decode_table(raw)
        except MalformedMessage as e:
            logger.warning("Dropping malformed state table: %s", e)
            return []

        actions = self.reconcile(table)
        self.apply(actions)

        created = sum(1 for a in actions if a.kind == ActionKind.CREATE)
        if created:
            logger.info("%d new participant(s), %d remote in total", created, len(self.registry))
        return actions

    def on_disconnected(self):
        """Transport is gone. Tell the presentation layer once, no reconnect."""
        if not self.connected:
            return
        self.connected = False
        logger.warning("Disconnected from relay server")
        self.presentation.on_disconnected()
