"""Participant id generation."""

import uuid


def generate_participant_id() -> str:
    """Create a random id for this client session (UUID4 text)."""
    return str(uuid.uuid4())
