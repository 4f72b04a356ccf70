"""
What the sync agent needs from whoever draws the scene.
The pygame client implements this; tests use a fake.
"""

from typing import Any, Tuple

from shared.protocol import PositionSample


class PresentationLayer:
    """
    Interface between the sync agent and the rendering side.
    Handles are opaque to the agent, it only stores and hands them back.
    """

    # Sampling

    def get_local_velocity(self) -> Tuple[float, float]:
        raise NotImplementedError

    def get_local_sample(self) -> PositionSample:
        raise NotImplementedError

    # Remote entities

    def create_remote_entity(self, participant_id: str, sample: PositionSample) -> Any:
        raise NotImplementedError

    def update_remote_entity(self, handle: Any, sample: PositionSample):
        raise NotImplementedError

    def is_handle_valid(self, handle: Any) -> bool:
        raise NotImplementedError

    def destroy_remote_entity(self, handle: Any):
        raise NotImplementedError

    # Connection status

    def on_disconnected(self):
        """Called once when the transport goes away. Default does nothing."""
