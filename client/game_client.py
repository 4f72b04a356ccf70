"""
Demo game client for Spaceman Sync.
Pygame window that walks a spaceman around with the arrow keys and
shows everyone else connected to the same relay server.
"""

import argparse
import logging
import time
from typing import Optional, Tuple

import pygame

from shared.constants import (
    SERVER_HOST, SERVER_PORT, WORLD_WIDTH, WORLD_HEIGHT, PLAYER_SIZE,
    PLAYER_VELOCITY, PLAYER_COLORS, SPAWN_X, SPAWN_Y, SPAWN_FRAME,
    ANIMATION_FRAMES, ANIMATION_FRAME_RATE, CLIENT_TICK_RATE
)
from shared.protocol import PositionSample
from client.network import NetworkClient
from client.presentation import PresentationLayer
from client.renderer import GameRenderer, RemotePlayerSprite, SpriteSheet
from client.sync_agent import ClientSyncAgent

logger = logging.getLogger(__name__)


class ClientState:
    """Client-side connection state."""
    CONNECTING = "connecting"
    PLAYING = "playing"
    DISCONNECTED = "disconnected"


class LocalPlayer:
    """Position, velocity and walking animation of the player at this keyboard."""

    def __init__(self, x: float = SPAWN_X, y: float = SPAWN_Y, frame: int = SPAWN_FRAME):
        self.x = x
        self.y = y
        self.vx = 0.0
        self.vy = 0.0
        self.frame = frame
        self.animation: Optional[str] = None
        self.animation_time = 0.0

    def steer(self, left: bool, right: bool, up: bool, down: bool):
        """Left wins over right, up wins over down. Vertical animation wins over horizontal."""
        animation = None
        if left:
            self.vx = -PLAYER_VELOCITY
            animation = "left"
        elif right:
            self.vx = PLAYER_VELOCITY
            animation = "right"
        else:
            self.vx = 0.0

        if up:
            self.vy = -PLAYER_VELOCITY
            animation = "up"
        elif down:
            self.vy = PLAYER_VELOCITY
            animation = "down"
        else:
            self.vy = 0.0

        self.play(animation)

    def play(self, animation: Optional[str]):
        if animation == self.animation:
            return
        self.animation = animation
        self.animation_time = 0.0
        if animation is not None:
            self.frame = ANIMATION_FRAMES[animation][0]

    def update(self, delta_time: float):
        half_size = PLAYER_SIZE / 2
        self.x = max(half_size, min(WORLD_WIDTH - half_size, self.x + self.vx * delta_time))
        self.y = max(half_size, min(WORLD_HEIGHT - half_size, self.y + self.vy * delta_time))

        if self.animation is not None:
            first, last = ANIMATION_FRAMES[self.animation]
            self.animation_time += delta_time
            step = int(self.animation_time * ANIMATION_FRAME_RATE)
            self.frame = first + step % (last - first + 1)

    def sample(self) -> PositionSample:
        return PositionSample(x=self.x, y=self.y, frame=self.frame)


class SpacemanClient(PresentationLayer):
    """Main game client class. Also the presentation layer for the sync agent."""

    def __init__(self, host: str = SERVER_HOST, port: int = SERVER_PORT,
                 spritesheet: Optional[str] = None):
        pygame.init()
        self.screen = pygame.display.set_mode((WORLD_WIDTH, WORLD_HEIGHT))
        self.clock = pygame.time.Clock()

        self.renderer = GameRenderer(self.screen)
        self.sheet = SpriteSheet(spritesheet)
        self.remote_sprites = pygame.sprite.Group()
        self.local_player = LocalPlayer()

        self.network = NetworkClient(host, port)
        self.agent = ClientSyncAgent(self)
        pygame.display.set_caption(f"Spaceman Sync - {self.agent.participant_id[:8]}")

        self.state = ClientState.CONNECTING
        self.running = True
        self.last_update_time = time.time()

    # =========================================================================
    # PRESENTATION LAYER
    # =========================================================================

    def get_local_velocity(self) -> Tuple[float, float]:
        return self.local_player.vx, self.local_player.vy

    def get_local_sample(self) -> PositionSample:
        return self.local_player.sample()

    def create_remote_entity(self, participant_id: str, sample: PositionSample) -> RemotePlayerSprite:
        color_index = sum(map(ord, participant_id)) % len(PLAYER_COLORS)
        sprite = RemotePlayerSprite(participant_id, sample, self.sheet, color_index)
        self.remote_sprites.add(sprite)
        return sprite

    def update_remote_entity(self, handle: RemotePlayerSprite, sample: PositionSample):
        handle.apply(sample)

    def is_handle_valid(self, handle: RemotePlayerSprite) -> bool:
        return handle.alive() and handle.texture_key == self.sheet.texture_key

    def destroy_remote_entity(self, handle: RemotePlayerSprite):
        handle.kill()

    def on_disconnected(self):
        self.state = ClientState.DISCONNECTED

    # =========================================================================
    # GAME LOOP
    # =========================================================================

    def start(self):
        logger.info("Starting as %s", self.agent.participant_id)
        self.network.connect()
        self.run()

    def run(self):
        """Main game loop."""
        while self.running:
            current_time = time.time()
            delta_time = current_time - self.last_update_time
            self.last_update_time = current_time

            self.handle_events()
            self.process_network_messages()
            self.update(delta_time)
            self.render()

            pygame.display.flip()
            self.clock.tick(CLIENT_TICK_RATE)

        self.cleanup()

    def handle_events(self):
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self.running = False
            elif event.type == pygame.KEYDOWN and event.key == pygame.K_ESCAPE:
                self.running = False

    def process_network_messages(self):
        """Apply every queued state table before this frame is drawn."""
        if self.network.connected and self.state == ClientState.CONNECTING:
            self.state = ClientState.PLAYING

        for raw_message in self.network.get_messages():
            self.agent.on_receive(raw_message)

        if self.network.connection_lost or (
                self.state == ClientState.CONNECTING and self.network.network_thread is not None
                and not self.network.network_thread.is_alive()):
            self.agent.on_disconnected()

    def update(self, delta_time: float):
        if self.state != ClientState.PLAYING:
            return

        keys = pygame.key.get_pressed()
        self.local_player.steer(
            left=keys[pygame.K_LEFT] or keys[pygame.K_a],
            right=keys[pygame.K_RIGHT] or keys[pygame.K_d],
            up=keys[pygame.K_UP] or keys[pygame.K_w],
            down=keys[pygame.K_DOWN] or keys[pygame.K_s]
        )
        self.local_player.update(delta_time)

        # Only moving players transmit
        self.agent.tick(self.network.send)

    def render(self):
        if self.state == ClientState.CONNECTING:
            self.renderer.render_connecting()
        elif self.state == ClientState.DISCONNECTED:
            self.renderer.render_disconnected()
        else:
            self.renderer.render_background()
            self.renderer.render_remote_players(self.remote_sprites)
            self.renderer.render_local_player(
                self.sheet.frame_surface(self.local_player.frame),
                self.local_player.x,
                self.local_player.y
            )
            self.renderer.render_hud(self.agent.participant_id, len(self.agent.registry))

    def cleanup(self):
        logger.info("Shutting down...")
        self.network.disconnect()
        pygame.quit()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Spaceman Sync demo client")
    parser.add_argument("--host", default=SERVER_HOST, help="Relay server host")
    parser.add_argument("--port", type=int, default=SERVER_PORT, help="Relay server port")
    parser.add_argument("--spritesheet", default=None, help="16x16 player spritesheet image")
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, ...)")
    return parser.parse_args(argv)


def main(argv=None):
    """Entry point for the client."""
    args = parse_args(argv)
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    client = SpacemanClient(args.host, args.port, args.spritesheet)
    client.start()


if __name__ == "__main__":
    main()
