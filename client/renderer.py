"""
Pygame renderer for Spaceman Sync.
Draws the local player, remote players and a small HUD. Sprites come
from a spritesheet if one is given, otherwise from colored placeholders.
"""

import logging
from typing import Dict, Optional, Tuple

import pygame

from shared.constants import (
    WORLD_WIDTH, WORLD_HEIGHT, GRID_SPACING, PLAYER_SIZE, PLAYER_COLORS
)
from shared.protocol import PositionSample

logger = logging.getLogger(__name__)

# Color definitions
BACKGROUND_COLOR = (30, 30, 40)
GRID_COLOR = (45, 45, 55)
TEXT_COLOR = (255, 255, 255)
LOBBY_BG_COLOR = (40, 40, 50)

SPRITE_SCALE = 2
MISSING_TEXTURE = "__MISSING"
PLAYER_TEXTURE = "player"


class SpriteSheet:
    """
    Cuts 16x16 frames out of a spritesheet image.
    Falls back to a placeholder square with the frame number on it.
    """

    def __init__(self, path: Optional[str] = None):
        self.sheet: Optional[pygame.Surface] = None
        self.texture_key = MISSING_TEXTURE
        self.cache: Dict[Tuple[int, int], pygame.Surface] = {}
        self.font = pygame.font.Font(None, 14)

        if path:
            try:
                self.sheet = pygame.image.load(path)
                self.texture_key = PLAYER_TEXTURE
            except (pygame.error, FileNotFoundError) as e:
                logger.warning("Could not load spritesheet %s: %s", path, e)

    def frame_surface(self, frame: int, color_index: int = 0) -> pygame.Surface:
        key = (frame, color_index)
        if key not in self.cache:
            self.cache[key] = self._build(frame, color_index)
        return self.cache[key]

    def _build(self, frame: int, color_index: int) -> pygame.Surface:
        size = PLAYER_SIZE * SPRITE_SCALE
        if self.sheet is not None:
            columns = max(1, self.sheet.get_width() // PLAYER_SIZE)
            rect = pygame.Rect(
                (frame % columns) * PLAYER_SIZE,
                (frame // columns) * PLAYER_SIZE,
                PLAYER_SIZE, PLAYER_SIZE
            )
            if self.sheet.get_rect().contains(rect):
                return pygame.transform.scale(self.sheet.subsurface(rect), (size, size))

        # Placeholder
        color = PLAYER_COLORS[color_index % len(PLAYER_COLORS)]
        surface = pygame.Surface((size, size), pygame.SRCALPHA)
        pygame.draw.rect(surface, color, surface.get_rect(), border_radius=4)
        label = self.font.render(str(frame), True, TEXT_COLOR)
        surface.blit(label, label.get_rect(center=(size // 2, size // 2)))
        return surface


class RemotePlayerSprite(pygame.sprite.Sprite):
    """On-screen representation of one remote participant."""

    def __init__(self, participant_id: str, sample: PositionSample,
                 sheet: SpriteSheet, color_index: int):
        super().__init__()
        self.participant_id = participant_id
        self.sheet = sheet
        self.color_index = color_index
        self.texture_key = sheet.texture_key
        self.frame = sample.frame
        self.image = sheet.frame_surface(sample.frame, color_index)
        self.rect = self.image.get_rect(center=(int(sample.x), int(sample.y)))

    def apply(self, sample: PositionSample):
        if sample.frame != self.frame:
            self.frame = sample.frame
            self.image = self.sheet.frame_surface(sample.frame, self.color_index)
        self.rect = self.image.get_rect(center=(int(sample.x), int(sample.y)))


class GameRenderer:
    """Handles all Pygame rendering for the client."""

    def __init__(self, screen: pygame.Surface):
        self.screen = screen
        self.width = screen.get_width()
        self.height = screen.get_height()

        # Initialize fonts
        pygame.font.init()
        self.font_large = pygame.font.Font(None, 48)
        self.font_medium = pygame.font.Font(None, 36)
        self.font_small = pygame.font.Font(None, 24)

        self.title_text = self.font_large.render("SPACEMAN SYNC", True, (255, 215, 0))

    def render_background(self):
        """Render the background with a tile grid."""
        self.screen.fill(BACKGROUND_COLOR)
        for x in range(0, WORLD_WIDTH + 1, GRID_SPACING):
            pygame.draw.line(self.screen, GRID_COLOR, (x, 0), (x, WORLD_HEIGHT))
        for y in range(0, WORLD_HEIGHT + 1, GRID_SPACING):
            pygame.draw.line(self.screen, GRID_COLOR, (0, y), (WORLD_WIDTH, y))

    def render_remote_players(self, group: pygame.sprite.Group):
        group.draw(self.screen)

    def render_local_player(self, image: pygame.Surface, x: float, y: float):
        """Local player gets a small highlight ring so you can find yourself."""
        rect = image.get_rect(center=(int(x), int(y)))
        pygame.draw.circle(self.screen, (255, 255, 255), rect.center, rect.width // 2 + 4, 1)
        self.screen.blit(image, rect)

    def render_hud(self, participant_id: str, remote_count: int):
        hud_surface = pygame.Surface((260, 55), pygame.SRCALPHA)
        hud_surface.fill((20, 20, 30, 200))
        self.screen.blit(hud_surface, (10, 10))

        id_surface = self.font_small.render(f"You: {participant_id[:8]}", True, TEXT_COLOR)
        self.screen.blit(id_surface, (20, 15))
        count_surface = self.font_small.render(f"Others online: {remote_count}", True, TEXT_COLOR)
        self.screen.blit(count_surface, (20, 38))

    def render_connecting(self):
        """Render connecting screen."""
        self.screen.fill(LOBBY_BG_COLOR)

        title_rect = self.title_text.get_rect(centerx=self.width // 2, y=160)
        self.screen.blit(self.title_text, title_rect)

        # Animated dots
        dots = "." * ((pygame.time.get_ticks() // 500) % 4)
        connect_surface = self.font_medium.render(f"Connecting to server{dots}", True, TEXT_COLOR)
        connect_rect = connect_surface.get_rect(centerx=self.width // 2, y=240)
        self.screen.blit(connect_surface, connect_rect)

    def render_disconnected(self):
        """Render disconnected screen. No reconnect, just tell the user."""
        self.screen.fill((50, 30, 30))

        error_surface = self.font_large.render("Connection Lost!", True, (255, 100, 100))
        error_rect = error_surface.get_rect(centerx=self.width // 2, y=200)
        self.screen.blit(error_surface, error_rect)

        hint_surface = self.font_small.render("Press ESC to quit", True, (150, 150, 150))
        hint_rect = hint_surface.get_rect(centerx=self.width // 2, y=270)
        self.screen.blit(hint_surface, hint_rect)
