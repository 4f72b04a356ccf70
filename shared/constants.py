"""
Shared constants for Spaceman Sync.
Used by both the relay server and the client. CLI flags can override
the network bits.
"""

# =============================================================================
# NETWORK SETTINGS
# =============================================================================
SERVER_HOST = "localhost"
SERVER_PORT = 8080

# =============================================================================
# WORLD SETTINGS
# =============================================================================
WORLD_WIDTH = 800
WORLD_HEIGHT = 500
GRID_SPACING = 16  # Tile size of the original map

# =============================================================================
# PLAYER SETTINGS
# =============================================================================
PLAYER_SIZE = 16  # Sprite is 16x16
PLAYER_VELOCITY = 100  # Pixels per second
SPAWN_X = 48
SPAWN_Y = 48
SPAWN_FRAME = 1

# Walking animations: inclusive frame ranges into the spritesheet
ANIMATION_FRAMES = {
    "left": (8, 9),
    "right": (1, 2),
    "up": (11, 13),
    "down": (4, 6),
}
ANIMATION_FRAME_RATE = 10  # Poses per second

PLAYER_COLORS = [
    (65, 105, 225),   # Royal Blue
    (220, 20, 60),    # Crimson
    (50, 205, 50),    # Lime Green
    (255, 165, 0),    # Orange
]

# =============================================================================
# TIMING SETTINGS
# =============================================================================
CLIENT_TICK_RATE = 60  # Client updates per second
