"""
Game constants and fleet formulas.

Fleet composition, mine count and the engine's life budget are all derived
from the board size, so every size-dependent number in the game lives here.

Example:
    ```python
    from minefleet.config import calculate_fleet, mine_count

    fleet = calculate_fleet(10)   # [(4, 1), (3, 2), (2, 3), (1, 4)]
    lives = mine_count(10)        # 3
    ```
"""

import math

# Board size limits accepted by the console
MIN_BOARD_SIZE = 10
MAX_BOARD_SIZE = 100

# Share of the board covered by ship cells and by mines
SHIP_DENSITY = 0.2
MINE_DENSITY = 0.03

# Base fleet for a 10x10 board as (length, count); scaled for bigger boards
BASE_FLEET = [(4, 1), (3, 2), (2, 3)]

# Risk coefficient: lambda = LAMBDA_MAX * exp(-RISK_DECAY * lives / max_lives)
LAMBDA_MAX = 2.0
RISK_DECAY = 3.0

# Utility penalty per resolved cell in the 3x3 window around a candidate
NEIGHBOR_PENALTY = 0.1

# Spatial decay of probability updates
SPREAD_RADIUS = 2.0
SHIP_HIT_SPREAD = 0.7
MINE_HIT_SPREAD = 0.3

# Below this many lives the hunt refuses run centers that look mined
LOW_LIVES = 2
RISKY_MINE_RATIO = 0.5


def ship_cell_count(size):
    """Total number of ship cells on a board of the given size."""
    return int(math.floor(SHIP_DENSITY * size * size))


def mine_count(size):
    """Number of mines on a board of the given size (also the life budget)."""
    return int(math.floor(MINE_DENSITY * size * size))


def ship_density(size):
    return ship_cell_count(size) / float(size * size)


def mine_density(size):
    return mine_count(size) / float(size * size)


def calculate_fleet(size):
    """
    Derive the fleet for a board.

    The base fleet is scaled by ``size // 10`` in both ship length and ship
    count; whatever is left of the ship-cell budget is filled with
    single-cell ships.

    Args:
        size (int): Board side length

    Returns:
        list: ``(length, count)`` pairs, longest ships first
    """
    scale = max(1, size // 10)
    fleet = []
    used_cells = 0
    for length, count in BASE_FLEET:
        scaled_length = min(length * scale, size)
        scaled_count = count * scale
        fleet.append((scaled_length, scaled_count))
        used_cells += scaled_length * scaled_count

    singles = ship_cell_count(size) - used_cells
    if singles > 0:
        fleet.append((1, singles))
    return fleet
