"""
Minefleet Board - Ground Truth and Likelihood Grids

This module owns everything the targeting engine is not allowed to decide on
its own: where ships and mines are, what happens when a cell is shot, and the
two heuristic likelihood grids (ship and mine) that the engine reads to score
cells.

Key Features:
- Ship placement with proper spacing (no ships touching, even diagonally)
- Mine placement that never touches a ship
- Shot resolution with automatic reveal of a sunk ship's perimeter
- Ship/mine likelihood grids with spatially decaying updates
- Random fleet and mine layouts for unattended games

Example:
    ```python
    board = Board(10)
    board.place_ship(2, 5, 4, horizontal=True)
    board.place_mine(0, 0)

    board.shoot(2, 5)        # ShotResult.HIT
    board.shoot(0, 0)        # ShotResult.MINE
    board.shoot(0, 0)        # None, the cell was already shot
    ```

Coordinates are ``(x, y)`` with ``x`` the column and ``y`` the row; every grid
is a numpy array indexed ``[y, x]``.
"""

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Tuple

import numpy as np

from minefleet.config import SPREAD_RADIUS

logger = logging.getLogger(__name__)


class CellState(IntEnum):
    """
    Possible states of a cell on the game board.

    Attributes:
        EMPTY (int): Water nobody has fired at (0)
        SHIP (int): Intact ship cell (1)
        MINE (int): Untriggered mine (2)
        HIT (int): Ship cell that has been hit (3)
        MINE_TRIGGERED (int): Mine that has been shot (4)
        MISS (int): Water that was shot or revealed next to a sunk ship (5)
    """
    EMPTY = 0
    SHIP = 1
    MINE = 2
    HIT = 3
    MINE_TRIGGERED = 4
    MISS = 5


# States a shot can still change
OPEN_STATES = (CellState.EMPTY, CellState.SHIP, CellState.MINE)


class ShotResult(Enum):
    """Outcome of a shot that the board accepted."""
    MISS = "miss"
    HIT = "hit"
    SUNK = "sunk"
    MINE = "mine"

    @property
    def is_ship_hit(self):
        return self in (ShotResult.HIT, ShotResult.SUNK)


@dataclass(frozen=True)
class Ship:
    """A placed ship: its cells in order from the bow."""
    cells: Tuple[Tuple[int, int], ...]

    @property
    def length(self):
        return len(self.cells)

    @property
    def horizontal(self):
        return len({y for _, y in self.cells}) == 1


class Board:
    """
    Square battlefield with ships, mines, shot history and likelihood grids.

    Every mutating operation validates its input first and reports failure
    through its return value, leaving the board untouched.

    Attributes:
        size (int): Side length of the board
        grid (numpy.ndarray): Cell states (``CellState`` values) as int8
        shots (numpy.ndarray): Boolean record of cells fired upon
        ship_likelihood (numpy.ndarray): Per-cell belief that a ship is there
        mine_likelihood (numpy.ndarray): Per-cell belief that a mine is there
        ships (list): Placed ``Ship`` objects in placement order
        remaining_ship_cells (int): Ship cells not yet hit
        mine_count (int): Mines placed
        triggered_mines (int): Mines shot so far
    """

    def __init__(self, size):
        """
        Initialize an empty board.

        Args:
            size (int): Side length of the square board

        Raises:
            ValueError: If size is not positive
        """
        if size < 1:
            raise ValueError(f"Board size must be positive, got {size}")
        self.size = size
        self.grid = np.zeros((size, size), dtype=np.int8)
        self.shots = np.zeros((size, size), dtype=bool)
        self.ship_likelihood = np.zeros((size, size), dtype=np.float64)
        self.mine_likelihood = np.zeros((size, size), dtype=np.float64)
        self.ships = []
        self._ship_by_cell = {}
        self.remaining_ship_cells = 0
        self.mine_count = 0
        self.triggered_mines = 0

    def clear(self):
        """Remove every ship, mine and shot, and zero both likelihood grids."""
        self.grid.fill(CellState.EMPTY)
        self.shots.fill(False)
        self.ship_likelihood.fill(0.0)
        self.mine_likelihood.fill(0.0)
        self.ships = []
        self._ship_by_cell = {}
        self.remaining_ship_cells = 0
        self.mine_count = 0
        self.triggered_mines = 0

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def is_valid_position(self, x, y):
        return 0 <= x < self.size and 0 <= y < self.size

    def cell_state(self, x, y):
        return CellState(int(self.grid[y, x]))

    def is_shot(self, x, y):
        return bool(self.shots[y, x])

    def is_open(self, x, y):
        """True if (x, y) is on the board and can still be fired at."""
        return self.is_valid_position(x, y) and self.grid[y, x] in OPEN_STATES

    def open_mask(self):
        """Boolean grid of cells that can still be fired at."""
        return np.isin(self.grid, [int(state) for state in OPEN_STATES])

    def ship_at(self, x, y):
        """Return the ship occupying (x, y), or None."""
        index = self._ship_by_cell.get((x, y))
        return self.ships[index] if index is not None else None

    def is_sunk(self, ship):
        return all(self.grid[y, x] == CellState.HIT for x, y in ship.cells)

    def sunk_ships(self):
        return [ship for ship in self.ships if self.is_sunk(ship)]

    def max_alive_ship_length(self):
        """Length of the longest ship that is still afloat (0 if none)."""
        lengths = [ship.length for ship in self.ships if not self.is_sunk(ship)]
        return max(lengths) if lengths else 0

    def is_game_over(self):
        return self.remaining_ship_cells == 0

    def is_victory(self):
        # Losing is the engine's business: it is the one counting lives
        return self.remaining_ship_cells == 0

    def _neighbors8(self, x, y):
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                nx, ny = x + dx, y + dy
                if (dx or dy) and self.is_valid_position(nx, ny):
                    yield nx, ny

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def can_place_ship(self, x, y, length, horizontal):
        """
        Check if a ship can be placed at the given position.

        This method ensures:
        1. The ship stays within the board boundaries
        2. The ship doesn't overlap anything already placed
        3. Nothing already placed touches the ship (even diagonally)

        Args:
            x (int): Column of the bow
            y (int): Row of the bow
            length (int): Size of the ship
            horizontal (bool): True to extend to the right, False downwards

        Returns:
            bool: True if placement is valid, False otherwise
        """
        if length < 1 or length > self.size:
            return False
        if not self.is_valid_position(x, y):
            return False
        if horizontal and x + length > self.size:
            return False
        if not horizontal and y + length > self.size:
            return False

        # Ship area plus one cell in each direction; mines count as well so
        # that no mine ever ends up next to a ship
        start_row = max(0, y - 1)
        end_row = min(self.size, y + (1 if horizontal else length) + 1)
        start_col = max(0, x - 1)
        end_col = min(self.size, x + (length if horizontal else 1) + 1)

        return not np.any(self.grid[start_row:end_row, start_col:end_col] != CellState.EMPTY)

    def place_ship(self, x, y, length, horizontal):
        """
        Place a ship on the board.

        Args:
            x (int): Column of the bow
            y (int): Row of the bow
            length (int): Size of the ship
            horizontal (bool): True to extend to the right, False downwards

        Returns:
            bool: True if the ship was placed, False if the placement was rejected
        """
        if not self.can_place_ship(x, y, length, horizontal):
            return False

        if horizontal:
            cells = tuple((x + i, y) for i in range(length))
        else:
            cells = tuple((x, y + i) for i in range(length))

        index = len(self.ships)
        for cx, cy in cells:
            self.grid[cy, cx] = CellState.SHIP
            self._ship_by_cell[(cx, cy)] = index
        self.ships.append(Ship(cells))
        self.remaining_ship_cells += length
        return True

    def can_place_mine(self, x, y):
        if not self.is_valid_position(x, y) or self.grid[y, x] != CellState.EMPTY:
            return False
        return not any(self.grid[ny, nx] == CellState.SHIP for nx, ny in self._neighbors8(x, y))

    def place_mine(self, x, y):
        """
        Place a mine on an empty cell that has no ship around it.

        Returns:
            bool: True if the mine was placed, False if the placement was rejected
        """
        if not self.can_place_mine(x, y):
            return False
        self.grid[y, x] = CellState.MINE
        self.mine_count += 1
        return True

    def place_fleet_randomly(self, fleet, rng=None, max_retries=50, max_attempts=200):
        """
        Places a fleet randomly on the board without overlap or adjacency.

        Ships go down longest first. If a ship cannot be placed after
        ``max_attempts`` random positions, the layout is wiped and started over.

        Args:
            fleet (list): ``(length, count)`` pairs
            rng (random.Random, optional): Source of randomness
            max_retries (int): Whole-layout attempts before giving up
            max_attempts (int): Random positions tried per ship

        Raises:
            RuntimeError: If unable to place all ships after maximum retries.
        """
        rng = rng or random.Random()
        lengths = sorted(
            (length for length, count in fleet for _ in range(count)),
            reverse=True,
        )

        for retry in range(max_retries):
            if retry > 0:
                self.clear()

            placed_all = True
            for length in lengths:
                placed = False
                for _ in range(max_attempts):
                    horizontal = rng.random() < 0.5
                    if horizontal:
                        x = rng.randint(0, self.size - length)
                        y = rng.randint(0, self.size - 1)
                    else:
                        x = rng.randint(0, self.size - 1)
                        y = rng.randint(0, self.size - length)
                    if self.place_ship(x, y, length, horizontal):
                        placed = True
                        break
                if not placed:
                    placed_all = False
                    break

            if placed_all:
                logger.debug("Placed %d ships after %d layout attempts", len(lengths), retry + 1)
                return

        raise RuntimeError(f"Could not place all ships after {max_retries} board layout attempts")

    def place_mines_randomly(self, count, rng=None):
        """
        Places ``count`` mines on random legal cells.

        Raises:
            RuntimeError: If fewer than ``count`` legal cells are left.
        """
        rng = rng or random.Random()
        candidates = [
            (x, y)
            for y in range(self.size)
            for x in range(self.size)
            if self.can_place_mine(x, y)
        ]
        if len(candidates) < count:
            raise RuntimeError(f"Only {len(candidates)} cells can take a mine, {count} requested")

        rng.shuffle(candidates)
        placed = 0
        for x, y in candidates:
            if placed == count:
                break
            # Mines may neighbor each other, so earlier picks never invalidate later ones
            if self.place_mine(x, y):
                placed += 1

    # ------------------------------------------------------------------
    # Shooting
    # ------------------------------------------------------------------

    def shoot(self, x, y):
        """
        Fire at a cell.

        Args:
            x (int): Column
            y (int): Row

        Returns:
            ShotResult: MISS, HIT, SUNK or MINE; None if the cell is off the
            board or can no longer be fired at (nothing is changed then)
        """
        if not self.is_open(x, y):
            return None

        self.shots[y, x] = True
        state = self.cell_state(x, y)

        if state == CellState.SHIP:
            self.grid[y, x] = CellState.HIT
            self.remaining_ship_cells -= 1
            ship = self.ship_at(x, y)
            if ship is not None and self.is_sunk(ship):
                self._reveal_perimeter(ship)
                logger.info("Ship of length %d sunk at %s", ship.length, ship.cells[0])
                return ShotResult.SUNK
            return ShotResult.HIT

        if state == CellState.MINE:
            self.grid[y, x] = CellState.MINE_TRIGGERED
            self.triggered_mines += 1
            logger.info("Mine triggered at (%d, %d)", x, y)
            return ShotResult.MINE

        self.grid[y, x] = CellState.MISS
        return ShotResult.MISS

    def _reveal_perimeter(self, ship):
        """Mark every empty cell around a sunk ship as a miss."""
        for x, y in ship.cells:
            for nx, ny in self._neighbors8(x, y):
                if self.grid[ny, nx] == CellState.EMPTY:
                    self.grid[ny, nx] = CellState.MISS
                    self.ship_likelihood[ny, nx] = 0.0
                    self.mine_likelihood[ny, nx] = 0.0

    # ------------------------------------------------------------------
    # Likelihood grids
    # ------------------------------------------------------------------

    def set_initial_likelihoods(self, ship_prob, mine_prob):
        self.ship_likelihood.fill(ship_prob)
        self.mine_likelihood.fill(mine_prob)

    def adjust_likelihood(self, x, y, ship_delta=0.0, mine_delta=0.0):
        """Nudge the likelihoods of one cell, clamped to [0, 1]."""
        if not self.is_valid_position(x, y):
            return
        if ship_delta:
            self.ship_likelihood[y, x] = min(1.0, max(0.0, self.ship_likelihood[y, x] + ship_delta))
        if mine_delta:
            self.mine_likelihood[y, x] = min(1.0, max(0.0, self.mine_likelihood[y, x] + mine_delta))

    def update_probabilities(self, x, y, hit_ship=False, hit_mine=False, ship_factor=0.0, mine_factor=0.0):
        """
        Record an observation at (x, y) and spread its influence.

        The observed cell is pinned: a ship hit makes it certainly a ship, a
        mine makes it certainly a mine, and a clean miss rules out both. Then,
        if a factor is given, every still-open cell within ``SPREAD_RADIUS``
        (Euclidean) gets ``factor * exp(-distance)`` added to the matching
        likelihood.

        Args:
            x (int): Column of the observation
            y (int): Row of the observation
            hit_ship (bool): A ship was hit at (x, y)
            hit_mine (bool): A mine went off at (x, y)
            ship_factor (float): Strength of the ship-likelihood spread
            mine_factor (float): Strength of the mine-likelihood spread
        """
        if not self.is_valid_position(x, y):
            return

        if hit_ship:
            self.ship_likelihood[y, x] = 1.0
            self.mine_likelihood[y, x] = 0.0
        elif hit_mine:
            self.ship_likelihood[y, x] = 0.0
            self.mine_likelihood[y, x] = 1.0
        else:
            self.ship_likelihood[y, x] = 0.0
            self.mine_likelihood[y, x] = 0.0

        if not ship_factor and not mine_factor:
            return

        reach = int(SPREAD_RADIUS)
        for dy in range(-reach, reach + 1):
            for dx in range(-reach, reach + 1):
                nx, ny = x + dx, y + dy
                distance = math.hypot(dx, dy)
                if distance > SPREAD_RADIUS or not self.is_open(nx, ny):
                    continue
                decay = math.exp(-distance)
                self.adjust_likelihood(nx, ny, ship_factor * decay, mine_factor * decay)
