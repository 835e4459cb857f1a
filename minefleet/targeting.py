"""
Targeting Engine - Hunt/Kill Shot Selection

The engine decides where to fire next on a ``Board`` it owns, using only what
it has observed: hits, misses, mine detonations and the board's likelihood
grids. It works in two modes:

- Hunting: nothing is damaged; look for the longest ship still afloat while
  steering clear of likely mines.
- Pursuing: a ship is damaged; shoot along its axis until it sinks.

Every cell is scored with

    utility = ship_likelihood - lambda * mine_likelihood - crowding penalty

where lambda, the risk coefficient, grows as lives are lost, so the engine
becomes more and more mine-averse.

Example:
    ```python
    board = Board(10)
    board.place_fleet_randomly(calculate_fleet(10))
    board.place_mines_randomly(mine_count(10))

    engine = TargetingEngine(board, max_lives=mine_count(10))
    while engine.can_move() and not board.is_victory():
        engine.make_move()
    ```
"""

import logging
import math
from dataclasses import dataclass
from typing import Tuple

import numpy as np

from minefleet.board import ShotResult
from minefleet.config import (
    LAMBDA_MAX,
    LOW_LIVES,
    MINE_HIT_SPREAD,
    NEIGHBOR_PENALTY,
    RISK_DECAY,
    RISKY_MINE_RATIO,
    SHIP_HIT_SPREAD,
    SPREAD_RADIUS,
    mine_density,
    ship_density,
)
from minefleet.patterns import resolved_neighbor_counts, safest_window, search_pattern

logger = logging.getLogger(__name__)

# Left, right, up, down
ORTHOGONAL = [(-1, 0), (1, 0), (0, -1), (0, 1)]


@dataclass(frozen=True)
class Hunting:
    """No ship is known to be damaged."""


@dataclass(frozen=True)
class Pursuing:
    """Hits on ships that are still afloat, oldest first."""
    wounded: Tuple[Tuple[int, int], ...]


class TargetingEngine:
    """
    Chooses shots on a board and keeps track of what they revealed.

    Attributes:
        board (Board): The board being played; the engine is its only user
        max_lives (int): Lives at the start of the game
        current_lives (int): Lives left; one is lost per triggered mine
        has_last_hit (bool): Whether any ship has been hit yet
        last_hit (tuple): Coordinates of the most recent ship hit
        wounded (list): Hits on ships that have not sunk yet
        moves (int): Shots fired
        last_shot (tuple): ``((x, y), ShotResult)`` of the most recent shot
    """

    def __init__(self, board, max_lives):
        """
        Initialize the engine and reset the board's likelihood grids.

        Args:
            board (Board): Board with its ships and mines already placed
            max_lives (int): Number of mines the engine may trigger

        Raises:
            ValueError: If max_lives is less than 1
        """
        if max_lives < 1:
            raise ValueError(f"max_lives must be at least 1, got {max_lives}")

        self.board = board
        self.max_lives = max_lives
        self.current_lives = max_lives
        self.has_last_hit = False
        self.last_hit = None
        self.wounded = []
        self.moves = 0
        self.last_shot = None

        board.set_initial_likelihoods(ship_density(board.size), mine_density(board.size))

    @property
    def mode(self):
        if self.wounded:
            return Pursuing(tuple(self.wounded))
        return Hunting()

    def can_move(self):
        return self.current_lives > 0 and bool(self.board.open_mask().any())

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------

    def risk_coefficient(self):
        """
        Weight of the mine likelihood in the utility.

        Close to 0.1 with all lives left and approaching ``LAMBDA_MAX`` as the
        last life is spent.
        """
        life_ratio = self.current_lives / float(self.max_lives)
        return LAMBDA_MAX * math.exp(-RISK_DECAY * life_ratio)

    def utility(self, x, y):
        """
        Score a single cell.

        Args:
            x (int): Column
            y (int): Row

        Returns:
            float: Ship likelihood minus weighted mine likelihood minus
            ``NEIGHBOR_PENALTY`` per resolved cell in the surrounding 3x3 window
        """
        board = self.board
        resolved = 0
        for dy in (-1, 0, 1):
            for dx in (-1, 0, 1):
                nx, ny = x + dx, y + dy
                if board.is_valid_position(nx, ny) and not board.is_open(nx, ny):
                    resolved += 1

        ship = board.ship_likelihood[y, x]
        mine = board.mine_likelihood[y, x]
        return float(ship - self.risk_coefficient() * mine - NEIGHBOR_PENALTY * resolved)

    def utility_grid(self):
        """Utility of every cell at once, as a numpy array indexed [y, x]."""
        board = self.board
        penalty = NEIGHBOR_PENALTY * resolved_neighbor_counts(board.open_mask())
        return board.ship_likelihood - self.risk_coefficient() * board.mine_likelihood - penalty

    def _best_of(self, cells, utilities):
        """Highest-utility cell among ``cells``; the first one wins a tie."""
        best_cell = None
        best_utility = -math.inf
        for x, y in cells:
            if utilities[y, x] > best_utility:
                best_utility = utilities[y, x]
                best_cell = (x, y)
        return best_cell

    def _open_neighbors(self, x, y):
        return [
            (x + dx, y + dy)
            for dx, dy in ORTHOGONAL
            if self.board.is_open(x + dx, y + dy)
        ]

    # ------------------------------------------------------------------
    # Shot selection
    # ------------------------------------------------------------------

    def kill_candidates(self, wounded):
        """
        Cells worth shooting to finish a damaged ship.

        With one hit, any open orthogonal neighbor will do. With several hits
        in a line, only the two open cells just past either end. Hits that do
        not line up (two different ships hit) fall back to every open
        orthogonal neighbor of every hit.

        Args:
            wounded (list): ``(x, y)`` hits on ships still afloat

        Returns:
            list: Candidate ``(x, y)`` cells, possibly empty
        """
        board = self.board
        if len(wounded) > 1:
            xs = {x for x, _ in wounded}
            ys = {y for _, y in wounded}
            ends = None
            if len(xs) == 1:
                x = wounded[0][0]
                ends = [(x, min(ys) - 1), (x, max(ys) + 1)]
            elif len(ys) == 1:
                y = wounded[0][1]
                ends = [(min(xs) - 1, y), (max(xs) + 1, y)]
            else:
                logger.debug("Wounded cells %s are not aligned, widening the search", list(wounded))

            if ends is not None:
                return [cell for cell in ends if board.is_open(*cell)]

        candidates = []
        for x, y in wounded:
            for cell in self._open_neighbors(x, y):
                if cell not in candidates:
                    candidates.append(cell)
        return candidates

    def choose_target(self):
        """
        Pick the next cell to fire at.

        Returns:
            tuple: ``(x, y)`` of the chosen cell, or None if no cell is open
        """
        utilities = self.utility_grid()
        mode = self.mode

        if isinstance(mode, Pursuing):
            target = self._best_of(self.kill_candidates(mode.wounded), utilities)
            if target is not None:
                logger.debug("Kill move %s (wounded: %s)", target, list(mode.wounded))
                return target
            logger.debug("No kill move around %s, hunting instead", list(mode.wounded))

        return self._hunt_target(utilities)

    def _hunt_target(self, utilities):
        board = self.board

        # Look around the last hit first
        if self.has_last_hit:
            target = self._best_of(self._open_neighbors(*self.last_hit), utilities)
            if target is not None:
                logger.debug("Probing next to last hit %s: %s", self.last_hit, target)
                return target

        n = board.max_alive_ship_length()
        if n > 0:
            # Center of the open run where the longest ship could hide with the fewest mines
            window = safest_window(board.open_mask(), board.mine_likelihood, n)
            if window is not None:
                if self.current_lives <= LOW_LIVES and window.mine_sum > RISKY_MINE_RATIO * n:
                    logger.debug(
                        "Safest run at %s is too risky (mine sum %.2f, %d lives)",
                        window.center, window.mine_sum, self.current_lives,
                    )
                else:
                    logger.debug("Run center %s (mine sum %.2f)", window.center, window.mine_sum)
                    return window.center

            pattern = [cell for cell in search_pattern(n, board.size) if board.is_open(*cell)]
            target = self._best_of(pattern, utilities)
            if target is not None:
                logger.debug("Pattern move %s for ship length %d", target, n)
                return target

        open_mask = board.open_mask()
        if not open_mask.any():
            return None
        scores = np.where(open_mask, utilities, -np.inf)
        y, x = np.unravel_index(np.argmax(scores), scores.shape)
        logger.debug("Best open cell %s", (int(x), int(y)))
        return int(x), int(y)

    # ------------------------------------------------------------------
    # Moves
    # ------------------------------------------------------------------

    def make_move(self):
        """
        Choose a cell and fire at it.

        Returns:
            bool: True if a ship was hit; False on a miss, a mine, or when no
            move could be made (no lives or no open cells left)
        """
        if self.current_lives <= 0:
            return False
        target = self.choose_target()
        if target is None:
            logger.debug("No open cell left to fire at")
            return False
        return self.fire_at(*target)

    def fire_at(self, x, y):
        """
        Fire at (x, y) and learn from the outcome.

        Returns:
            bool: True if a ship was hit
        """
        if self.current_lives <= 0:
            return False

        result = self.board.shoot(x, y)
        if result is None:
            logger.warning("Shot at (%d, %d) rejected by the board", x, y)
            return False

        self.moves += 1
        self.last_shot = ((x, y), result)
        logger.debug("Move %d: (%d, %d) -> %s", self.moves, x, y, result.value)

        if result.is_ship_hit:
            self._record_ship_hit(x, y)
        elif result is ShotResult.MINE:
            self.current_lives -= 1
            self.board.update_probabilities(x, y, hit_mine=True, mine_factor=MINE_HIT_SPREAD)
        else:
            self.board.update_probabilities(x, y)

        return result.is_ship_hit

    def _record_ship_hit(self, x, y):
        board = self.board
        self.has_last_hit = True
        self.last_hit = (x, y)
        if (x, y) not in self.wounded:
            self.wounded.append((x, y))

        board.update_probabilities(x, y, hit_ship=True)

        # The rest of the ship can only lie along the row or the column
        for distance in range(1, int(SPREAD_RADIUS) + 1):
            for dx, dy in ORTHOGONAL:
                nx, ny = x + dx * distance, y + dy * distance
                if board.is_open(nx, ny):
                    board.adjust_likelihood(nx, ny, ship_delta=SHIP_HIT_SPREAD * math.exp(-distance))

        for ship in board.sunk_ships():
            self.wounded = [cell for cell in self.wounded if cell not in ship.cells]
