import random
import unittest

import numpy as np

from minefleet.board import Board, CellState, ShotResult
from minefleet.config import calculate_fleet, mine_count


class ShipPlacementTests(unittest.TestCase):
    def test_rejects_out_of_bounds_and_bad_length(self):
        board = Board(10)
        self.assertFalse(board.place_ship(8, 0, 4, True))
        self.assertFalse(board.place_ship(0, 8, 4, False))
        self.assertFalse(board.place_ship(-1, 0, 2, True))
        self.assertFalse(board.place_ship(0, 0, 0, True))
        self.assertFalse(board.place_ship(0, 0, 11, True))
        self.assertEqual(board.remaining_ship_cells, 0)

    def test_ships_may_not_touch(self):
        board = Board(10)
        self.assertTrue(board.place_ship(2, 2, 3, True))
        # overlapping, side by side and diagonal placements
        self.assertFalse(board.place_ship(3, 2, 2, False))
        self.assertFalse(board.place_ship(2, 3, 3, True))
        self.assertFalse(board.place_ship(5, 3, 1, True))
        self.assertTrue(board.place_ship(6, 2, 1, True))
        self.assertEqual(board.remaining_ship_cells, 4)
        self.assertEqual(len(board.ships), 2)

    def test_ship_cells_and_lookup(self):
        board = Board(10)
        board.place_ship(1, 1, 3, False)
        ship = board.ship_at(1, 2)
        self.assertEqual(ship.cells, ((1, 1), (1, 2), (1, 3)))
        self.assertFalse(ship.horizontal)
        self.assertIsNone(board.ship_at(2, 2))
        self.assertEqual(board.cell_state(1, 3), CellState.SHIP)


class MinePlacementTests(unittest.TestCase):
    def test_mine_never_touches_ship(self):
        board = Board(10)
        board.place_ship(2, 2, 2, True)
        self.assertFalse(board.place_mine(4, 3))
        self.assertFalse(board.place_mine(2, 2))
        self.assertTrue(board.place_mine(5, 2))
        self.assertEqual(board.mine_count, 1)

    def test_ship_never_touches_mine(self):
        board = Board(10)
        board.place_mine(5, 5)
        self.assertFalse(board.place_ship(3, 4, 2, True))
        self.assertTrue(board.place_ship(2, 4, 2, True))

    def test_mines_may_touch_each_other(self):
        board = Board(10)
        self.assertTrue(board.place_mine(0, 0))
        self.assertTrue(board.place_mine(1, 0))
        self.assertFalse(board.place_mine(1, 0))


class RandomLayoutTests(unittest.TestCase):
    def test_random_layout_respects_spacing(self):
        board = Board(10)
        rng = random.Random(7)
        board.place_fleet_randomly(calculate_fleet(10), rng)
        board.place_mines_randomly(mine_count(10), rng)

        self.assertEqual(board.remaining_ship_cells, 20)
        self.assertEqual(int(np.sum(board.grid == CellState.SHIP)), 20)
        self.assertEqual(int(np.sum(board.grid == CellState.MINE)), 3)
        for y, x in zip(*np.nonzero(board.grid == CellState.MINE)):
            neighbors = [board.grid[ny, nx] for nx, ny in board._neighbors8(int(x), int(y))]
            self.assertNotIn(CellState.SHIP, neighbors)

    def test_too_many_mines_raises(self):
        board = Board(3)
        board.place_ship(1, 1, 1, True)
        with self.assertRaises(RuntimeError):
            board.place_mines_randomly(1)

    def test_impossible_fleet_raises(self):
        board = Board(3)
        with self.assertRaises(RuntimeError):
            board.place_fleet_randomly([(3, 3)], random.Random(1), max_retries=3, max_attempts=10)


class ShootingTests(unittest.TestCase):
    def test_sinking_a_ship_wins(self):
        board = Board(10)
        board.place_ship(2, 5, 4, True)
        results = [board.shoot(x, 5) for x in range(2, 6)]
        self.assertEqual(results, [ShotResult.HIT, ShotResult.HIT, ShotResult.HIT, ShotResult.SUNK])
        self.assertEqual(board.remaining_ship_cells, 0)
        self.assertTrue(board.is_victory())
        self.assertTrue(board.is_game_over())

    def test_sunk_ship_perimeter_is_revealed(self):
        board = Board(10)
        board.place_ship(2, 5, 2, True)
        board.set_initial_likelihoods(0.2, 0.03)
        board.shoot(2, 5)
        self.assertEqual(board.cell_state(1, 4), CellState.EMPTY)
        board.shoot(3, 5)

        for x in range(1, 5):
            for y in (4, 6):
                self.assertEqual(board.cell_state(x, y), CellState.MISS)
                self.assertFalse(board.is_open(x, y))
                self.assertEqual(board.ship_likelihood[y, x], 0.0)
        self.assertEqual(board.cell_state(1, 5), CellState.MISS)
        self.assertEqual(board.cell_state(4, 5), CellState.MISS)
        # revealed, not fired at
        self.assertFalse(board.is_shot(1, 4))
        self.assertEqual(board.max_alive_ship_length(), 0)

    def test_mine_and_miss(self):
        board = Board(10)
        board.place_mine(0, 0)
        self.assertIs(board.shoot(0, 0), ShotResult.MINE)
        self.assertEqual(board.cell_state(0, 0), CellState.MINE_TRIGGERED)
        self.assertEqual(board.triggered_mines, 1)
        self.assertIs(board.shoot(9, 9), ShotResult.MISS)
        self.assertEqual(board.cell_state(9, 9), CellState.MISS)

    def test_repeat_and_off_board_shots_are_rejected(self):
        board = Board(10)
        board.place_ship(0, 0, 2, True)
        board.shoot(0, 0)
        before = board.grid.copy()
        self.assertIsNone(board.shoot(0, 0))
        self.assertIsNone(board.shoot(10, 0))
        self.assertIsNone(board.shoot(0, -1))
        np.testing.assert_array_equal(board.grid, before)
        self.assertEqual(board.remaining_ship_cells, 1)

    def test_remaining_cells_match_grid(self):
        board = Board(10)
        board.place_ship(0, 0, 3, True)
        board.place_ship(5, 5, 2, False)
        board.shoot(0, 0)
        board.shoot(5, 6)
        self.assertEqual(board.remaining_ship_cells, int(np.sum(board.grid == CellState.SHIP)))


class LikelihoodTests(unittest.TestCase):
    def test_observed_cell_is_pinned(self):
        board = Board(10)
        board.set_initial_likelihoods(0.2, 0.03)
        board.update_probabilities(4, 4, hit_ship=True, ship_factor=0.7)
        self.assertEqual(board.ship_likelihood[4, 4], 1.0)
        self.assertEqual(board.mine_likelihood[4, 4], 0.0)

        board.update_probabilities(0, 0, hit_mine=True, mine_factor=0.3)
        self.assertEqual(board.ship_likelihood[0, 0], 0.0)
        self.assertEqual(board.mine_likelihood[0, 0], 1.0)

        board.update_probabilities(9, 9)
        self.assertEqual(board.ship_likelihood[9, 9], 0.0)
        self.assertEqual(board.mine_likelihood[9, 9], 0.0)

    def test_spread_decays_with_distance(self):
        board = Board(10)
        board.set_initial_likelihoods(0.2, 0.03)
        board.update_probabilities(5, 5, hit_ship=True, ship_factor=0.7)
        self.assertAlmostEqual(board.ship_likelihood[5, 6], 0.2 + 0.7 * np.exp(-1))
        self.assertAlmostEqual(board.ship_likelihood[5, 7], 0.2 + 0.7 * np.exp(-2))
        self.assertGreater(board.ship_likelihood[5, 6], board.ship_likelihood[6, 6])
        # outside the radius
        self.assertAlmostEqual(board.ship_likelihood[7, 7], 0.2)

    def test_likelihoods_stay_in_unit_interval(self):
        board = Board(6)
        board.set_initial_likelihoods(0.9, 0.9)
        for _ in range(5):
            board.update_probabilities(2, 2, hit_ship=True, ship_factor=0.7, mine_factor=0.3)
        board.adjust_likelihood(0, 0, ship_delta=-5.0, mine_delta=5.0)
        self.assertTrue(np.all(board.ship_likelihood >= 0.0))
        self.assertTrue(np.all(board.ship_likelihood <= 1.0))
        self.assertTrue(np.all(board.mine_likelihood >= 0.0))
        self.assertTrue(np.all(board.mine_likelihood <= 1.0))
        self.assertEqual(board.ship_likelihood[0, 0], 0.0)
        self.assertEqual(board.mine_likelihood[0, 0], 1.0)

    def test_spread_skips_resolved_cells(self):
        board = Board(10)
        board.set_initial_likelihoods(0.2, 0.03)
        board.shoot(5, 6)
        board.update_probabilities(5, 6)
        board.update_probabilities(5, 5, hit_ship=True, ship_factor=0.7)
        self.assertEqual(board.ship_likelihood[6, 5], 0.0)


if __name__ == "__main__":
    unittest.main()
