import unittest

import numpy as np

from minefleet.patterns import resolved_neighbor_counts, safest_window, search_pattern


class SafestWindowTests(unittest.TestCase):
    def test_rows_win_ties(self):
        open_mask = np.ones((8, 8), dtype=bool)
        mines = np.zeros((8, 8))
        window = safest_window(open_mask, mines, 4)
        self.assertEqual(window.center, (2, 0))
        self.assertTrue(window.horizontal)
        self.assertEqual(window.mine_sum, 0.0)

    def test_avoids_mined_rows(self):
        open_mask = np.ones((5, 5), dtype=bool)
        mines = np.full((5, 5), 0.5)
        mines[:, 3] = 0.0
        window = safest_window(open_mask, mines, 3)
        self.assertFalse(window.horizontal)
        self.assertEqual(window.center, (3, 1))
        self.assertEqual(window.mine_sum, 0.0)

    def test_window_must_be_fully_open(self):
        open_mask = np.zeros((4, 4), dtype=bool)
        open_mask[2, 1:4] = True
        mines = np.zeros((4, 4))
        window = safest_window(open_mask, mines, 3)
        self.assertEqual(window.center, (2, 2))
        self.assertIsNone(safest_window(open_mask, mines, 4))

    def test_too_long_window(self):
        self.assertIsNone(safest_window(np.ones((3, 3), dtype=bool), np.zeros((3, 3)), 4))


class SearchPatternTests(unittest.TestCase):
    def test_diagonal_for_short_ships(self):
        self.assertEqual(
            search_pattern(2, 4),
            [(0, 0), (2, 0), (1, 1), (3, 1), (0, 2), (2, 2), (1, 3), (3, 3)],
        )

    def test_cross_for_long_ships(self):
        self.assertEqual(
            search_pattern(4, 4),
            [(0, 0), (3, 0), (1, 1), (2, 1), (1, 2), (2, 2), (0, 3), (3, 3)],
        )

    def test_partial_blocks_are_clipped(self):
        cells = search_pattern(3, 5)
        self.assertEqual(cells, [(0, 0), (3, 0), (1, 1), (4, 1), (2, 2), (0, 3), (3, 3), (1, 4), (4, 4)])

    def test_single_cell_ships_have_no_pattern(self):
        self.assertEqual(search_pattern(1, 10), [])


class ResolvedNeighborTests(unittest.TestCase):
    def test_counts_resolved_cells_in_window(self):
        open_mask = np.ones((4, 4), dtype=bool)
        open_mask[0, 0] = False
        open_mask[0, 1] = False
        counts = resolved_neighbor_counts(open_mask)
        self.assertEqual(counts[0, 0], 2)
        self.assertEqual(counts[1, 1], 2)
        self.assertEqual(counts[1, 2], 1)
        self.assertEqual(counts[3, 3], 0)


if __name__ == "__main__":
    unittest.main()
