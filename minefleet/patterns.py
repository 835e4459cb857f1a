"""Board geometry used by the hunt: open runs, search patterns, crowding counts."""

from collections import namedtuple

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

RunWindow = namedtuple("RunWindow", ["center", "horizontal", "mine_sum"])


def safest_window(open_mask, mine_likelihood, n):
    """
    Find the n-long straight run of open cells with the least mine likelihood.

    Rows are scanned before columns and the first window found wins a tie.

    Args:
        open_mask (numpy.ndarray): Boolean grid, True where a cell can be fired at
        mine_likelihood (numpy.ndarray): Mine likelihood grid
        n (int): Window length (the longest ship still afloat)

    Returns:
        RunWindow: Center cell ``(x, y)``, orientation and summed mine
        likelihood of the safest window, or None if no window fits
    """
    size = open_mask.shape[0]
    if n < 1 or n > size:
        return None

    best = None
    # Transposing turns columns into rows, so both passes index [line, offset]
    for horizontal, mask, mines in (
        (True, open_mask, mine_likelihood),
        (False, open_mask.T, mine_likelihood.T),
    ):
        fits = sliding_window_view(mask, n, axis=1).all(axis=-1)
        if not fits.any():
            continue
        sums = np.where(fits, sliding_window_view(mines, n, axis=1).sum(axis=-1), np.inf)
        line, start = np.unravel_index(np.argmin(sums), sums.shape)
        total = float(sums[line, start])
        if best is None or total < best.mine_sum:
            middle = int(start) + n // 2
            center = (middle, int(line)) if horizontal else (int(line), middle)
            best = RunWindow(center, horizontal, total)
    return best


def search_pattern(n, size):
    """
    Cells of the hunt pattern for a longest ship of length ``n``.

    The board is tiled with n x n blocks. Ships of length 2-3 get the main
    diagonal of every block (diagonal stripes); longer ships get both
    diagonals (a cross). A length-1 ship has no useful pattern.

    Returns:
        list: ``(x, y)`` cells in row-major order
    """
    if n < 2:
        return []

    cells = set()
    for y0 in range(0, size, n):
        for x0 in range(0, size, n):
            for i in range(n):
                y = y0 + i
                if y >= size:
                    break
                if x0 + i < size:
                    cells.add((x0 + i, y))
                if n >= 4 and x0 + n - 1 - i < size:
                    cells.add((x0 + n - 1 - i, y))
    return sorted(cells, key=lambda cell: (cell[1], cell[0]))


def resolved_neighbor_counts(open_mask):
    """Number of resolved cells in the 3x3 window around every cell."""
    size = open_mask.shape[0]
    resolved = np.pad((~open_mask).astype(np.int32), 1)
    counts = np.zeros(open_mask.shape, dtype=np.int32)
    for dy in range(3):
        for dx in range(3):
            counts += resolved[dy:dy + size, dx:dx + size]
    return counts
