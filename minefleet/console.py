"""
Console front end: board setup prompts, rendering and the game loop.

Run ``minefleet --size 10`` to place the fleet and the mines by hand and then
watch the engine play, or ``minefleet --size 10 --random-layout --no-pause``
for an unattended game.
"""

import argparse
import logging
import os
import random

from minefleet.board import Board, CellState, ShotResult
from minefleet.config import MAX_BOARD_SIZE, MIN_BOARD_SIZE, calculate_fleet, mine_count
from minefleet.targeting import TargetingEngine

SYMBOLS = {
    CellState.EMPTY: ".",
    CellState.SHIP: "S",
    CellState.MINE: "*",
    CellState.HIT: "X",
    CellState.MINE_TRIGGERED: "!",
    CellState.MISS: "o",
}

HIDDEN_STATES = (CellState.SHIP, CellState.MINE)


def clear_screen():
    os.system("cls" if os.name == "nt" else "clear")


def prompt_int(prompt, low, high, input_fn=input, output=print):
    """Ask until the answer is an integer in [low, high]."""
    while True:
        answer = input_fn(prompt).strip()
        try:
            value = int(answer)
        except ValueError:
            output("Error: enter a valid number")
            continue
        if low <= value <= high:
            return value
        output(f"Error: value must be between {low} and {high}")


def prompt_orientation(input_fn=input, output=print):
    """Ask for 'h' or 'v'; returns True for horizontal."""
    while True:
        answer = input_fn("Enter direction (h - horizontally, v - vertically): ").strip().lower()
        if answer in ("h", "v"):
            return answer == "h"
        output("Error: direction must be 'h' or 'v'")


def render_board(board, reveal=False):
    """
    Draw the board as text.

    Args:
        board (Board): Board to draw
        reveal (bool): Show intact ships and untriggered mines

    Returns:
        str: One line per row, preceded by a header of column numbers
    """
    width = len(str(board.size - 1))
    header = " " * (width + 1) + " ".join(str(x).rjust(width) for x in range(board.size))
    lines = [header]
    for y in range(board.size):
        cells = []
        for x in range(board.size):
            state = board.cell_state(x, y)
            if not reveal and state in HIDDEN_STATES:
                state = CellState.EMPTY
            cells.append(SYMBOLS[state].rjust(width))
        lines.append(str(y).rjust(width) + " " + " ".join(cells))
    return "\n".join(lines)


def _pause(input_fn, message="Press Enter to continue..."):
    input_fn(message)


def place_ships_interactively(board, fleet, input_fn=input, output=print, clear=True):
    """Ask for the position of every ship in the fleet, retrying rejected ones."""
    limit = board.size - 1
    total = sum(length * count for length, count in fleet)
    output(f"\nPlacing ships (total cells: {total}):")
    for length, count in fleet:
        output(f"Ships of length {length}: {count}")

    placed = {length: 0 for length, _ in fleet}
    for length, count in fleet:
        while placed[length] < count:
            if clear:
                clear_screen()
            output("\nCurrent field:")
            output(render_board(board, reveal=True))
            for other_length, other_count in fleet:
                output(f"Ships of length {other_length}: {placed[other_length]} of {other_count} placed")
            output(f"\nPlacing ship of length {length} ({placed[length] + 1} of {count})")

            x = prompt_int(f"Enter X coordinate (0-{limit}): ", 0, limit, input_fn, output)
            y = prompt_int(f"Enter Y coordinate (0-{limit}): ", 0, limit, input_fn, output)
            horizontal = True if length == 1 else prompt_orientation(input_fn, output)

            if board.place_ship(x, y, length, horizontal):
                placed[length] += 1
                output("Ship placed!")
            else:
                output("Failed to place ship. Check coordinates and ensure ships do not touch.")
            _pause(input_fn)


def place_mines_interactively(board, count, input_fn=input, output=print, clear=True):
    """Ask for the position of every mine, retrying rejected ones."""
    limit = board.size - 1
    output(f"\nPlacing mines:\nTotal mines to place: {count}")

    placed = 0
    while placed < count:
        if clear:
            clear_screen()
        output("\nCurrent field:")
        output(render_board(board, reveal=True))
        output(f"\nMines placed: {placed} of {count}")

        x = prompt_int(f"Enter X coordinate (0-{limit}): ", 0, limit, input_fn, output)
        y = prompt_int(f"Enter Y coordinate (0-{limit}): ", 0, limit, input_fn, output)
        if board.place_mine(x, y):
            placed += 1
            output("Mine placed!")
        else:
            output("Failed to place mine. Check coordinates and ensure the cell is free.")
        _pause(input_fn)


def run_game(board, engine, reveal=False, pause=True, clear=True, input_fn=input, output=print):
    """
    Let the engine play until it wins, runs out of lives or runs out of cells.

    Returns:
        dict: ``moves``, ``lives_left``, ``remaining_ship_cells`` and ``victory``
    """
    if clear:
        clear_screen()
    output("\nStart game!")
    output(f"Board size: {board.size}x{board.size}")
    output(f"Lives: {engine.max_lives}\n")

    while True:
        if not engine.can_move():
            output("\nNo legal move left!")
            break

        hit = engine.make_move()
        (x, y), result = engine.last_shot
        output(f"\nMove {engine.moves}: ({x}, {y})")
        output("Hit!" if hit else ("Mine!" if result is ShotResult.MINE else "Miss!"))
        if result is ShotResult.SUNK:
            output("Ship sunk!")
        output(f"Lives left: {engine.current_lives}")
        output(f"Remaining ship cells: {board.remaining_ship_cells}")
        output(render_board(board, reveal=reveal))

        if board.is_victory():
            output("\nVictory! All ships destroyed!")
            break
        if engine.current_lives <= 0:
            output("\nGame over! No more lives!")
            break

        if pause:
            _pause(input_fn, "Press Enter for next move...")
        if clear:
            clear_screen()

    summary = {
        "moves": engine.moves,
        "lives_left": engine.current_lives,
        "remaining_ship_cells": board.remaining_ship_cells,
        "victory": board.is_victory(),
    }
    output("\nGame results:")
    output(f"Total moves: {summary['moves']}")
    output(f"Lives left: {summary['lives_left']}")
    output(f"Remaining ship cells: {summary['remaining_ship_cells']}")
    return summary


def build_parser():
    parser = argparse.ArgumentParser(description="Watch the targeting engine clear a minefield of ships")
    parser.add_argument("--size", type=int, default=None,
                        help=f"Board size ({MIN_BOARD_SIZE}-{MAX_BOARD_SIZE}); asked for if omitted")
    parser.add_argument("--random-layout", action="store_true", help="Place ships and mines at random")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the random layout")
    parser.add_argument("--reveal", action="store_true", help="Show intact ships and mines while playing")
    parser.add_argument("--no-pause", action="store_true", help="Do not wait for Enter between moves")
    parser.add_argument("--no-clear", action="store_true", help="Do not clear the screen")
    parser.add_argument("--verbose", action="store_true", help="Log every engine decision")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    size = args.size
    if size is None:
        size = prompt_int(f"Enter board size ({MIN_BOARD_SIZE}-{MAX_BOARD_SIZE}): ",
                          MIN_BOARD_SIZE, MAX_BOARD_SIZE)
    elif not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
        print(f"Error: board size must be between {MIN_BOARD_SIZE} and {MAX_BOARD_SIZE}")
        return 1

    board = Board(size)
    fleet = calculate_fleet(size)
    mines = mine_count(size)
    clear = not args.no_clear

    if args.random_layout:
        rng = random.Random(args.seed)
        try:
            board.place_fleet_randomly(fleet, rng)
            board.place_mines_randomly(mines, rng)
        except RuntimeError as e:
            print(f"Error: {e}")
            return 1
    else:
        place_ships_interactively(board, fleet, clear=clear)
        place_mines_interactively(board, mines, clear=clear)

    engine = TargetingEngine(board, max_lives=mines)
    summary = run_game(board, engine, reveal=args.reveal, pause=not args.no_pause, clear=clear)
    return 0 if summary["victory"] else 2


if __name__ == "__main__":
    raise SystemExit(main())
