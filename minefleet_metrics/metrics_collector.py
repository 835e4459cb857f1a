"""
Batch evaluation of the targeting engine.

Plays many unattended games on random layouts, scores the engine's ship
likelihood grid against the hidden layout, and writes a JSON summary plus a
couple of charts.

Usage:
    minefleet-metrics --games 500 --size 10 --seed 1
"""

import os
import json
import random
import numpy as np
import torch
import matplotlib.pyplot as plt
from collections import Counter
from datetime import datetime
from minefleet.board import Board, CellState
from minefleet.config import calculate_fleet, mine_count
from minefleet.targeting import TargetingEngine

METRICS_PREFIX = "engine_metrics_"
PLOT_PREFIXES = ("moves_dist_", "lives_lost_")
SCORE_KEYS = ("precision", "recall", "f1_score", "brier_score")
KEEP_RUNS = 2


def _stamp():
    return datetime.now().strftime("%Y%m%d_%H%M%S")


class MetricsCollector:
    """Runs simulated games and keeps their results on disk"""

    def __init__(self, output_dir="metrics"):
        """
        Args:
            output_dir (str): Where JSON summaries and charts are written
        """
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)

    def play_game(self, board_size, rng):
        """
        Play one game on a random layout.

        The ship likelihood grid is scored once, after a quarter of the board
        has been fired at (or at the end of a shorter game).

        Args:
            board_size (int): Side length of the board
            rng (random.Random): Source of randomness for the layout

        Returns:
            dict: moves, lives_lost, victory and the likelihood evaluation

        Raises:
            RuntimeError: If a random layout could not be generated
        """
        board = Board(board_size)
        board.place_fleet_randomly(calculate_fleet(board_size), rng)
        board.place_mines_randomly(mine_count(board_size), rng)
        engine = TargetingEngine(board, max_lives=mine_count(board_size))

        snapshot_at = board_size * board_size // 4
        evaluation = None
        while engine.can_move() and not board.is_victory():
            engine.make_move()
            if evaluation is None and engine.moves >= snapshot_at:
                evaluation = self.evaluate_likelihoods(board)
        if evaluation is None:
            evaluation = self.evaluate_likelihoods(board)

        return {
            "moves": engine.moves,
            "lives_lost": engine.max_lives - engine.current_lives,
            "victory": board.is_victory(),
            "evaluation": evaluation,
        }

    def evaluate_likelihoods(self, board, threshold=0.5):
        """
        Score the ship likelihood grid against the hidden layout.

        Only cells that can still be fired at are compared; everything else
        is already known to the engine.

        Args:
            board (Board): Board in the middle of a game
            threshold (float): Likelihood above which a cell counts as a predicted ship

        Returns:
            dict: precision, recall, f1_score and brier_score
        """
        likelihood = torch.tensor(board.ship_likelihood, dtype=torch.float32)
        open_cells = torch.tensor(board.open_mask())
        actual = torch.tensor(board.grid == CellState.SHIP) & open_cells

        predicted = (likelihood > threshold) & open_cells
        tp = int((predicted & actual).sum())
        fp = int((predicted & ~actual).sum())
        fn = int((~predicted & actual).sum())

        precision = tp / (tp + fp) if tp + fp else 0.0
        recall = tp / (tp + fn) if tp + fn else 0.0
        f1_score = 2 * precision * recall / (precision + recall) if precision + recall else 0.0

        # Brier score: mean squared gap between likelihood and the 0/1 truth
        brier_score = 0.0
        if bool(open_cells.any()):
            squared = (likelihood - actual.float()) ** 2
            brier_score = float(squared[open_cells].mean())

        return {
            "precision": float(precision),
            "recall": float(recall),
            "f1_score": float(f1_score),
            "brier_score": brier_score,
        }

    def run_simulations(self, num_games=200, board_size=10, seed=None):
        """
        Play ``num_games`` games and aggregate their results.

        Layouts that cannot be generated are skipped; at most twice as many
        games as requested are attempted.

        Raises:
            RuntimeError: If not a single game could be played
        """
        rng = random.Random(seed)
        metrics = {"moves": [], "lives_lost": [], "victories": []}
        metrics.update({key: [] for key in SCORE_KEYS})

        print(f"Simulating {num_games} games on a {board_size}x{board_size} board")
        played = 0
        for _ in range(num_games * 2):
            if played == num_games:
                break
            try:
                game = self.play_game(board_size, rng)
            except RuntimeError as e:
                print(f"Layout failed, skipping: {e}")
                continue

            metrics["moves"].append(game["moves"])
            metrics["lives_lost"].append(game["lives_lost"])
            metrics["victories"].append(game["victory"])
            for key in SCORE_KEYS:
                metrics[key].append(game["evaluation"][key])

            played += 1
            if played % 100 == 0:
                print(f"{played} games played")

        if not played:
            raise RuntimeError(f"No playable layout found for a {board_size}x{board_size} board")

        metrics.update(
            board_size=board_size,
            num_games=played,
            win_rate=float(np.mean(metrics["victories"])),
            avg_moves=float(np.mean(metrics["moves"])),
            std_moves=float(np.std(metrics["moves"])),
            avg_lives_lost=float(np.mean(metrics["lives_lost"])),
            avg_metrics={key: float(np.mean(metrics[key])) for key in SCORE_KEYS},
        )
        return metrics

    def save_metrics(self, metrics, filename=None):
        """
        Write the aggregate results as JSON, then prune older runs.

        Args:
            metrics (dict): Output of ``run_simulations``
            filename (str, optional): Name inside the output directory;
                defaults to a timestamped name

        Returns:
            str: Path of the written file
        """
        filepath = os.path.join(self.output_dir, filename or f"{METRICS_PREFIX}{_stamp()}.json")

        summary = {
            "timestamp": datetime.now().isoformat(),
            "board_size": metrics["board_size"],
            "num_games": metrics["num_games"],
            "win_rate": metrics["win_rate"],
            "avg_moves": metrics["avg_moves"],
            "std_moves": metrics["std_moves"],
            "avg_lives_lost": metrics["avg_lives_lost"],
            "sample_moves": metrics["moves"][:10],
        }
        summary.update(metrics["avg_metrics"])

        with open(filepath, "w") as f:
            json.dump(summary, f, indent=2)
        self._cleanup_old_metrics_files()

        print(f"\nResults written to {filepath}")
        print(f"  games:       {metrics['num_games']}")
        print(f"  win rate:    {metrics['win_rate']:.2%}")
        print(f"  moves:       {metrics['avg_moves']:.1f} ± {metrics['std_moves']:.1f}")
        print(f"  lives lost:  {metrics['avg_lives_lost']:.2f}")
        for key in SCORE_KEYS:
            print(f"  {key + ':':<12} {metrics['avg_metrics'][key]:.3f}")

        return filepath

    def _cleanup_old_metrics_files(self):
        """Delete all but the newest ``KEEP_RUNS`` summaries and any chart not tied to them."""
        summaries = sorted(
            name for name in os.listdir(self.output_dir)
            if name.startswith(METRICS_PREFIX) and name.endswith(".json")
        )
        if len(summaries) <= KEEP_RUNS:
            return

        # Names embed a sortable timestamp
        kept = [name[len(METRICS_PREFIX):-len(".json")] for name in summaries[-KEEP_RUNS:]]
        stale = summaries[:-KEEP_RUNS]
        stale += [
            name for name in os.listdir(self.output_dir)
            if name.startswith(PLOT_PREFIXES) and name.endswith(".png")
            and not any(stamp in name for stamp in kept)
        ]

        for name in stale:
            path = os.path.join(self.output_dir, name)
            try:
                os.remove(path)
            except OSError as e:
                print(f"Could not remove {path}: {e}")
            else:
                print(f"Removed {path}")

    def _save_figure(self, save_dir, prefix, stamp):
        path = os.path.join(save_dir, f"{prefix}{stamp}.png")
        plt.savefig(path)
        plt.close()
        return path

    def generate_plots(self, metrics, save_dir=None):
        """
        Draw the moves histogram and the lives-lost bar chart.

        Returns:
            list: Paths of the PNG files
        """
        save_dir = save_dir or self.output_dir
        os.makedirs(save_dir, exist_ok=True)
        stamp = _stamp()
        paths = []

        plt.figure(figsize=(10, 6))
        plt.hist(metrics["moves"], bins=20, alpha=0.7, color='blue')
        plt.axvline(metrics["avg_moves"], color='red', linestyle='dashed', linewidth=2)
        plt.title(f"Moves per game ({metrics['num_games']} games, {metrics['board_size']}x{metrics['board_size']})")
        plt.xlabel('Moves')
        plt.ylabel('Games')
        plt.grid(True, alpha=0.3)
        plt.text(0.95, 0.95, f"mean {metrics['avg_moves']:.1f}", transform=plt.gca().transAxes,
                 ha='right', va='top', bbox=dict(boxstyle='round', facecolor='white', alpha=0.8))
        paths.append(self._save_figure(save_dir, PLOT_PREFIXES[0], stamp))

        counts = Counter(metrics["lives_lost"])
        lives = sorted(counts)
        plt.figure(figsize=(10, 6))
        plt.bar([str(n) for n in lives], [counts[n] for n in lives], color='purple')
        plt.title(f"Lives lost per game (win rate {metrics['win_rate']:.1%})")
        plt.xlabel('Lives lost')
        plt.ylabel('Games')
        plt.grid(True, axis='y', alpha=0.3)
        paths.append(self._save_figure(save_dir, PLOT_PREFIXES[1], stamp))

        print(f"Charts written to {save_dir}")
        return paths


def main(argv=None):
    import argparse

    parser = argparse.ArgumentParser(description='Measure the targeting engine over many random games')
    parser.add_argument('--games', type=int, default=200, help='Number of games to simulate')
    parser.add_argument('--size', type=int, default=10, help='Board size')
    parser.add_argument('--seed', type=int, default=None, help='Seed for the random layouts')
    parser.add_argument('--output-dir', default='metrics', help='Where to write JSON and charts')
    parser.add_argument('--no-plots', action='store_true', help='Skip the matplotlib charts')
    args = parser.parse_args(argv)

    collector = MetricsCollector(output_dir=args.output_dir)
    results = collector.run_simulations(num_games=args.games, board_size=args.size, seed=args.seed)
    collector.save_metrics(results)
    if not args.no_plots:
        collector.generate_plots(results)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
