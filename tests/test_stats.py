"""Tests for leaderboard statistics."""

import unittest

from reward_rover.episode import EpisodeSummary
from reward_rover.stats import compute_episode_summary, compute_move_stats


class TestStats(unittest.TestCase):

    def setUp(self):
        self.history = [
            EpisodeSummary(1, 30, -5.0, True, "random"),
            EpisodeSummary(2, 12, 18.0, True, "random"),
            EpisodeSummary(3, 55, -40.0, False, "speedrun"),
        ]

    def test_empty(self):
        stats = compute_episode_summary([])
        self.assertEqual(stats.count, 0)
        self.assertIsNone(stats.avg_reward)
        self.assertIn("No finished episodes", stats.summary())
        moves = compute_move_stats(4, [])
        self.assertEqual((moves.current, moves.episodes, moves.average), (4, 0, None))

    def test_episode_summary(self):
        stats = compute_episode_summary(self.history)
        self.assertEqual(stats.count, 3)
        self.assertAlmostEqual(stats.avg_steps, 97 / 3)
        self.assertAlmostEqual(stats.avg_reward, -9.0)
        self.assertEqual(stats.best_reward, 18.0)
        self.assertEqual(stats.best_steps, 12)
        self.assertAlmostEqual(stats.success_rate, 2 / 3)
        self.assertIn("Fewest steps:      12", stats.summary())

    def test_move_stats(self):
        moves = compute_move_stats(7, self.history)
        self.assertEqual(moves.total_completed, 97)
        self.assertEqual(moves.episodes, 3)
        self.assertAlmostEqual(moves.average, 97 / 3)
        self.assertEqual(moves.best, 12)


if __name__ == "__main__":
    unittest.main()
