"""Tests for Random mode, the speedrun ladder and bonus drops."""

import unittest

from reward_rover.constants import (
    BONUS_INTERVAL, BONUS_TYPES, MAX_SPEEDRUN_STAGE, SPEEDRUN_STAGES, speedrun_stage,
)
from reward_rover.episode import EpisodeState, PolicyParams
from reward_rover.grid import Position, TileType, create_empty_grid, iter_positions
from reward_rover.modes import RandomMode, RandomModeConfig


def put_next_to_goal(mode):
    """Swap in a tiny board where one greedy step reaches the goal."""
    mode.policy = PolicyParams(epsilon=0.0)
    mode.state = EpisodeState.create(
        create_empty_grid(5), (1, 1), [(1, 0)], mode=mode.mode_tag,
        is_running=True, episode=mode.state.episode, history=mode.state.history)


def free_cell(state):
    for pos in iter_positions(state.grid):
        if (state.grid[pos.y][pos.x].type is TileType.EMPTY
                and pos not in (state.agent, state.spawn)
                and pos not in state.goals):
            return pos
    raise AssertionError("no free cell")


class TestRandomMode(unittest.TestCase):

    def test_initial_world(self):
        mode = RandomMode(RandomModeConfig(seed=1))
        self.assertEqual(mode.mode_tag, "random")
        self.assertEqual(mode.state.size, 10)
        self.assertEqual(len(mode.state.goals), 1)
        self.assertFalse(mode.is_running)
        self.assertEqual(mode.tick(), [])

    def test_level2_has_two_goals(self):
        mode = RandomMode(RandomModeConfig(level="level2", seed=2))
        self.assertEqual(len(mode.state.goals), 2)
        with self.assertRaises(ValueError):
            mode.set_level("level9")

    def test_success_regenerates_board(self):
        mode = RandomMode(RandomModeConfig(seed=3))
        put_next_to_goal(mode)
        results = mode.tick()
        self.assertTrue(results[0].reached_goal)
        state = mode.state
        self.assertEqual(state.size, 10)
        self.assertEqual(state.episode, 2)
        self.assertEqual(len(state.history), 1)
        self.assertTrue(state.history[0].success)
        self.assertEqual(state.history[0].mode, "random")
        self.assertTrue(state.is_running)
        self.assertEqual(state.current_steps, 0)

    def test_reset_restarts_run(self):
        mode = RandomMode(RandomModeConfig(seed=4))
        put_next_to_goal(mode)
        mode.tick()
        mode.reset()
        self.assertEqual(mode.state.episode, 1)
        self.assertEqual(mode.state.history, ())


class TestSpeedrun(unittest.TestCase):

    def setUp(self):
        self.mode = RandomMode(RandomModeConfig(speedrun=True, seed=5))

    def test_ladder(self):
        self.assertEqual([s.time_limit for s in SPEEDRUN_STAGES], [55, 48, 42, 36, 30])
        self.assertIs(speedrun_stage(99), SPEEDRUN_STAGES[-1])
        self.assertIs(speedrun_stage(-1), SPEEDRUN_STAGES[0])

    def test_first_stage(self):
        run = self.mode.speedrun
        self.assertTrue(run.active)
        self.assertEqual((run.stage, run.time_left, run.time_limit), (0, 55, 55))
        self.assertEqual(self.mode.state.mode, "speedrun")
        self.assertEqual(len(self.mode.state.goals), 2)

    def test_goal_advances_stage(self):
        self.mode.start()
        self.mode.tick_timer()
        self.mode.tick_timer()
        put_next_to_goal(self.mode)
        result = self.mode.tick()[0]
        self.assertEqual(result.summary.stage, 0)
        self.assertEqual(result.summary.time_limit, 55)
        self.assertEqual(result.summary.time_used, 2)
        self.assertEqual(self.mode.state.history[-1], result.summary)
        self.assertEqual(self.mode.speedrun.stage, 1)
        self.assertEqual(self.mode.speedrun.time_left, 48)
        self.assertEqual(self.mode.state.size, 11)

    def test_timeout_is_a_failure(self):
        self.mode.start()
        ended = []
        for _ in range(55):
            ended.extend(self.mode.tick_timer())
        self.assertEqual(len(ended), 1)
        summary = ended[0]
        self.assertFalse(summary.success)
        self.assertEqual(summary.mode, "speedrun")
        self.assertEqual((summary.stage, summary.time_limit, summary.time_used), (0, 55, 55))
        self.assertEqual(self.mode.speedrun.stage, 1)
        self.assertEqual(self.mode.state.episode, 2)
        self.assertTrue(self.mode.is_running)

    def test_last_stage_repeats(self):
        self.mode.speedrun = self.mode._stage_state(MAX_SPEEDRUN_STAGE)
        self.mode.start()
        self.mode.expire()
        self.assertEqual(self.mode.speedrun.stage, MAX_SPEEDRUN_STAGE)
        self.assertEqual(self.mode.speedrun.time_left, 30)

    def test_clock_stops_while_paused(self):
        self.mode.tick_timer()
        self.assertEqual(self.mode.speedrun.time_left, 55)

    def test_switching_off(self):
        self.mode.set_speedrun(False)
        self.assertFalse(self.mode.speedrun.active)
        self.assertEqual(self.mode.mode_tag, "random")


class TestBonuses(unittest.TestCase):

    def setUp(self):
        self.mode = RandomMode(RandomModeConfig(seed=6))
        self.mode.start()

    def test_drop_every_interval(self):
        for _ in range(BONUS_INTERVAL - 1):
            self.mode.tick_timer()
        self.assertFalse(self.mode.bonus_ready)
        self.mode.tick_timer()
        self.assertTrue(self.mode.bonus_ready)
        self.assertIn(self.mode.active_bonus, BONUS_TYPES)
        self.assertEqual(self.mode.latest_drop, self.mode.active_bonus)
        # countdown holds while the bonus is unspent
        for _ in range(3):
            self.mode.tick_timer()
        self.assertEqual(self.mode.bonus_countdown, BONUS_INTERVAL)

    def test_nothing_to_spend(self):
        self.assertFalse(self.mode.use_bonus(free_cell(self.mode.state)))

    def test_place_tile_bonus(self):
        self.mode.bonus_ready, self.mode.active_bonus = True, "obstacle"
        state = self.mode.state
        self.assertFalse(self.mode.use_bonus(state.goals[0]))
        self.assertFalse(self.mode.use_bonus(state.agent))
        self.assertFalse(self.mode.use_bonus(Position(-1, 0)))
        self.assertTrue(self.mode.bonus_ready)

        target = free_cell(state)
        self.assertTrue(self.mode.use_bonus(target))
        self.assertEqual(self.mode.state.grid[target.y][target.x].type, TileType.OBSTACLE)
        self.assertEqual(state.grid[target.y][target.x].type, TileType.EMPTY)
        self.assertFalse(self.mode.bonus_ready)
        self.assertIsNone(self.mode.active_bonus)
        self.assertFalse(self.mode.use_bonus(free_cell(self.mode.state)))

    def test_teleport_bonus(self):
        self.mode.bonus_ready, self.mode.active_bonus = True, "teleport"
        target = free_cell(self.mode.state)
        self.assertTrue(self.mode.use_bonus(target))
        self.assertEqual(self.mode.state.agent, target)
        self.assertEqual(self.mode.state.spawn, Position(1, 8))


if __name__ == "__main__":
    unittest.main()
