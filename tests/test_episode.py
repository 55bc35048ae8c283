"""Tests for episode state and the single-tick transition."""

import random
import unittest
from dataclasses import replace

from reward_rover.constants import GOAL_REWARD, HISTORY_LIMIT, REWARD_VALUE, STEP_PENALTY
from reward_rover.episode import (
    EpisodeState, EpisodeSummary, PolicyParams, StepOptions,
    advance, append_history, finish_episode,
)
from reward_rover.grid import Position, TileType, create_empty_grid, set_tile
from reward_rover.qlearning import max_next_value

GREEDY = PolicyParams(epsilon=0.0, alpha=0.1, gamma=0.85)


def make_state(size=6, agent=(1, 1), goals=((4, 4),), **kwargs):
    return EpisodeState.create(create_empty_grid(size), agent, goals,
                               is_running=True, **kwargs)


class TestParams(unittest.TestCase):

    def test_defaults(self):
        p = PolicyParams()
        self.assertEqual((p.epsilon, p.alpha, p.gamma), (0.1, 0.1, 0.85))

    def test_ranges(self):
        with self.assertRaises(ValueError):
            PolicyParams(epsilon=1.5)
        with self.assertRaises(ValueError):
            PolicyParams(alpha=0.0)
        with self.assertRaises(ValueError):
            PolicyParams(alpha=0.6)
        with self.assertRaises(ValueError):
            PolicyParams(gamma=1.0)
        PolicyParams(epsilon=0.0, alpha=0.5, gamma=0.99)


class TestEpisodeState(unittest.TestCase):

    def test_create_sets_spawn(self):
        state = make_state(agent=(2, 3))
        self.assertEqual(state.spawn, Position(2, 3))
        self.assertEqual(state.episode, 1)
        self.assertEqual(state.goal, Position(4, 4))

    def test_create_validation(self):
        grid = create_empty_grid(5)
        set_tile(grid, Position(0, 0), TileType.OBSTACLE)
        with self.assertRaises(ValueError):
            EpisodeState.create(grid, (1, 1), [])
        with self.assertRaises(ValueError):
            EpisodeState.create(grid, (0, 0), [(3, 3)])
        with self.assertRaises(ValueError):
            EpisodeState.create(grid, (1, 1), [(5, 3)])
        with self.assertRaises(ValueError):
            EpisodeState.create(grid, (3, 3), [(3, 3)])

    def test_summary_dict_skips_unset_fields(self):
        summary = EpisodeSummary(3, 12, 5.0, True, "random")
        self.assertNotIn("stage", summary.to_dict())
        timed = replace(summary, stage=1, time_limit=48, time_used=20)
        self.assertEqual(timed.to_dict()["time_used"], 20)

    def test_history_is_capped(self):
        history = ()
        for i in range(HISTORY_LIMIT + 5):
            history = append_history(history, EpisodeSummary(i + 1, 1, 0.0, True, "x"))
        self.assertEqual(len(history), HISTORY_LIMIT)
        self.assertEqual(history[0].episode, 6)
        self.assertEqual(history[-1].episode, HISTORY_LIMIT + 5)

    def test_finish_episode_failure(self):
        state = replace(make_state(), agent=Position(3, 3), current_steps=9,
                        total_reward=-9.0)
        after, summary = finish_episode(state, success=False, stage=2)
        self.assertFalse(summary.success)
        self.assertEqual((summary.steps, summary.reward, summary.stage), (9, -9.0, 2))
        self.assertEqual(after.agent, state.spawn)
        self.assertEqual(after.episode, 2)


class TestAdvance(unittest.TestCase):

    def test_first_greedy_step_goes_up(self):
        state = make_state()
        result = advance(state, GREEDY)
        self.assertEqual(result.state.agent, Position(1, 0))
        self.assertEqual(result.reward, STEP_PENALTY)
        self.assertAlmostEqual(result.state.grid[1][1].learned_value, -0.1)
        self.assertEqual(result.state.grid[1][1].visit_count, 1)
        self.assertEqual(result.state.current_steps, 1)
        self.assertEqual(result.state.total_reward, -1.0)

    def test_input_state_is_untouched(self):
        state = make_state()
        result = advance(state, GREEDY)
        self.assertIsNot(result.state.grid, state.grid)
        self.assertEqual(state.grid[1][1].learned_value, 0.0)
        self.assertEqual(state.agent, Position(1, 1))
        self.assertEqual(state.current_steps, 0)

    def test_goal_resets_episode(self):
        state = make_state(agent=(1, 1), goals=[(1, 0)])
        result = advance(state, GREEDY)
        after = result.state
        self.assertTrue(result.reached_goal)
        self.assertEqual(result.reward, GOAL_REWARD)
        self.assertAlmostEqual(after.grid[1][1].learned_value, 2.4)
        self.assertEqual(after.agent, after.spawn)
        self.assertEqual(after.episode, 2)
        self.assertEqual(after.current_steps, 0)
        self.assertEqual(after.total_reward, 0.0)
        self.assertEqual(after.portal_cooldowns, {})
        self.assertIsNone(after.pending_teleport)
        self.assertTrue(after.is_running)
        self.assertEqual(len(after.history), 1)
        self.assertEqual(result.summary, after.history[-1])
        self.assertEqual((result.summary.steps, result.summary.reward), (1, GOAL_REWARD))
        self.assertTrue(result.summary.success)

    def test_goal_without_auto_restart_stops(self):
        state = make_state(agent=(1, 1), goals=[(1, 0)])
        result = advance(state, GREEDY, StepOptions(auto_restart=False))
        self.assertFalse(result.state.is_running)
        self.assertEqual(result.state.episode, 2)

    def test_history_cap_over_many_episodes(self):
        state = make_state(agent=(1, 1), goals=[(1, 0)])
        for _ in range(HISTORY_LIMIT + 5):
            state = advance(state, GREEDY).state
        self.assertEqual(len(state.history), HISTORY_LIMIT)
        self.assertEqual(state.episode, HISTORY_LIMIT + 6)

    def test_consume_reward_tile(self):
        state = make_state()
        set_tile(state.grid, Position(1, 0), TileType.REWARD)
        result = advance(state, GREEDY, StepOptions(consume_rewards=True))
        self.assertEqual(result.reward, REWARD_VALUE)
        self.assertEqual(result.collected, TileType.REWARD)
        self.assertEqual(result.state.grid[0][1].type, TileType.EMPTY)
        self.assertEqual(result.state.grid[0][1].learned_value, 0.0)
        self.assertEqual(state.grid[0][1].type, TileType.REWARD)

        # back to the start and onto the same cell again
        again = advance(replace(result.state, agent=Position(1, 1)), GREEDY,
                        StepOptions(consume_rewards=True))
        self.assertEqual(again.state.agent, Position(1, 0))
        self.assertEqual(again.reward, STEP_PENALTY)
        self.assertIsNone(again.collected)

    def test_reward_tile_stays_without_consume(self):
        state = make_state()
        set_tile(state.grid, Position(1, 0), TileType.REWARD)
        result = advance(state, GREEDY)
        self.assertIsNone(result.collected)
        self.assertEqual(result.state.grid[0][1].type, TileType.REWARD)

    def test_instant_teleport(self):
        state = make_state()
        set_tile(state.grid, Position(1, 0), TileType.PORTAL)
        set_tile(state.grid, Position(5, 0), TileType.PORTAL)
        result = advance(state, GREEDY)
        self.assertTrue(result.teleported)
        self.assertEqual(result.state.agent, Position(5, 0))
        self.assertEqual(result.reward, 0.0)
        self.assertEqual(result.state.portal_cooldowns,
                         {Position(1, 0): 4, Position(5, 0): 4})

    def test_cooled_portal_is_plain_floor(self):
        state = make_state()
        set_tile(state.grid, Position(1, 0), TileType.PORTAL)
        set_tile(state.grid, Position(5, 0), TileType.PORTAL)
        state = replace(state, portal_cooldowns={Position(1, 0): 3})
        result = advance(state, GREEDY)
        self.assertFalse(result.teleported)
        self.assertEqual(result.state.agent, Position(1, 0))
        self.assertEqual(result.reward, STEP_PENALTY)
        self.assertEqual(result.state.portal_cooldowns, {Position(1, 0): 2})

    def test_cooldown_expiring_this_tick_allows_jump(self):
        state = make_state()
        set_tile(state.grid, Position(1, 0), TileType.PORTAL)
        set_tile(state.grid, Position(5, 0), TileType.PORTAL)
        state = replace(state, portal_cooldowns={Position(1, 0): 1})
        result = advance(state, GREEDY)
        self.assertTrue(result.teleported)

    def test_delayed_teleport(self):
        state = make_state()
        a, b = Position(1, 0), Position(5, 0)
        set_tile(state.grid, a, TileType.PORTAL)
        set_tile(state.grid, b, TileType.PORTAL)
        options = StepOptions(portal_delay=2)

        first = advance(state, GREEDY, options)
        self.assertFalse(first.teleported)
        self.assertEqual(first.state.agent, a)
        self.assertEqual(first.state.pending_teleport.destination, b)
        self.assertEqual(first.state.portal_cooldowns, {a: 4, b: 4})

        hold = advance(first.state, GREEDY, options)
        self.assertTrue(hold.waiting)
        self.assertEqual(hold.state.agent, a)
        self.assertEqual(hold.state.current_steps, 1)
        self.assertEqual(hold.state.pending_teleport.wait_counter, 1)
        self.assertEqual(hold.state.portal_cooldowns, {a: 3, b: 3})

        jump = advance(hold.state, GREEDY, options)
        self.assertTrue(jump.teleported)
        self.assertEqual(jump.state.agent, b)
        self.assertIsNone(jump.state.pending_teleport)
        self.assertEqual(jump.state.current_steps, 2)
        self.assertEqual(jump.state.portal_cooldowns, {a: 2, b: 2})
        self.assertEqual(jump.state.grid[a.y][a.x].visit_count, 1)

    def test_boxed_in_rover_waits(self):
        state = make_state(agent=(2, 2))
        for pos in [Position(2, 1), Position(2, 3), Position(1, 2), Position(3, 2)]:
            set_tile(state.grid, pos, TileType.OBSTACLE)
        result = advance(state, GREEDY)
        self.assertEqual(result.state.agent, Position(2, 2))
        self.assertEqual(result.reward, STEP_PENALTY)
        self.assertEqual(result.state.current_steps, 1)

    def test_seeded_runs_repeat(self):
        def run(seed):
            rng = random.Random(seed)
            state = make_state(size=8, goals=[(6, 6)])
            path = []
            for _ in range(40):
                state = advance(state, PolicyParams(epsilon=0.5), rng=rng).state
                path.append(state.agent)
            return path
        self.assertEqual(run(3), run(3))

    def test_corridor_learning(self):
        grid = create_empty_grid(6)
        open_cells = {Position(0, 0), Position(1, 0), Position(2, 0)}
        for y in range(6):
            for x in range(6):
                if Position(x, y) not in open_cells:
                    set_tile(grid, Position(x, y), TileType.OBSTACLE)
        state = EpisodeState.create(grid, (0, 0), [(2, 0)], is_running=True)

        previous = 0.0
        for _ in range(30):
            state = advance(state, GREEDY).state
            state = advance(state, GREEDY).state
            value = state.grid[0][1].learned_value
            self.assertGreater(value, previous)
            self.assertLess(value, GOAL_REWARD / (1 - GREEDY.gamma))
            previous = value
        self.assertEqual(state.episode, 31)
        self.assertTrue(all(e.steps == 2 for e in state.history))
        self.assertTrue(all(e.success for e in state.history))

        # fixed point: reward plus the discounted best value beyond the goal
        for _ in range(600):
            state = advance(advance(state, GREEDY).state, GREEDY).state
        value = state.grid[0][1].learned_value
        target = GOAL_REWARD + GREEDY.gamma * max_next_value(state.grid, Position(2, 0))
        self.assertAlmostEqual(value, target, delta=0.01)
        self.assertAlmostEqual(value, GOAL_REWARD / (1 - GREEDY.gamma), delta=0.1)


if __name__ == "__main__":
    unittest.main()
