"""Tests for tick processing, day rollover and offline catch-up."""
import pytest

from trappist_swarm.colony_engine import create_worker
from trappist_swarm.config import Config
from trappist_swarm.entity_ids import id_generator_for
from trappist_swarm.tick_scheduler import (
    TickResult,
    apply_tick,
    elapsed_ticks,
    process_catch_up,
    prune_history,
)


NOW_MS = 1_700_000_000_000


def seconds_later(seconds):
    return NOW_MS + seconds * 1000


def add_workers(game, count, **fields):
    ids = id_generator_for(game)
    queen_id = game['swarm']['queens'][0]['id']
    workers = []
    for _ in range(count):
        worker = create_worker(queen_id, ids)
        worker.update(fields)
        workers.append(worker)
    game['swarm']['workers'].extend(workers)
    return workers


def log_types(result):
    return [entry['type'] for entry in result.log_entries]


# ---------------------------------------------------------------------------
# apply_tick
# ---------------------------------------------------------------------------

class TestApplyTick:
    def test_elapsed_ticks_floor(self, new_game):
        assert elapsed_ticks(new_game, NOW_MS + 2999) == 2
        assert elapsed_ticks(new_game, NOW_MS - 500) == -1

    def test_no_time_elapsed_is_noop(self, new_game):
        result = apply_tick(new_game, NOW_MS + 999)
        assert result == TickResult()
        assert new_game['game_time'] == 0
        assert new_game['last_tick_timestamp'] == NOW_MS

    def test_clock_going_backwards_is_noop(self, new_game):
        apply_tick(new_game, NOW_MS - 5000)
        assert new_game['game_time'] == 0
        assert new_game['last_tick_timestamp'] == NOW_MS

    def test_paused_only_moves_timestamp(self, new_game):
        new_game['is_paused'] = True
        result = apply_tick(new_game, seconds_later(60))
        assert result.log_entries == []
        assert new_game['game_time'] == 0
        assert new_game['last_tick_timestamp'] == seconds_later(60)

    def test_first_ticks(self, new_game):
        result = apply_tick(new_game, seconds_later(10))
        queen = new_game['swarm']['queens'][0]

        assert new_game['game_time'] == 10
        assert new_game['last_tick_timestamp'] == seconds_later(10)
        assert queen['energy']['current'] == pytest.approx(85)
        assert queen['egg_production']['in_progress'] is True
        assert [stats['day'] for stats in new_game['daily_stats']] == [0]
        assert log_types(result) == ['daily_summary']

    def test_day_summary_recorded_once_per_day(self, new_game):
        apply_tick(new_game, seconds_later(10))
        result = apply_tick(new_game, seconds_later(20))
        assert len(new_game['daily_stats']) == 1
        assert 'daily_summary' not in log_types(result)

    def test_first_hatch_is_culled(self, new_game):
        result = apply_tick(new_game, seconds_later(Config.TOTAL_SPAWN_TICKS + 1))
        queen = new_game['swarm']['queens'][0]

        assert result.workers_hatched == 1
        assert result.eggs_laid == 1
        # Nobody is gathering yet, so the newborn is recycled the same tick
        assert result.workers_died == 1
        assert new_game['swarm']['workers'] == []
        assert queen['energy']['current'] == pytest.approx(65.5)
        assert 'worker_hatched' in log_types(result)
        assert result.net_energy < 0

    def test_capped_at_one_day(self, new_game):
        apply_tick(new_game, seconds_later(Config.TICKS_PER_DAY * 3))
        assert new_game['game_time'] == Config.TICKS_PER_DAY
        assert new_game['last_tick_timestamp'] == seconds_later(Config.TICKS_PER_DAY * 3)

    def test_lone_queen_starves(self, new_game):
        result = apply_tick(new_game, seconds_later(Config.TICKS_PER_DAY))

        assert result.queens_died == 1
        assert new_game['swarm']['queens'] == []
        assert 'queen_died' in log_types(result)
        stats = new_game['daily_stats']
        assert [day['day'] for day in stats] == [1]
        assert stats[0]['queens_died'] == 1
        assert 'QUEEN died' in result.log_entries[-1]['message']
        assert result.log_entries[-1]['data']['summary'] == stats[0]

    def test_orphaned_workers_removed(self, new_game):
        add_workers(new_game, 3, queen_id='queen-404')
        result = apply_tick(new_game, seconds_later(1))
        assert new_game['swarm']['workers'] == []
        assert result.workers_died == 0

    def test_workers_gather_and_learn(self, new_game):
        workers = add_workers(new_game, 10)
        for worker in workers:
            worker['cargo']['current'] = 5

        result = apply_tick(new_game, seconds_later(1))

        assert len(new_game['swarm']['workers']) == 10
        for worker in new_game['swarm']['workers']:
            assert worker['state'] == 'gathering'
            assert worker['order']['type'] == 'gather_biomass'
            assert worker['cargo']['current'] == pytest.approx(5.1)
            assert worker['health'] == pytest.approx(100 - Config.WORKER_HEALTH_DECAY)
            assert worker['skills']['foraging'] == pytest.approx(0.003448)
            assert worker['skills']['mastery']['surface_lichen'] == pytest.approx(2.0)
        assert result.net_energy == pytest.approx(0.5, abs=1e-4)
        assert result.workers_died == 0

    def test_health_decay_kills(self, new_game):
        worker = add_workers(new_game, 1)[0]
        worker['health'] = 0.3
        worker['cargo']['current'] = 5
        result = apply_tick(new_game, seconds_later(1))
        assert result.workers_died == 1
        assert new_game['swarm']['workers'] == []

    def test_ids_keep_counting(self, new_game):
        before = new_game['next_entity_id']
        apply_tick(new_game, seconds_later(10))
        assert new_game['next_entity_id'] > before

    def test_planets_move(self, new_game):
        start = [(planet['x'], planet['y']) for planet in new_game['planets']]
        apply_tick(new_game, seconds_later(100))
        assert [(planet['x'], planet['y']) for planet in new_game['planets']] != start

    def test_result_to_dict(self):
        result = TickResult(workers_hatched=2)
        assert result.to_dict() == {
            'workers_hatched': 2,
            'workers_died': 0,
            'queens_died': 0,
            'eggs_laid': 0,
            'net_energy': 0.0,
            'log_entries': [],
        }


# ---------------------------------------------------------------------------
# Catch-up
# ---------------------------------------------------------------------------

class TestCatchUp:
    def test_short_absence_simulates_ticks(self, new_game):
        process_catch_up(new_game, seconds_later(10))
        assert new_game['game_time'] == 10
        assert new_game['swarm']['queens'][0]['energy']['current'] == pytest.approx(85)

    def test_no_elapsed_time(self, new_game):
        assert process_catch_up(new_game, NOW_MS) == TickResult()

    def test_paused_catch_up(self, new_game):
        new_game['is_paused'] = True
        process_catch_up(new_game, seconds_later(5000))
        assert new_game['game_time'] == 0
        assert new_game['last_tick_timestamp'] == seconds_later(5000)

    def test_batched_growth(self, new_game):
        result = process_catch_up(new_game, seconds_later(2 * Config.TICKS_PER_DAY))

        assert result.workers_hatched == 4
        assert len(new_game['swarm']['workers']) == 4
        assert all(worker['queen_id'] == 'queen-1' for worker in new_game['swarm']['workers'])
        assert new_game['game_time'] == 2 * Config.TICKS_PER_DAY
        assert new_game['last_tick_timestamp'] == seconds_later(2 * Config.TICKS_PER_DAY)
        assert [stats['day'] for stats in new_game['daily_stats']] == [1, 2]

        entry = result.log_entries[-1]
        assert entry['type'] == 'daily_summary'
        assert entry['message'] == 'Caught up on 2 days. Population: 4 workers'
        assert entry['data'] == {'days_elapsed': 2.0, 'current_workers': 4}

    def test_batched_crash_trims_tail(self, new_game):
        workers = add_workers(new_game, 100)
        result = process_catch_up(new_game, seconds_later(2 * Config.TICKS_PER_DAY))

        assert result.workers_died == 30
        assert new_game['swarm']['workers'] == workers[:70]

    def test_batched_inside_band_is_unchanged(self, new_game):
        workers = add_workers(new_game, 30)
        result = process_catch_up(new_game, seconds_later(3 * Config.TICKS_PER_DAY))
        assert result.workers_hatched == 0
        assert result.workers_died == 0
        assert new_game['swarm']['workers'] == workers

    def test_batched_crash_cannot_go_negative(self, new_game):
        add_workers(new_game, 100)
        result = process_catch_up(new_game, seconds_later(10 * Config.TICKS_PER_DAY))
        assert result.workers_died == 100
        assert new_game['swarm']['workers'] == []

    def test_batched_continues_after_last_day(self, new_game):
        new_game['daily_stats'] = [{'day': 5}]
        process_catch_up(new_game, seconds_later(3 * Config.TICKS_PER_DAY + 100))
        assert [stats['day'] for stats in new_game['daily_stats']] == [5, 6, 7, 8]

    def test_long_absence_pruned(self, new_game):
        process_catch_up(new_game, seconds_later(40 * Config.TICKS_PER_DAY))
        assert len(new_game['daily_stats']) == 40
        prune_history(new_game)
        assert len(new_game['daily_stats']) == Config.DAILY_STATS_WINDOW
        assert new_game['daily_stats'][-1]['day'] == 40


class TestPruneHistory:
    def test_log_window(self, new_game):
        new_game['log'] = [{'id': f'log-{i}'} for i in range(250)]
        prune_history(new_game)
        assert len(new_game['log']) == Config.LOG_WINDOW
        assert new_game['log'][0]['id'] == 'log-50'

    def test_short_history_untouched(self, new_game):
        new_game['daily_stats'] = [{'day': 0}]
        prune_history(new_game, stats_window=5, log_window=5)
        assert new_game['daily_stats'] == [{'day': 0}]
