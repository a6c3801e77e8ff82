from datetime import datetime, timedelta

import pytest

from ant_recorder.errors import OutOfOrderEvent
from ant_recorder.models import EventType
from ant_recorder.rate_model import BlockModel, SlidingWindowModel, build_models

from conftest import T0, as_pairs, at

MINUTE = timedelta(seconds=60)


class TestSlidingWindowModel:
    def test_counts(self):
        model = SlidingWindowModel([at(0), at(5), at(8, EventType.OUT)])
        assert model.count(EventType.IN) == 2
        assert model.count(EventType.OUT) == 1
        assert len(model) == 3

    def test_rate_over_one_minute(self):
        model = SlidingWindowModel([at(s) for s in (0, 10, 20, 30, 40, 50)])
        assert model.rate(EventType.IN, T0 + MINUTE, MINUTE) == pytest.approx(0.1)
        assert model.rate(EventType.OUT, T0 + MINUTE, MINUTE) == 0.0

    def test_rate_window_bounds(self):
        model = SlidingWindowModel([at(s) for s in (0, 10, 20, 30, 40, 50)])
        end = T0 + timedelta(seconds=30)
        # Events at 10, 20 and 30 seconds.
        assert model.rate(EventType.IN, end, timedelta(seconds=20)) == pytest.approx(3 / 20)
        assert model.rate(EventType.IN, end, timedelta(seconds=15)) == pytest.approx(2 / 15)
        assert model.rate(EventType.IN, T0 + timedelta(seconds=29), timedelta(seconds=5)) == 0.0
        assert model.rate(EventType.IN, T0 - MINUTE, MINUTE) == 0.0

    def test_rate_requires_positive_duration(self):
        model = SlidingWindowModel()
        with pytest.raises(ValueError):
            model.rate(EventType.IN, T0, timedelta(0))

    def test_rate_requires_aware_end(self):
        with pytest.raises(ValueError):
            SlidingWindowModel().rate(EventType.IN, datetime(2024, 3, 1), MINUTE)

    def test_out_of_order_rejected_and_model_unchanged(self):
        model = SlidingWindowModel([at(0), at(10, EventType.OUT)])
        with pytest.raises(OutOfOrderEvent):
            model.add(at(5, EventType.IN))
        assert model.count(EventType.IN) == 1
        assert model.count(EventType.OUT) == 1
        assert model.last_event.time == at(10).time

    def test_equal_times_are_accepted(self):
        model = SlidingWindowModel([at(5), at(5, EventType.OUT)])
        assert len(model) == 2

    def test_delete_last_picks_latest_tail(self):
        model = SlidingWindowModel([at(0), at(5), at(8, EventType.OUT)])
        removed = model.delete_last()
        assert (removed.time, removed.type) == (at(8).time, EventType.OUT)
        assert model.count(EventType.OUT) == 0
        assert model.count(EventType.IN) == 2
        removed = model.delete_last()
        assert (removed.time, removed.type) == (at(5).time, EventType.IN)

    def test_delete_last_when_one_type_is_empty(self):
        model = SlidingWindowModel([at(0, EventType.OUT), at(1, EventType.OUT)])
        assert model.delete_last().type is EventType.OUT
        assert model.count(EventType.OUT) == 1

    def test_delete_last_tie_removes_most_recently_added(self):
        model = SlidingWindowModel([at(5, EventType.OUT), at(5, EventType.IN)])
        assert model.delete_last().type is EventType.IN
        assert model.delete_last().type is EventType.OUT

    def test_delete_last_on_empty_model(self):
        model = SlidingWindowModel()
        assert model.delete_last() is None
        assert model.delete_last() is None
        assert len(model) == 0

    def test_add_after_delete_uses_new_latest(self):
        model = SlidingWindowModel([at(0), at(10)])
        model.delete_last()
        model.add(at(5))
        assert model.count(EventType.IN) == 2

    def test_events_are_merged_chronologically(self):
        events = [at(0), at(1, EventType.OUT), at(2), at(3, EventType.OUT)]
        assert as_pairs(SlidingWindowModel(events).events()) == as_pairs(events)

    def test_first_and_last_event(self):
        model = SlidingWindowModel()
        assert model.first_time is None
        assert model.last_event is None
        model.add(at(3, EventType.OUT))
        model.add(at(7))
        assert model.first_time == at(3).time
        assert as_pairs([model.last_event]) == as_pairs([at(7)])

    def test_remove_takes_out_the_given_event_only(self):
        model = SlidingWindowModel([at(0), at(5, EventType.OUT), at(9)])
        assert model.remove(at(5, EventType.OUT))
        assert as_pairs(model.events()) == as_pairs([at(0), at(9)])
        assert not model.remove(at(5, EventType.OUT))
        assert not model.remove(at(9, EventType.OUT))
        assert len(model) == 2

    def test_status(self):
        model = SlidingWindowModel(
            [at(0), at(10), at(20, EventType.OUT), at(70), at(80, EventType.OUT), at(90, EventType.OUT)]
        )
        status = model.status(T0 + timedelta(seconds=90), MINUTE)
        assert status.in_count == 3
        assert status.out_count == 3
        assert status.out_ratio == pytest.approx(1.0)
        assert status.out_difference == 0
        assert status.in_rate == pytest.approx(1 / 60)
        assert status.out_rate == pytest.approx(2 / 60)

    def test_status_without_ins(self):
        status = SlidingWindowModel([at(0, EventType.OUT)]).status(T0, MINUTE)
        assert status.out_ratio is None
        assert status.out_difference == 1


class TestBlockModel:
    def test_two_blocks(self):
        model = BlockModel(MINUTE, events=[at(0), at(30), at(90)])
        blocks = list(model.blocks())
        assert len(blocks) == 2
        assert blocks[0].start == T0
        assert blocks[0].in_rate == pytest.approx(2 / 60)
        assert blocks[1].start == T0 + MINUTE
        assert blocks[1].in_rate == pytest.approx(1 / 60)
        assert blocks[1].out_rate == 0.0

    def test_event_on_block_boundary_starts_next_block(self):
        model = BlockModel(MINUTE, events=[at(0), at(60)])
        assert [block.start for block in model.blocks()] == [T0, T0 + MINUTE]

    def test_blocks_stay_aligned_to_first_event(self):
        model = BlockModel(MINUTE, fill_gaps=False, events=[at(0), at(200), at(250)])
        starts = [block.start for block in model.blocks()]
        assert starts == [T0, T0 + timedelta(seconds=180), T0 + timedelta(seconds=240)]

    def test_gaps_are_filled_with_zero_rate_blocks(self):
        model = BlockModel(MINUTE, events=[at(0), at(200, EventType.OUT)])
        blocks = list(model.blocks())
        assert [block.start for block in blocks] == [T0 + MINUTE * i for i in range(4)]
        assert [block.in_rate for block in blocks[1:3]] == [0.0, 0.0]
        assert blocks[3].out_rate == pytest.approx(1 / 60)
        assert model.block_count == 4

    def test_sparse_blocks_without_filling(self):
        model = BlockModel(MINUTE, fill_gaps=False, events=[at(0), at(200)])
        assert model.block_count == 2
        assert len(list(model.blocks())) == 2

    def test_out_of_order_rejected(self):
        model = BlockModel(MINUTE, events=[at(0), at(30)])
        with pytest.raises(OutOfOrderEvent):
            model.add(at(10))
        assert model.count(EventType.IN) == 2

    def test_remove_last_drops_empty_block(self):
        model = BlockModel(MINUTE, events=[at(0), at(90, EventType.OUT)])
        removed = model.remove_last()
        assert removed.type is EventType.OUT
        assert model.block_count == 1
        assert model.count(EventType.OUT) == 0
        model.remove_last()
        assert model.block_count == 0
        assert model.remove_last() is None

    def test_new_first_block_after_emptying(self):
        model = BlockModel(MINUTE, events=[at(0)])
        model.remove_last()
        model.add(at(45))
        assert [block.start for block in model.blocks()] == [at(45).time]

    def test_blocks_is_restartable_snapshot(self):
        model = BlockModel(MINUTE, events=[at(0)])
        first = model.blocks()
        model.add(at(70))
        assert len(list(first)) == 1
        assert len(list(model.blocks())) == 2
        assert len(list(model)) == 2

    def test_requires_positive_duration(self):
        with pytest.raises(ValueError):
            BlockModel(timedelta(0))


def test_build_models():
    events = [at(0), at(5), at(8, EventType.OUT)]
    window_model, block_model = build_models(events, MINUTE)
    assert window_model.count(EventType.IN) == 2
    assert block_model.count(EventType.OUT) == 1
    assert as_pairs(block_model.events()) == as_pairs(events)
