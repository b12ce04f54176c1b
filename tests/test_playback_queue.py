"""Tests for the playback queue state machine."""

from __future__ import annotations

import pytest

from conftest import DeferredRunner, FakeAudioOutput, Recorder, ScriptedAudioSource
from qisas.audio.queue import (
    EndedEvent,
    PlayableItem,
    PlaybackQueue,
    PlaybackState,
    ProgressEvent,
    Resolution,
    clamp_cycles,
)


def make_items(n, surah=1):
    return [PlayableItem(surah, ayah) for ayah in range(1, n + 1)]


def run_to_end(queue, outputs, limit=100):
    for _ in range(limit):
        if queue.state is not PlaybackState.PLAYING:
            return
        outputs.last.finish()
    raise AssertionError("queue did not end")


class TestPlayableItem:
    def test_url_given_means_resolved(self):
        item = PlayableItem(2, 255, "https://cdn.test/a.mp3")
        assert item.resolution is Resolution.RESOLVED

    def test_resolved_url_is_written_once(self):
        item = PlayableItem(2, 255)
        item.mark_resolved("first")
        item.mark_resolved("second")
        assert item.audio_url == "first"

    def test_failed_does_not_override_resolved(self):
        item = PlayableItem(2, 255, "u")
        item.mark_failed()
        assert item.is_resolved

    def test_clamp_cycles(self):
        assert clamp_cycles(0) == 1
        assert clamp_cycles(-4) == 1
        assert clamp_cycles("3") == 3
        assert clamp_cycles("x") == 1
        assert clamp_cycles(None) == 1


class TestFullRun:
    def test_two_cycles_of_three_items(self, queue, outputs, recorder):
        """Cursor runs 0,1,2,0,1,2 and the end callback fires once."""
        queue.set_queue(make_items(3), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)

        assert recorder.positioned == [0, 1, 2, 0, 1, 2]
        assert recorder.ends == 1
        assert queue.state is PlaybackState.ENDED
        assert queue.cursor == -1
        repeat = queue.repeat
        assert (repeat.total, repeat.remaining, repeat.completed) == (2, 0, 2)

    @pytest.mark.parametrize("cycles,length", [(1, 1), (1, 4), (3, 1), (3, 4)])
    def test_sequence_length_is_cycles_times_items(self, queue, outputs, recorder, cycles, length):
        queue.set_queue(make_items(length), cycles, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)

        assert recorder.positioned == list(range(length)) * cycles
        assert recorder.ends == 1

    def test_single_output_per_session(self, queue, outputs, recorder):
        queue.set_queue(make_items(3), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)
        assert len(outputs.created) == 1

    def test_urls_are_looked_up_once(self, queue, outputs, source, recorder):
        queue.set_queue(make_items(2), 3, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)
        assert len(source.calls) == 2

    def test_play_after_end_restarts_all_cycles(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)
        recorder.progress.clear()

        queue.play()
        assert queue.cursor == 0
        assert queue.repeat.remaining == 2
        assert queue.repeat.completed == 0
        run_to_end(queue, outputs)
        assert recorder.positioned == [0, 1, 0, 1]
        assert recorder.ends == 2

    def test_events_reach_subscribers_in_order(self, queue, outputs):
        events = []
        queue.subscribe(events.append)
        queue.set_queue(make_items(1), 1)
        queue.play()
        outputs.last.finish()

        assert isinstance(events[-1], EndedEvent)
        assert events[-2] == ProgressEvent(-1, outputs.last)
        assert [e.index for e in events if isinstance(e, ProgressEvent)] == [-1, 0, -1]

    def test_failing_callback_does_not_stop_playback(self, queue, outputs):
        def broken(index, output):
            raise RuntimeError("view gone")

        ends = []
        queue.set_queue(make_items(2), 1, broken, lambda: ends.append(1))
        queue.play()
        run_to_end(queue, outputs)
        assert ends == [1]


class TestStop:
    def test_stop_resets_cursor_and_repeat(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 3, recorder.on_progress, recorder.on_end)
        queue.play()
        outputs.last.finish()
        outputs.last.finish()
        assert queue.repeat.completed == 1

        queue.stop()
        assert queue.cursor == -1
        assert queue.state is PlaybackState.IDLE
        repeat = queue.repeat
        assert (repeat.remaining, repeat.completed) == (3, 0)
        assert recorder.progress[-1] == -1
        assert outputs.last.paused
        assert outputs.last.rewinds >= 1

    def test_stop_without_reset_keeps_counters(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 3, recorder.on_progress, recorder.on_end)
        queue.play()
        outputs.last.finish()
        outputs.last.finish()

        queue.stop(reset_repeat=False)
        repeat = queue.repeat
        assert (repeat.remaining, repeat.completed) == (2, 1)
        assert queue.cursor == -1

    def test_stop_midway_then_play_replays_from_start(self, queue, outputs, recorder):
        queue.set_queue(make_items(3), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        for _ in range(4):
            outputs.last.finish()
        queue.stop()
        recorder.progress.clear()

        queue.play()
        assert queue.cursor == 0
        assert queue.repeat.remaining == 2
        run_to_end(queue, outputs)
        assert recorder.positioned == [0, 1, 2, 0, 1, 2]
        assert recorder.ends == 1

    def test_close_releases_output(self, queue, outputs):
        queue.set_queue(make_items(2), 1)
        queue.play()
        out = outputs.last
        queue.close()
        assert out.released
        assert queue.output is None


class TestRepeatCount:
    def test_idle_change_resets_counters(self, queue):
        queue.set_queue(make_items(2), 2)
        queue.set_repeat_count(5)
        repeat = queue.repeat
        assert (repeat.total, repeat.remaining, repeat.completed) == (5, 5, 0)

    def test_invalid_count_is_clamped(self, queue):
        queue.set_queue(make_items(2), 0)
        assert queue.repeat.total == 1
        queue.set_repeat_count("many")
        assert queue.repeat.total == 1

    def test_decrease_mid_cycle_is_clamped(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 3, recorder.on_progress, recorder.on_end)
        queue.play()
        for _ in range(4):
            outputs.last.finish()
        assert queue.repeat.completed == 2

        queue.set_repeat_count(1)
        repeat = queue.repeat
        assert repeat.completed <= repeat.total
        assert repeat.remaining >= 1

        run_to_end(queue, outputs)
        assert recorder.ends == 1
        assert len(recorder.positioned) == 6

    def test_increase_mid_cycle_extends_run(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        queue.set_repeat_count(3)
        assert queue.repeat.remaining == 3
        assert queue.cursor == 0

        run_to_end(queue, outputs)
        assert recorder.positioned == [0, 1, 0, 1, 0, 1]


class TestPauseResume:
    def test_pause_twice_is_same_as_once(self, queue, recorder, outputs):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        queue.pause()
        after_first = list(recorder.progress)
        queue.pause()

        assert queue.state is PlaybackState.PAUSED
        assert recorder.progress == after_first
        assert outputs.last.paused
        assert queue.cursor == 0

    def test_resume_continues_same_item(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        outputs.last.tick(3)
        queue.pause()
        queue.resume()

        assert queue.state is PlaybackState.PLAYING
        assert not outputs.last.paused
        assert outputs.last.current_time == 3
        assert len(outputs.last.loaded) == 1

    def test_pause_when_idle_is_noop(self, queue, recorder):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.pause()
        assert queue.state is PlaybackState.IDLE
        assert recorder.progress == []

    def test_toggle_cycles_play_pause_resume(self, queue):
        queue.set_queue(make_items(2), 1)
        queue.toggle()
        assert queue.state is PlaybackState.PLAYING
        queue.toggle()
        assert queue.state is PlaybackState.PAUSED
        queue.toggle()
        assert queue.state is PlaybackState.PLAYING

    def test_ticks_report_only_while_playing(self, queue, outputs, recorder):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        outputs.last.tick()
        assert recorder.progress == [0, 0]
        queue.pause()
        count = len(recorder.progress)
        outputs.last.tick()
        assert len(recorder.progress) == count


class TestFailures:
    def test_failed_lookup_is_skipped(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(1, 2): ConnectionError("boom")})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(3), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)

        assert recorder.positioned == [0, 2]
        assert recorder.ends == 1
        assert queue.items[1].resolution is Resolution.FAILED

    def test_empty_url_is_skipped(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(1, 1): None})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)
        assert recorder.positioned == [1]

    def test_failed_item_is_retried_next_cycle(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(1, 2): ConnectionError("boom")})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(2), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        run_to_end(queue, outputs)
        assert [c[:2] for c in source.calls].count((1, 2)) == 2

    def test_unresolvable_queue_ends_without_playing(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(1, n): ConnectionError("down") for n in range(1, 4)})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(3), 2, recorder.on_progress, recorder.on_end)
        queue.play()

        assert recorder.positioned == []
        assert recorder.ends == 1
        assert queue.state is PlaybackState.ENDED

    def test_long_unresolvable_run_ends_once(self, outputs, recorder, edition_box):
        """Hundreds of failing lookups across several cycles still end cleanly."""
        source = ScriptedAudioSource({(1, n): ConnectionError("down") for n in range(1, 301)})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(300), 3, recorder.on_progress, recorder.on_end)
        queue.play()

        assert recorder.ends == 1
        assert queue.state is PlaybackState.ENDED
        assert len(source.calls) == 900

    def test_whole_surah_without_audio_ends(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(2, n): None for n in range(1, 287)})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(286, surah=2), 1, recorder.on_progress, recorder.on_end)
        queue.play()

        assert recorder.positioned == []
        assert recorder.ends == 1
        assert queue.state is PlaybackState.ENDED

    def test_long_run_of_rejected_starts_ends(self, source, recorder, edition_box):
        def rejecting():
            out = FakeAudioOutput()
            out.fail_play = True
            return out

        queue = PlaybackQueue(source, lambda: edition_box["edition"], rejecting)
        queue.set_queue(make_items(250), 4, recorder.on_progress, recorder.on_end)
        queue.play()
        assert recorder.ends == 1
        assert queue.state is PlaybackState.ENDED

    def test_skip_then_play_after_long_failures(self, outputs, recorder, edition_box):
        source = ScriptedAudioSource({(1, n): None for n in range(1, 400)})
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs)
        queue.set_queue(make_items(400), 1, recorder.on_progress, recorder.on_end)
        queue.play()

        assert recorder.positioned == [399]
        outputs.last.finish()
        assert recorder.ends == 1

    def test_rejected_playback_start_is_skipped(self, source, recorder, edition_box):
        def rejecting():
            out = FakeAudioOutput()
            out.fail_play = True
            return out

        queue = PlaybackQueue(source, lambda: edition_box["edition"], rejecting)
        queue.set_queue(make_items(3), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        assert recorder.positioned == []
        assert recorder.ends == 1

    def test_output_error_skips_to_next(self, queue, outputs, recorder):
        queue.set_queue(make_items(3), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        outputs.last.fail()
        assert queue.cursor == 1
        assert queue.state is PlaybackState.PLAYING

    def test_empty_queue_is_inert(self, queue, recorder):
        queue.set_queue([], 3, recorder.on_progress, recorder.on_end)
        queue.play()
        queue.next()
        queue.prev()
        queue.pause()
        queue.resume()
        assert recorder.positioned == []
        assert recorder.ends == 0
        assert queue.state is PlaybackState.IDLE


class TestNavigation:
    def test_next_and_prev_move_by_one(self, queue):
        queue.set_queue(make_items(3), 1)
        queue.play()
        queue.next()
        queue.next()
        assert queue.cursor == 2
        queue.prev()
        assert queue.cursor == 1

    def test_next_past_end_finishes_cycle(self, queue, recorder):
        queue.set_queue(make_items(2), 1, recorder.on_progress, recorder.on_end)
        queue.play()
        queue.next()
        queue.next()
        assert recorder.ends == 1

    def test_prev_before_first_finishes_cycle(self, queue, recorder):
        queue.set_queue(make_items(2), 2, recorder.on_progress, recorder.on_end)
        queue.play()
        queue.prev()
        assert queue.cursor == 0
        assert queue.repeat.completed == 1

    def test_edition_is_read_when_resolving(self, queue, outputs, source, edition_box):
        queue.set_queue(make_items(2), 1)
        queue.play()
        edition_box["edition"] = "ar.husary"
        outputs.last.finish()
        assert [c[2] for c in source.calls] == ["ar.alafasy", "ar.husary"]
        assert "ar.husary" in outputs.last.url


class TestSupersession:
    def test_set_queue_discards_pending_lookup(self, source, outputs, edition_box):
        runner = DeferredRunner()
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs, runner)
        old, new = Recorder(), Recorder()

        queue.set_queue(make_items(3), 1, old.on_progress, old.on_end)
        queue.play()
        assert queue.state is PlaybackState.LOADING

        queue.set_queue(make_items(2), 1, new.on_progress, new.on_end)
        runner.run_all()

        assert old.positioned == []
        assert new.progress == []
        assert queue.state is PlaybackState.IDLE
        assert outputs.created == []

    def test_stop_discards_pending_lookup(self, source, outputs, edition_box):
        runner = DeferredRunner()
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs, runner)
        rec = Recorder()
        queue.set_queue(make_items(3), 1, rec.on_progress, rec.on_end)
        queue.play()
        queue.stop()
        runner.run_all()

        assert rec.positioned == []
        assert queue.state is PlaybackState.IDLE

    def test_old_output_is_silenced(self, queue, outputs):
        old = Recorder()
        queue.set_queue(make_items(2), 1, old.on_progress, old.on_end)
        queue.play()
        old_out = outputs.last
        queue.set_queue(make_items(2), 1)
        count = len(old.progress)

        old_out.tick()
        old_out.finish()
        assert old_out.released
        assert len(old.progress) == count
        assert queue.cursor == -1

    def test_late_result_after_skip_is_ignored(self, source, outputs, edition_box):
        runner = DeferredRunner()
        queue = PlaybackQueue(source, lambda: edition_box["edition"], outputs, runner)
        rec = Recorder()
        queue.set_queue(make_items(3), 1, rec.on_progress, rec.on_end)
        queue.play()
        queue.next()
        runner.run_next()  # stale lookup for item 0
        runner.run_next()

        assert rec.positioned == [1]
        assert queue.cursor == 1
