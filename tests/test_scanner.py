"""
Unit tests for the scanner package.
"""

import dataclasses
import sqlite3

import pytest

from dupescan.config import MODE_LIGHTWEIGHT, MODE_WITH_DOWNLOAD, PROVENANCE_LIGHTWEIGHT
from dupescan.database import ImageStore
from dupescan.errors import NotLoadedError, SourceUnavailableError
from dupescan.models import Media, MediaKind, Message, ScanStatus
from dupescan.report import MemorySink
from dupescan.scanner import (
    ChannelScanner,
    Resolution,
    build_record,
    is_photo_message,
    plan_scan,
    provenance_for,
    resolve_method,
)

from conftest import CHANNEL, FakeSource, photo_message, png_bytes, text_message


def make_scanner(store, settings, primary, history=None, sleeps=None):
    sink = MemorySink()
    sleep = sleeps.append if sleeps is not None else (lambda seconds: None)
    return ChannelScanner(store, settings, primary, history, sink=sink, sleep=sleep), sink


class TestClassification:
    """Test photo classification and record building."""

    def test_photo(self):
        assert is_photo_message(photo_message(1))

    def test_text_only(self):
        assert not is_photo_message(text_message(1))

    def test_image_document(self):
        msg = Message(id=1, timestamp=1, chat_id=CHANNEL, media=Media.for_document("image/webp", file_id="d"))
        assert is_photo_message(msg)

    def test_non_image_document(self):
        msg = Message(id=1, timestamp=1, chat_id=CHANNEL, media=Media.for_document("video/mp4", file_id="d"))
        assert not is_photo_message(msg)

    def test_image_document_requires_mime(self):
        """An image-document tag without an image MIME type is not a photo."""
        msg = Message(id=1, timestamp=1, chat_id=CHANNEL,
                      media=Media(kind=MediaKind.IMAGE_DOCUMENT, mime_type="application/zip"))
        assert not is_photo_message(msg)

    def test_other_media(self):
        msg = Message(id=1, timestamp=1, chat_id=CHANNEL, media=Media(kind=MediaKind.OTHER))
        assert not is_photo_message(msg)

    def test_provenance(self):
        assert provenance_for(MODE_LIGHTWEIGHT, "botapi") == PROVENANCE_LIGHTWEIGHT
        assert provenance_for(MODE_WITH_DOWNLOAD, "mtproto") == "channel_scan_mtproto"

    def test_build_record(self):
        """Record fields come from the message and its media."""
        record = build_record(photo_message(55), "sig", "tag", CHANNEL)
        assert record.identity == f"{CHANNEL}:55"
        assert record.source_message_id == 55
        assert (record.width, record.height, record.byte_size) == (1280, 720, 1000)
        assert record.captured_at == 1_700_000_055
        assert record.provenance == "tag"
        assert record.external_link.endswith("/c/1234567890/55")
        assert record.added_at

    def test_build_record_downloaded_size(self):
        """Downloaded byte count overrides the media size."""
        record = build_record(photo_message(1), "sig", "tag", CHANNEL, byte_size=4096)
        assert record.byte_size == 4096

    def test_build_record_falls_back_to_channel(self):
        """Messages without a chat id use the scanned channel."""
        msg = photo_message(3, chat_id="")
        record = build_record(msg, "sig", "tag", "@mychannel")
        assert record.identity == "@mychannel:3"
        assert record.external_link == "https://t.me/mychannel/3"


class TestResolveMethod:
    """Test automatic method resolution."""

    def test_lightweight_preferred(self):
        """Admin primary that returns messages wins."""
        primary = FakeSource([photo_message(1)], admin=True)
        assert resolve_method(primary, FakeSource(), CHANNEL) == Resolution.LIGHTWEIGHT_PREFERRED

    def test_richer_mode_when_not_admin(self):
        primary = FakeSource([photo_message(1)], admin=False)
        assert resolve_method(primary, FakeSource(), CHANNEL) == Resolution.RICHER_MODE

    def test_richer_mode_when_trial_empty(self):
        primary = FakeSource([], admin=True)
        assert resolve_method(primary, FakeSource(), CHANNEL) == Resolution.RICHER_MODE

    def test_fallback_without_history(self):
        primary = FakeSource([], admin=False)
        assert resolve_method(primary, None, CHANNEL) == Resolution.RICHER_UNAVAILABLE_FALLBACK

    def test_admin_error_counts_as_denied(self):
        primary = FakeSource([photo_message(1)], admin_error=True)
        assert resolve_method(primary, None, CHANNEL) == Resolution.RICHER_UNAVAILABLE_FALLBACK

    def test_plan_fallback_records_warning(self):
        plan = plan_scan("auto", FakeSource(), None, CHANNEL, MODE_WITH_DOWNLOAD)
        assert plan.ingestion_mode == MODE_LIGHTWEIGHT
        assert plan.warnings

    def test_plan_explicit_history_missing(self):
        with pytest.raises(SourceUnavailableError):
            plan_scan("history", FakeSource(), None, CHANNEL, MODE_WITH_DOWNLOAD)

    def test_plan_by_source_name(self):
        primary = FakeSource()
        plan = plan_scan("fake", primary, None, CHANNEL, MODE_WITH_DOWNLOAD)
        assert plan.source is primary
        assert plan.ingestion_mode == MODE_WITH_DOWNLOAD

    def test_plan_unknown_method(self):
        with pytest.raises(ValueError):
            plan_scan("carrier-pigeon", FakeSource(), None, CHANNEL, MODE_WITH_DOWNLOAD)


class TestScanScenario:
    """End-to-end scans against an in-memory source."""

    def test_three_message_batch(self, store, settings):
        """Messages 1 and 3 share a signature, message 2 is text-only."""
        messages = [
            photo_message(1, file_unique_id="sigX"),
            text_message(2),
            photo_message(3, file_unique_id="sigX"),
        ]
        scanner, sink = make_scanner(store, settings, FakeSource(messages))

        result = scanner.scan(method="lightweight")

        assert result.status == ScanStatus.COMPLETED
        assert result.total_messages == 3
        assert result.processed_images == 2
        assert result.duplicates_found == 1

        report = sink.last
        assert report['stats'] == {
            'totalMessages': 3,
            'processedImages': 2,
            'duplicateGroups': 1,
            'totalDuplicates': 1,
        }
        group = report['duplicateGroups'][0]
        assert group['count'] == 2
        assert group['original']['messageId'] == 1
        assert group['duplicates'][0]['messageId'] == 3
        assert group['original']['link'] == "https://t.me/c/1234567890/1"

    def test_download_mode(self, store, settings):
        """Download mode signs the downloaded bytes."""
        same = png_bytes('checker')
        messages = [photo_message(1), photo_message(2), photo_message(3)]
        source = FakeSource(messages, payloads={1: same, 2: png_bytes('vertical'), 3: same})
        scanner, sink = make_scanner(store, settings, source)

        result = scanner.scan(method="primary")

        assert result.success
        assert result.ingestion_mode == MODE_WITH_DOWNLOAD
        assert sorted(source.downloads) == [1, 2, 3]
        assert result.processed_images == 3
        groups = sink.last['duplicateGroups']
        pairs = [[g['original']['messageId']] + [d['messageId'] for d in g['duplicates']] for g in groups]
        assert [1, 3] in pairs
        assert store.get(f"{CHANNEL}:1").byte_size == len(same)
        assert store.get(f"{CHANNEL}:1").provenance == "channel_scan_fake"

    def test_per_message_error_is_counted(self, store, settings):
        """A failed download is counted and the scan continues."""
        messages = [photo_message(1), photo_message(2), photo_message(3)]
        source = FakeSource(messages, payloads={1: png_bytes(), 2: b"garbage", 3: None})
        scanner, _ = make_scanner(store, settings, source)

        result = scanner.scan(method="primary")

        assert result.success
        assert result.errors == 2
        assert result.processed_images == 1
        assert store.count() == 1

    def test_unexpected_download_error_is_counted(self, store, settings):
        """Exceptions outside the source error types stay per-message."""
        class TimeoutSource(FakeSource):
            def download_bytes(self, message):
                if message.id == 2:
                    raise TimeoutError("read timed out")
                return super().download_bytes(message)

        same = png_bytes('checker')
        messages = [photo_message(1), photo_message(2), photo_message(3)]
        source = TimeoutSource(messages, payloads={1: same, 3: same})
        scanner, sink = make_scanner(store, settings, source)

        result = scanner.scan(method="primary")

        assert result.success
        assert result.errors == 1
        assert result.processed_images == 2
        assert store.count() == 2
        assert sink.last['stats']['duplicateGroups'] == 1
        assert not scanner.is_scanning

    def test_store_error_is_counted(self, store, settings, monkeypatch):
        """A failing store write for one message does not abort the scan."""
        original_add = store.add

        def flaky_add(record):
            if record.source_message_id == 2:
                raise sqlite3.OperationalError("disk I/O error")
            return original_add(record)

        monkeypatch.setattr(store, "add", flaky_add)
        messages = [photo_message(1), photo_message(2), photo_message(3)]
        scanner, _ = make_scanner(store, settings, FakeSource(messages))

        result = scanner.scan(method="lightweight")

        assert result.success
        assert result.errors == 1
        assert result.processed_images == 2
        assert store.count() == 2

    def test_similar_found(self, store, settings):
        """Photos matching a recent working-set record are counted."""
        messages = [
            photo_message(1, file_unique_id="sigX"),
            photo_message(2, file_unique_id="sigY"),
            photo_message(3, file_unique_id="sigX"),
        ]
        scanner, _ = make_scanner(store, settings, FakeSource(messages))

        first = scanner.scan(method="lightweight")
        second = scanner.scan(method="lightweight")

        assert first.similar_found == 1
        # On a rescan both sigX photos match each other but never themselves
        assert second.similar_found == 2
        assert second.already_known == 3

    def test_rescan_counts_already_known(self, store, settings):
        """Store identity dedup prevents double admission across runs."""
        messages = [photo_message(1), photo_message(2)]
        scanner, _ = make_scanner(store, settings, FakeSource(messages))

        scanner.scan(method="lightweight")
        second = scanner.scan(method="lightweight")

        assert second.processed_images == 2
        assert second.already_known == 2
        assert store.count() == 2

    def test_missing_channel(self, store, settings):
        """No channel anywhere fails the scan."""
        scanner, _ = make_scanner(store, dataclasses.replace(settings, channel=None), FakeSource())
        result = scanner.scan()
        assert result.status == ScanStatus.FAILED
        assert result.error


class TestPagination:
    """Test the batched pagination loop."""

    def test_batches_and_cooldown(self, store, settings):
        """Cursor moves to the oldest id; cooldown only between batches."""
        messages = [photo_message(n) for n in range(1, 26)]
        source = FakeSource(messages)
        sleeps = []
        scanner, _ = make_scanner(
            store, settings.with_overrides(batch_size=10, cooldown_seconds=1.5), source, sleeps=sleeps
        )

        result = scanner.scan(method="lightweight")

        assert result.total_messages == 25
        assert [call[2] for call in source.fetch_calls] == [0, 16, 6, 1]
        # The short third batch is followed by one more fetch that comes back empty
        assert sleeps == [1.5, 1.5, 1.5]

    def test_short_batches_do_not_end_scan(self, store, settings):
        """A source returning fewer messages than requested is paged to the end."""
        class CappedSource(FakeSource):
            def fetch_batch(self, channel, limit, offset_cursor=0):
                return super().fetch_batch(channel, min(limit, 50), offset_cursor)

        source = CappedSource([photo_message(n) for n in range(1, 121)])
        scanner, _ = make_scanner(store, settings.with_overrides(batch_size=100), source)

        result = scanner.scan(method="lightweight")

        assert result.total_messages == 120
        assert result.processed_images == 120
        assert [call[2] for call in source.fetch_calls] == [0, 71, 21, 1]

    def test_stops_at_max_messages(self, store, settings):
        """The limit caps both the request size and the total."""
        source = FakeSource([photo_message(n) for n in range(1, 51)])
        scanner, _ = make_scanner(store, settings.with_overrides(batch_size=10), source)

        result = scanner.scan(method="lightweight", max_messages=15)

        assert result.total_messages == 15
        assert [call[1] for call in source.fetch_calls] == [10, 5]

    def test_stops_on_empty_batch(self, store, settings):
        """An empty first batch ends the scan immediately."""
        source = FakeSource([])
        sleeps = []
        scanner, sink = make_scanner(store, settings, source, sleeps=sleeps)

        result = scanner.scan(method="lightweight")

        assert result.success
        assert result.total_messages == 0
        assert len(source.fetch_calls) == 1
        assert sleeps == []
        assert sink.last['duplicateGroups'] == []

    def test_in_run_dedup(self, store, settings):
        """A source that ignores the cursor cannot make the scan loop forever."""
        class StuckSource(FakeSource):
            def fetch_batch(self, channel, limit, offset_cursor=0):
                self.fetch_calls.append((channel, limit, offset_cursor))
                return self.messages[:limit]

        source = StuckSource([photo_message(n) for n in range(1, 4)])
        scanner, _ = make_scanner(store, settings.with_overrides(batch_size=3), source)

        result = scanner.scan(method="lightweight")

        assert result.total_messages == 3
        assert len(source.fetch_calls) == 2

    def test_source_failure_keeps_partial_progress(self, store, settings):
        """A pagination error fails the scan but keeps committed records."""
        source = FakeSource([photo_message(n) for n in range(1, 21)], fail_after=1)
        scanner, sink = make_scanner(store, settings.with_overrides(batch_size=5), source)

        result = scanner.scan(method="lightweight")

        assert result.status == ScanStatus.FAILED
        assert "connection reset" in result.error
        assert result.total_messages == 5
        assert result.processed_images == 5
        assert store.count() == 5
        assert sink.reports == []
        assert not scanner.is_scanning


class TestScanGuards:
    """Test busy and not-loaded handling."""

    def test_busy(self, store, settings):
        """A scan requested during a scan returns BUSY with zero counters."""
        source = FakeSource([photo_message(1)])
        scanner, _ = make_scanner(store, settings, source)
        nested = []

        def reenter():
            if not nested:
                nested.append(scanner.scan(method="lightweight"))

        source.on_fetch = reenter
        outer = scanner.scan(method="lightweight")

        busy = nested[0]
        assert busy.status == ScanStatus.BUSY
        assert busy.total_messages == 0
        assert busy.processed_images == 0
        assert busy.duplicates_found == 0
        assert busy.errors == 0
        assert outer.success
        assert store.count() == 1
        assert not scanner.is_scanning

    def test_not_loaded(self, temp_db, settings):
        """An unloaded store raises before anything is fetched."""
        source = FakeSource([photo_message(1)])
        scanner, _ = make_scanner(ImageStore(temp_db), settings, source)

        with pytest.raises(NotLoadedError):
            scanner.scan()
        assert source.fetch_calls == []
        assert not scanner.is_scanning

    def test_guard_released_after_exception(self, store, settings):
        """Unexpected errors still return the scanner to idle."""
        scanner, _ = make_scanner(store, settings, FakeSource())
        with pytest.raises(ValueError):
            scanner.scan(method="carrier-pigeon")
        assert not scanner.is_scanning


class TestScanMethods:
    """Test the three resolution outcomes through scan()."""

    def test_auto_lightweight_preferred(self, store, settings):
        primary = FakeSource([photo_message(1)], admin=True)
        history = FakeSource([photo_message(1)])
        history.name = "mtproto"
        scanner, _ = make_scanner(store, settings, primary, history)

        result = scanner.scan()

        assert result.resolution == Resolution.LIGHTWEIGHT_PREFERRED.value
        assert result.ingestion_mode == MODE_LIGHTWEIGHT
        assert result.method == "fake"
        assert store.get_all()[0].provenance == PROVENANCE_LIGHTWEIGHT

    def test_auto_richer_mode(self, store, settings):
        primary = FakeSource([], admin=False)
        history = FakeSource([photo_message(1)], payloads={1: png_bytes()})
        history.name = "mtproto"
        scanner, _ = make_scanner(store, settings, primary, history)

        result = scanner.scan()

        assert result.resolution == Resolution.RICHER_MODE.value
        assert result.method == "mtproto"
        assert result.processed_images == 1
        assert store.get_all()[0].provenance == "channel_scan_mtproto"

    def test_auto_fallback(self, store, settings):
        primary = FakeSource([photo_message(1)], admin=False)
        scanner, _ = make_scanner(store, settings, primary)

        result = scanner.scan()

        assert result.resolution == Resolution.RICHER_UNAVAILABLE_FALLBACK.value
        assert result.ingestion_mode == MODE_LIGHTWEIGHT
        assert result.warnings
        assert result.success

    def test_explicit_history_without_source(self, store, settings):
        scanner, _ = make_scanner(store, settings, FakeSource())
        result = scanner.scan(method="history")
        assert result.status == ScanStatus.FAILED

    def test_close_closes_sources(self, store, settings):
        primary, history = FakeSource(), FakeSource()
        scanner, _ = make_scanner(store, settings, primary, history)
        scanner.close()
        assert primary.closed and history.closed


class TestReportSink:
    """Test report output at the end of a scan."""

    def test_default_sink_writes_json(self, store, settings):
        source = FakeSource([photo_message(1, "same"), photo_message(2, "same")])
        scanner = ChannelScanner(store, settings, source, sleep=lambda s: None)

        result = scanner.scan(method="lightweight")

        assert result.report_path is not None
        assert result.report_path.endswith("duplicates_report.json")
        assert result.duplicates_found == 1

    def test_sink_failure_fails_scan(self, store, settings):
        class BrokenSink(MemorySink):
            def write(self, report):
                raise OSError("disk full")

        source = FakeSource([photo_message(1)])
        scanner = ChannelScanner(store, settings, source, sink=BrokenSink(), sleep=lambda s: None)

        result = scanner.scan(method="lightweight")

        assert result.status == ScanStatus.FAILED
        assert result.processed_images == 1
        assert result.report is not None
