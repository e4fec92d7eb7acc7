"""
Channel scan orchestrator.

Pages through a channel's history, computes a signature for every photo,
admits the records to the image store and, once the loop is done, builds the
duplicate report over everything ingested under the scan's provenance.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..config import MODE_LIGHTWEIGHT
from ..database import ImageStore
from ..errors import ScanBusyError, SignatureComputationError, SourceUnavailableError
from ..models import ChannelInfo, Message, ScanResult, ScanState, ScanStatus
from ..report import DuplicateReportBuilder, JsonFileSink, ReportSink
from ..signature import compute_signature, make_matcher, structural_signature
from ..sources.base import MessageSource
from ..user_config import ScanSettings
from .classification import build_record, is_photo_message, provenance_for
from .resolution import ScanPlan, plan_scan

logger = logging.getLogger(__name__)


class ChannelScanner:
    """
    Runs one channel scan at a time.

    Args:
        store: Loaded image store
        settings: Immutable scan settings
        primary: Lower-privilege message source
        history: Full-history source, None when not configured
        sink: Report destination (JSON file in settings.report_dir if None)
        sleep: Cooldown function, called with seconds between batches

    Usage:
        scanner = ChannelScanner(store, settings, BotApiSource(token))
        result = scanner.scan("@mychannel")
        if result.success:
            print(result.duplicates_found)
    """

    def __init__(
        self,
        store: ImageStore,
        settings: ScanSettings,
        primary: MessageSource,
        history: Optional[MessageSource] = None,
        sink: Optional[ReportSink] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.settings = settings
        self.primary = primary
        self.history = history
        self.sink = sink or JsonFileSink(settings.report_dir)
        self.builder = DuplicateReportBuilder(settings.similarity_threshold_percent)
        self._sleep = sleep
        self._match = make_matcher(settings.similarity_threshold_percent)
        self._scanning = False
        self._guard = threading.Lock()

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    def _try_begin(self) -> bool:
        with self._guard:
            if self._scanning:
                return False
            self._scanning = True
            return True

    def scan(
        self,
        channel: Optional[str] = None,
        method: str = "auto",
        max_messages: Optional[int] = None,
    ) -> ScanResult:
        """
        Scan a channel and build the duplicate report.

        Args:
            channel: Channel id or username (settings.channel if None)
            method: 'auto', 'primary', 'history', 'lightweight' or a source name
            max_messages: Upper bound on messages examined (settings.max_messages if None)

        Returns:
            ScanResult; status BUSY if another scan is running on this scanner

        Raises:
            NotLoadedError: If the store has not been loaded
        """
        self.store.ensure_loaded()

        if not self._try_begin():
            logger.warning("Scan requested while another scan is running")
            return ScanResult(status=ScanStatus.BUSY, error=str(ScanBusyError()))

        try:
            return self._run(channel or self.settings.channel, method, max_messages or self.settings.max_messages)
        finally:
            self._scanning = False

    def _run(self, channel: Optional[str], method: str, max_messages: int) -> ScanResult:
        if not channel:
            return ScanResult(status=ScanStatus.FAILED, error="No channel given or configured")

        state = ScanState(
            channel=channel,
            batch_size=self.settings.batch_size,
            cooldown_seconds=self.settings.cooldown_seconds,
        )

        try:
            plan = plan_scan(method, self.primary, self.history, channel, self.settings.ingestion_mode)
        except SourceUnavailableError as e:
            logger.error(f"Cannot scan {channel}: {e}")
            return ScanResult(status=ScanStatus.FAILED, error=str(e))

        source = plan.source
        provenance = provenance_for(plan.ingestion_mode, source.name)
        result_info = {
            'method': source.name,
            'ingestion_mode': plan.ingestion_mode,
            'resolution': plan.resolution.value if plan.resolution else None,
            'warnings': list(plan.warnings),
        }

        channel_info = self._channel_info(source, channel, result_info['warnings'])

        logger.info(
            f"Scanning {channel} via {source.name} ({plan.ingestion_mode}), "
            f"up to {max_messages:,} messages in batches of {state.batch_size}"
        )

        try:
            self._paginate(plan, state, provenance, max_messages, channel_info.username)
        except SourceUnavailableError as e:
            logger.error(
                f"Scan of {channel} aborted after {state.total_messages:,} messages: {e}"
            )
            return ScanResult.from_state(state, ScanStatus.FAILED, error=str(e), **result_info)

        logger.info(
            f"Scan loop done: {state.total_messages:,} messages, {state.processed_images:,} images, "
            f"{state.errors} errors, {state.already_known} already known, "
            f"{state.similar_found} similar to recent images"
        )

        return self._complete(state, provenance, channel_info, result_info)

    def _channel_info(self, source: MessageSource, channel: str, warnings: list) -> ChannelInfo:
        try:
            return source.get_channel_info(channel)
        except SourceUnavailableError as e:
            logger.warning(f"Cannot read channel info for {channel}: {e}")
            warnings.append(f"Channel info unavailable: {e}")
            return ChannelInfo(id=channel)

    def _paginate(
        self,
        plan: ScanPlan,
        state: ScanState,
        provenance: str,
        max_messages: int,
        username: Optional[str],
    ) -> None:
        while state.total_messages < max_messages:
            if state.batches:
                self._sleep(state.cooldown_seconds)

            requested = min(state.batch_size, max_messages - state.total_messages)
            batch = plan.source.fetch_batch(state.channel, requested, state.offset_cursor)[:requested]
            state.batches += 1

            if not batch:
                logger.debug(f"Batch {state.batches}: empty, end of history")
                break

            new_messages = 0
            for message in batch:
                if message.id in state.seen_message_ids:
                    continue
                new_messages += 1
                self._process_message(plan, state, message, provenance, username)

            state.offset_cursor = min(m.id for m in batch)
            logger.debug(
                f"Batch {state.batches}: {len(batch)} messages, cursor now {state.offset_cursor}"
            )

            if new_messages == 0:
                break

    def _signature_for(self, plan: ScanPlan, message: Message) -> tuple[str, Optional[int]]:
        """
        Returns:
            (signature, downloaded byte count or None)

        Raises:
            SignatureComputationError: If no signature can be derived
            SourceUnavailableError: If the download fails
        """
        if plan.ingestion_mode == MODE_LIGHTWEIGHT:
            signature = structural_signature(message.media)
            if signature is None:
                raise SignatureComputationError("Media has no file id")
            return signature, None

        data = plan.source.download_bytes(message)
        if not data:
            raise SignatureComputationError("Download returned no data")
        signature = compute_signature(
            data, hash_size=self.settings.hash_size, method=self.settings.hash_method
        )
        return signature, len(data)

    def _process_message(
        self,
        plan: ScanPlan,
        state: ScanState,
        message: Message,
        provenance: str,
        username: Optional[str],
    ) -> None:
        state.seen_message_ids.add(message.id)
        state.total_messages += 1

        if not is_photo_message(message):
            return

        try:
            signature, byte_size = self._signature_for(plan, message)
            record = build_record(message, signature, provenance, state.channel, username, byte_size)
            similar = [
                r for r in self.store.find_similar(signature, self._match)
                if r.identity != record.identity
            ]
            added = self.store.add(record)
        except (SignatureComputationError, SourceUnavailableError) as e:
            state.errors += 1
            logger.warning(f"Message {message.id}: {e}")
            return
        except Exception as e:
            state.errors += 1
            logger.warning(f"Message {message.id}: unexpected {type(e).__name__}: {e}", exc_info=True)
            return

        state.processed_images += 1
        if similar:
            state.similar_found += 1
            logger.debug(f"Message {message.id} resembles {len(similar)} recent image(s)")
        if not added:
            state.already_known += 1

    def _complete(
        self,
        state: ScanState,
        provenance: str,
        channel_info: ChannelInfo,
        result_info: dict,
    ) -> ScanResult:
        self.store.flush()

        report = self.builder.build(
            self.store.get_all(provenance),
            channel_info,
            total_messages=state.total_messages,
            processed_images=state.processed_images,
        )
        state.duplicates_found = report['stats']['totalDuplicates']

        try:
            report_path = self.sink.write(report)
        except OSError as e:
            logger.error(f"Cannot write report: {e}")
            return ScanResult.from_state(
                state, ScanStatus.FAILED, error=f"Cannot write report: {e}", report=report, **result_info
            )

        return ScanResult.from_state(
            state, ScanStatus.COMPLETED, report=report, report_path=report_path, **result_info
        )

    def close(self) -> None:
        """Close the message sources."""
        self.primary.close()
        if self.history is not None:
            self.history.close()


__all__ = ['ChannelScanner']
