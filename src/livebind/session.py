"""Editor-side session tying analysis, source attachment and live bindings.

Call order from the host editor:

    session.on_before_execute(text)          # analyze + bind
    ... run the script, producing a Sequencer ...
    session.on_after_execute(True, seq)      # attach source info, start binder
    session.on_code_changed(text)            # each edit, debounced
    session.update_parameter(offset, value)  # slider drag
    session.on_playback_stopped()

Nothing here raises to the caller: failures are logged and reported
through ``errors`` so that playback keeps running.
"""

from __future__ import annotations

import logging

from livebind.analysis_nodes import CodeAnalysisResult
from livebind.dispatch import Debouncer, Dispatcher, Signal
from livebind.engine import Sequencer
from livebind.grammar.structure import analyze, attach_source_info
from livebind.live_binder import LiveParameterBinder
from livebind.settings import LiveBindSettings
from livebind.text_buffer import TextBuffer

logger = logging.getLogger(__name__)


class LiveCodingSession:
    """One editor buffer, its analysis, and its live parameter binder."""

    def __init__(self, buffer: TextBuffer, settings: LiveBindSettings | None = None,
                 dispatcher: Dispatcher | None = None):
        self.buffer = buffer
        self.settings = settings or LiveBindSettings()
        self.dispatcher = dispatcher or Dispatcher()
        self.binder = LiveParameterBinder(
            buffer,
            dispatcher=self.dispatcher,
            tempo_range=(self.settings.tempo_min, self.settings.tempo_max),
        )
        self.sequencer: Sequencer | None = None
        self.analysis: CodeAnalysisResult | None = None
        self._analyzed_text: str | None = None

        self.errors = Signal()   # handler(message)
        self._debouncer = Debouncer(
            self.settings.debounce_seconds, self._rebind, self.dispatcher,
        )
        self._disconnect_buffer = buffer.on_changed(self.on_code_changed)

    def connect_sequencer(self, sequencer: Sequencer) -> None:
        self.sequencer = sequencer
        self.binder.bind_to_sequencer(sequencer)

    def on_before_execute(self, text: str) -> None:
        try:
            if text.strip() and text != self._analyzed_text:
                self.analysis = analyze(text, self.settings.note_proximity)
                self._analyzed_text = text
                for err in self.analysis.errors:
                    self._report(err)
            self.binder.analyze_and_bind(text)
        except Exception as e:
            self._report(f"Pre-execution analysis failed: {e}")

    def on_after_execute(self, success: bool, sequencer: Sequencer | None = None) -> None:
        if not success:
            return
        if sequencer is not None:
            self.connect_sequencer(sequencer)
        try:
            if self.sequencer is not None and self._analyzed_text is not None:
                attach_source_info(
                    self._analyzed_text,
                    self.sequencer.patterns,
                    self.settings.note_proximity,
                    self.settings.beat_tolerance,
                )
            self.binder.start()
        except Exception as e:
            self._report(f"Post-execution setup failed: {e}")

    def on_code_changed(self, text: str) -> None:
        if self.binder.is_active:
            self._debouncer.trigger(text)

    def on_playback_stopped(self) -> None:
        try:
            self._debouncer.cancel()
            self.binder.stop()
        except Exception as e:
            self._report(f"Playback stop failed: {e}")

    def update_parameter(self, offset: int, value: float) -> bool:
        try:
            return self.binder.update_parameter_at_offset(offset, value)
        except Exception as e:
            self._report(f"Parameter update failed: {e}")
            return False

    def flush(self) -> None:
        """Run a pending debounced rebind and any queued cross-thread work."""
        self._debouncer.flush()
        self.dispatcher.process_pending()

    def close(self) -> None:
        self._debouncer.cancel()
        self._disconnect_buffer()
        self.binder.close()

    def _rebind(self, text: str) -> None:
        try:
            self.binder.analyze_and_bind(text)
        except Exception as e:
            self._report(f"Rebind failed: {e}")

    def _report(self, message: str) -> None:
        logger.warning("%s", message)
        self.errors.emit(message)
