"""Process-wide logger built on logfire with pluggable output sinks."""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from pathlib import Path
from typing import Any, ClassVar

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from backporter.core.base import BaseConfig

_current_logger: Logger | None = None


class _LoggerProxy:
    """Forwards attribute access to the configured Logger.

    Code imports ``logger`` at module load time, long before the
    configuration (and therefore the sinks) exists. Until setup_logger()
    runs every call is a no-op.
    """

    def __getattr__(self, name):
        if _current_logger is None:
            def _noop(*args, **kwargs):  # noqa: ARG001
                return contextlib.nullcontext()
            return _noop
        return getattr(_current_logger, name)

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *args):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*args)


logger = _LoggerProxy()


# Level names to OpenTelemetry severity numbers
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}


def level_name(level_num: int) -> str:
    """Map a severity number back to the closest level name."""
    for name in ('fatal', 'error', 'warn', 'info', 'debug', 'trace', 'spew'):
        if level_num >= LEVELS[name]:
            return name
    return "unknown"


class LevelFilteringExporter(SpanExporter):
    """Drops spans below a minimum level before forwarding them."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._min_severity = LEVELS.get(
            (min_level or 'info').lower(), logs_pb2.SEVERITY_NUMBER_INFO
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [
            span for span in spans
            if (span.attributes or {}).get(
                'logfire.level_num', logs_pb2.SEVERITY_NUMBER_INFO
            ) >= self._min_severity
        ]
        if kept:
            return self._exporter.export(kept)
        return SpanExportResult.SUCCESS

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One output destination for log records.

    Sinks are config models, so they are closed by the BaseCloseable
    cascade when the owning Logger is closed.
    """

    enabled: bool = Field(default=True, description="Enable this sink")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink; inherits Logger.level when "
            "unset. Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Escape newlines and tabs so records stay on one line",
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "str.format template with fields timestamp, level, message, "
            "location, function, priority. None writes raw span JSON"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    # Attributes that are either in the template or OTel bookkeeping
    _SKIP_KEYS: ClassVar[frozenset[str]] = frozenset({
        'code.filepath', 'code.lineno', 'code.function',
        'logfire.msg', 'logfire.level_num', 'logfire.span_type',
        'logfire.msg_template', 'logfire.json_schema',
    })
    _SKIP_PREFIXES: ClassVar[tuple[str, ...]] = (
        'otel.', 'telemetry.', 'service.', 'process.'
    )

    @staticmethod
    def _escape(text: str) -> str:
        return (
            text.replace('\\', '\\\\')
            .replace('\n', '\\n')
            .replace('\r', '\\r')
            .replace('\t', '\\t')
        )

    @staticmethod
    def span_fields(span) -> dict:
        """Pull the template fields out of a finished span."""
        from datetime import UTC, datetime

        attrs = span.attributes or {}
        filepath = attrs.get("code.filepath", "")
        lineno = attrs.get("code.lineno", "")
        name = level_name(
            attrs.get("logfire.level_num", logs_pb2.SEVERITY_NUMBER_INFO)
        )
        # RFC 5424 severity, facility=user
        severity = {"warn": 4, "error": 3, "fatal": 3, "info": 6}.get(name, 7)

        return {
            'timestamp': datetime.fromtimestamp(
                span.start_time / 1e9, tz=UTC
            ),
            'level': name,
            'message': attrs.get("logfire.msg", span.name),
            'location': f"{filepath}:{lineno}" if filepath else "",
            'function': attrs.get("code.function", ""),
            'priority': 8 + severity,
        }

    def format_span(self, span) -> str:
        """Render a span with format_template plus its custom attributes."""
        if not self.format_template:
            return span.to_json() + os.linesep

        data = self.span_fields(span)
        if self.escape_special_characters:
            data['message'] = self._escape(data['message'])

        try:
            line = self.format_template.format(**data)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extras = {
            key: value
            for key, value in (span.attributes or {}).items()
            if key not in self._SKIP_KEYS
            and not key.startswith(self._SKIP_PREFIXES)
        }
        if extras:
            rendered = ' '.join(
                f"{k}={v!r}" for k, v in sorted(extras.items())
            )
            line = f"{line} │ {rendered}"
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Return an OpenTelemetry span processor, or None."""

    def close(self):
        if self._processor:
            with contextlib.suppress(Exception):
                self._processor.shutdown()


class ConsoleSink(Sink):
    """Terminal output, rendered by logfire itself."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(
        default="auto", description="Color mode: auto, always, never"
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class OTLPSink(Sink):
    """Export spans to an OTLP collector (SigNoz, Jaeger, ...)."""

    enabled: bool = Field(default=False, description="Enable OTLP export")
    endpoint: str = Field(
        default="http://localhost:4317", description="OTLP gRPC endpoint"
    )
    insecure: bool = Field(default=True, description="Skip TLS")
    headers: dict[str, str] = Field(
        default_factory=dict, description="Extra headers, e.g. auth"
    )

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter = OTLPSpanExporter(
            endpoint=self.endpoint,
            insecure=self.insecure,
            headers=self.headers or None,
        )
        if self.level:
            exporter = LevelFilteringExporter(exporter, self.level)
        return BatchSpanProcessor(exporter)


class FileSink(Sink):
    """Append formatted records to a log file."""

    enabled: bool = Field(default=False, description="Enable file logging")
    path: str = Field(
        default="{log_root}/{run_name}/backporter.log",
        description="Log file path; {log_root} and {run_name} expand",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(self.path.format(log_root=log_root, run_name=run_name))
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered so a crash loses at most one record
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        exporter = ConsoleSpanExporter(
            out=self._file, formatter=self.format_span
        )
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))

    def close(self):
        # Processor first so pending spans reach the file
        super().close()
        if self._file and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.flush()
                self._file.close()


class Logger(BaseConfig):
    """Logger with console, file and OTLP sinks.

    Closing the logger (directly or as a context manager) closes every
    sink through the BaseCloseable cascade.
    """

    level: str = Field(
        default="info",
        description=(
            "Default level for sinks without their own. "
            "Valid: spew, trace, debug, info, warn, error, fatal"
        ),
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    otlp: OTLPSink = Field(default_factory=OTLPSink)
    file: FileSink = Field(default_factory=FileSink)

    @model_validator(mode='after')
    def _cascade_level_to_sinks(self) -> 'Logger':
        for sink in (self.console, self.file):
            if sink.level is None:
                sink.level = self.level
        return self

    @property
    def sinks(self) -> list[Sink]:
        return [self.console, self.otlp, self.file]

    def setup(self, log_root: Path, run_name: str):
        """Create sink processors and configure logfire."""
        import logfire
        from logfire import ConsoleOptions

        for sink in self.sinks:
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)

        processors = [
            sink._processor for sink in self.sinks
            if sink.enabled and sink._processor
        ]

        console = (
            ConsoleOptions(
                min_log_level=self.console.level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )
            if self.console.enabled
            else False
        )

        logfire.configure(
            service_name=f"backporter-{run_name}",
            send_to_logfire=False,
            console=console,
            additional_span_processors=processors or None,
        )
        logfire.instrument_pydantic_ai()

    def info(self, msg: str, **kwargs):
        import logfire
        logfire.info(msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        import logfire
        logfire.debug(msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        import logfire
        logfire.log(
            level=LEVELS['trace'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Below trace; subprocess chatter and similar noise."""
        import logfire
        logfire.log(
            level=LEVELS['spew'],
            msg_template=msg,
            attributes=kwargs or None,
        )

    def warn(self, msg: str, **kwargs):
        import logfire
        logfire.warn(msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        import logfire
        logfire.error(msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Span context manager: ``with logger.span("cherry-pick"): ...``"""
        import logfire
        return logfire.span(msg, **kwargs)

    def log(self, level: str, msg: str, **kwargs):
        import logfire
        logfire.log(level, msg, attributes=kwargs or None)


def setup_logger(
    log_root: Path,
    run_name: str,
    console: ConsoleSink | None = None,
    otlp: OTLPSink | None = None,
    file: FileSink | None = None,
    level: str = "info",
) -> Logger:
    """Install the global logger behind the ``logger`` proxy.

    Called by Config once settings are loaded, and by the test suite.

    Args:
        log_root: Root directory for log files
        run_name: Name used for the log subdirectory and service name
        console: Console sink config (defaults when None)
        otlp: OTLP sink config (defaults when None)
        file: File sink config (defaults when None)
        level: Default level for sinks without their own

    Returns:
        The installed Logger
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        otlp=otlp or OTLPSink(),
        file=file or FileSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger


__all__ = [
    "logger",
    "Logger",
    "Sink",
    "ConsoleSink",
    "FileSink",
    "OTLPSink",
    "LevelFilteringExporter",
    "LEVELS",
    "setup_logger",
]
