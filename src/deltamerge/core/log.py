"""Logging through logfire, fanned out to configurable sinks.

Console output is rendered by logfire itself. The file and OTLP sinks
are OpenTelemetry span processors handed to ``logfire.configure``, each
with its own minimum level.
"""

from __future__ import annotations

import contextlib
import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from deltamerge.core.base import BaseConfig

# Level names, most verbose first, with their OpenTelemetry severities.
# spew sits below logfire's own trace level.
SEVERITY = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}

# Span attributes that are instrumentation detail, not caller context
_INTERNAL_PREFIXES = (
    'code.', 'logfire.', 'otel.', 'process.', 'service.', 'telemetry.',
)

_ESCAPES = str.maketrans({
    '\\': '\\\\', '\n': '\\n', '\r': '\\r', '\t': '\\t',
})

_current_logger: Logger | None = None


def level_name(severity: int) -> str:
    """Name of the most severe level at or below ``severity``."""
    name = "unknown"
    for candidate, threshold in SEVERITY.items():
        if severity >= threshold:
            name = candidate
    return name


def _severity_of(span: ReadableSpan) -> int:
    return (span.attributes or {}).get(
        'logfire.level_num', SEVERITY['info']
    )


class _LoggerProxy:
    """Stands in for the configured Logger.

    Before setup_logger() runs every call is a no-op and ``span()`` is a
    null context, so modules can log at import time and in tests
    without any setup.
    """

    def __getattr__(self, name):
        if _current_logger is not None:
            return getattr(_current_logger, name)
        if name == "span":
            return lambda *args, **kwargs: contextlib.nullcontext()
        return lambda *args, **kwargs: None

    def __enter__(self):
        if _current_logger is None:
            return self
        return _current_logger.__enter__()

    def __exit__(self, *exc_info):
        if _current_logger is None:
            return False
        return _current_logger.__exit__(*exc_info)


logger = _LoggerProxy()


class LevelFilteringExporter(SpanExporter):
    """Drops spans below a minimum level before they reach ``exporter``."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._threshold = SEVERITY.get(
            (min_level or "info").lower(), SEVERITY['info']
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [s for s in spans if _severity_of(s) >= self._threshold]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


def format_span(
    span: ReadableSpan, template: str, escape: bool = False
) -> str:
    """Render one span as a log line.

    Template fields: timestamp, level, message, filepath, lineno,
    location, function. Caller attributes (``unit=...``) follow the
    formatted text.
    """
    attrs = dict(span.attributes or {})
    message = str(attrs.get("logfire.msg", span.name))
    if escape:
        message = message.translate(_ESCAPES)

    filepath = attrs.get("code.filepath", "")
    lineno = attrs.get("code.lineno", "")
    fields = {
        'timestamp': datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
        'level': level_name(_severity_of(span)),
        'message': message,
        'filepath': filepath,
        'lineno': lineno,
        'location': f"{filepath}:{lineno}" if filepath else "",
        'function': attrs.get("code.function", ""),
    }
    try:
        line = template.format(**fields)
    except KeyError as e:
        return f"ERROR: Invalid template field {e}\n"

    context = sorted(
        (key, value) for key, value in attrs.items()
        if not key.startswith(_INTERNAL_PREFIXES)
    )
    if context:
        line += " │ " + " ".join(f"{k}={v!r}" for k, v in context)
    return line + "\n"


class Sink(BaseConfig):
    """One log destination with its own level."""

    enabled: bool = Field(default=True)
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level; inherits Logger.level when unset. "
            "One of spew, trace, debug, info, warn, error, fatal"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        """Span processor to register with logfire, or None."""
        return None

    def close(self):
        if self._processor is not None:
            with contextlib.suppress(Exception):
                self._processor.shutdown()
            self._processor = None


class ConsoleSink(Sink):
    """Terminal output, rendered by logfire."""

    verbose: bool = Field(default=False, description="Show span details")
    colors: str = Field(default="auto", description="auto, always, never")

    def options(self):
        from logfire import ConsoleOptions

        if not self.enabled:
            return False
        # logfire's most verbose console level is trace
        level = "trace" if self.level == "spew" else self.level
        return ConsoleOptions(
            min_log_level=level,
            verbose=self.verbose,
            colors=self.colors,
            include_timestamps=True,
        )


class FileSink(Sink):
    """Log lines appended to a file."""

    enabled: bool = Field(default=False)
    path: str = Field(
        default="{log_root}/{run_name}/deltamerge.log",
        description="Log file path; {log_root} and {run_name} expand",
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "Line format such as '{timestamp} {level} {message}'; "
            "unset writes each span as JSON"
        ),
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Write newlines and tabs in messages as escapes",
    )

    _file: Any = PrivateAttr(default=None)

    def _render(self, span: ReadableSpan) -> str:
        if not self.format_template:
            return span.to_json() + os.linesep
        return format_span(
            span, self.format_template, self.escape_special_characters
        )

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(self.path.format(log_root=log_root, run_name=run_name))
        log_path.parent.mkdir(parents=True, exist_ok=True)
        # Line buffered: a crash keeps everything already written
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115
        exporter = ConsoleSpanExporter(out=self._file, formatter=self._render)
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))

    def close(self):
        # The processor flushes into the file, so it shuts down first
        super().close()
        if self._file is not None and not self._file.closed:
            with contextlib.suppress(OSError):
                self._file.close()


class OTLPSink(Sink):
    """Spans exported over OTLP/gRPC (Jaeger, SigNoz, a collector)."""

    enabled: bool = Field(default=False)
    endpoint: str = Field(default="http://localhost:4317")
    insecure: bool = Field(default=True, description="Plaintext gRPC")
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
        return BatchSpanProcessor(LevelFilteringExporter(exporter, self.level))


class Logger(BaseConfig):
    """Run-wide logger.

    Closing it (directly, or by closing the Config that holds it)
    flushes and closes every sink.
    """

    level: str = Field(
        default="info", description="Default level for sinks without one"
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    file: FileSink = Field(default_factory=FileSink)
    otlp: OTLPSink = Field(default_factory=OTLPSink)
    send_to_logfire: bool = Field(
        default=False, description="Also send spans to logfire.dev"
    )
    token: str | None = Field(
        default=None, description="logfire.dev token (or LOGFIRE_TOKEN)"
    )

    @model_validator(mode='after')
    def _inherit_level(self) -> Logger:
        for sink in (self.console, self.file, self.otlp):
            if sink.level is None:
                sink.level = self.level
        return self

    def setup(self, log_root: Path, run_name: str) -> None:
        """Open the sinks and configure logfire to feed them."""
        import logfire

        processors = []
        for sink in (self.file, self.otlp):
            if sink.enabled:
                sink._processor = sink.create_processor(log_root, run_name)
                processors.append(sink._processor)

        logfire.configure(
            service_name=f"deltamerge-{run_name}",
            send_to_logfire=self.send_to_logfire,
            token=self.token if self.send_to_logfire else None,
            console=self.console.options(),
            additional_span_processors=processors or None,
        )

    def log(self, level: str, msg: str, **kwargs) -> None:
        import logfire

        logfire.log(
            level=SEVERITY.get(level, SEVERITY['info']),
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Below trace: raw subprocess chatter."""
        self.log('spew', msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self.log('trace', msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        self.log('debug', msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self.log('info', msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        self.log('warn', msg, **kwargs)

    warning = warn

    def error(self, msg: str, **kwargs):
        self.log('error', msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager timing and nesting everything logged inside."""
        import logfire

        return logfire.span(msg, **kwargs)


def setup_logger(
    log_root: Path,
    run_name: str,
    console: ConsoleSink | None = None,
    file: FileSink | None = None,
    otlp: OTLPSink | None = None,
    level: str = "info",
    send_to_logfire: bool = False,
    token: str | None = None,
) -> Logger:
    """Install the global logger behind ``logger``.

    Config calls this once it is loaded; tests call it directly.

    Args:
        log_root: Directory log files are created under
        run_name: Run name for log paths and the service name
        console: Console sink (defaults when None)
        file: File sink (disabled when None)
        otlp: OTLP sink (disabled when None)
        level: Level for sinks that do not set their own
        send_to_logfire: Also send to logfire.dev
        token: logfire.dev token

    Returns:
        The installed Logger
    """
    global _current_logger

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        file=file or FileSink(),
        otlp=otlp or OTLPSink(),
        send_to_logfire=send_to_logfire,
        token=token,
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
