"""Test log format templates."""

import re

from backporter.core.log import ConsoleSink, FileSink, OTLPSink, setup_logger


def file_logger(tmp_path, **file_options):
    log_file = tmp_path / "backport.log"
    logger = setup_logger(
        log_root=tmp_path,
        run_name="test",
        console=ConsoleSink(enabled=False),
        otlp=OTLPSink(enabled=False),
        file=FileSink(enabled=True, path=str(log_file), **file_options),
    )
    return logger, log_file


def test_default_json_format(tmp_path):
    """No template writes the raw OpenTelemetry span JSON."""
    logger, log_file = file_logger(tmp_path)

    logger.info("Cherry-picking abc123")
    logger.close()

    content = log_file.read_text()
    assert content.startswith("{")
    assert '"name": "Cherry-picking abc123"' in content


def test_text_format(tmp_path):
    template = (
        "{timestamp:%Y-%m-%d %H:%M:%S.%f} "
        "[{level}] {location} {message}"
    )
    logger, log_file = file_logger(tmp_path, format_template=template)

    logger.info("Backport complete")
    logger.close()

    line = log_file.read_text().strip()
    pattern = (
        r'^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\.\d+ '
        r'\[info\] .+\.py:\d+ Backport complete$'
    )
    assert re.match(pattern, line), f"Unexpected line: {line}"


def test_syslog_priority(tmp_path):
    logger, log_file = file_logger(
        tmp_path, format_template="<{priority}>{message}"
    )

    logger.info("info line")
    logger.error("error line")
    logger.close()

    lines = log_file.read_text().splitlines()
    assert lines[0].startswith("<14>info line")
    assert lines[1].startswith("<11>error line")


def test_escape_special_characters(tmp_path):
    logger, log_file = file_logger(
        tmp_path,
        format_template="{message}",
        escape_special_characters=True,
    )

    logger.info("Fix the following conflicts manually:\n - a.py")
    logger.close()

    lines = log_file.read_text().splitlines()
    assert len(lines) == 1
    assert lines[0].startswith("Fix the following conflicts manually:\\n - a.py")


def test_invalid_template_field(tmp_path):
    logger, log_file = file_logger(
        tmp_path, format_template="{level} {no_such_field}"
    )

    logger.info("message")
    logger.close()

    assert "Invalid template field" in log_file.read_text()
