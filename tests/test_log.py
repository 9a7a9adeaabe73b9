import logging

from gosbot.shared.frame import event_frame
from gosbot.shared.log import SessionContextFormatter, configure_root_logging, get_logger, log_frame


def make_record(**extra):
    record = logging.LogRecord("gosbot.test", logging.INFO, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_context_prefix():
    formatter = SessionContextFormatter(fmt="%(message)s")
    record = make_record(session_id="3f2b8c1e-9a4d-4e7f-b123-0123456789ab", frame_code=0)

    assert formatter.format(record) == "[session=3f2b8c1e... code=0] hello world"
    assert record.msg == "hello %s"


def test_no_context_is_untouched():
    formatter = SessionContextFormatter(fmt="%(message)s")
    assert formatter.format(make_record()) == "hello world"


def test_get_logger_configures_once():
    first = get_logger("gosbot.test.once")
    handlers = list(first.handlers)
    assert get_logger("gosbot.test.once") is first
    assert first.handlers == handlers
    assert first.propagate is False


def test_log_frame_extracts_context():
    captured = []

    class Capture(logging.Handler):
        def emit(self, record):
            captured.append(record)

    logger = logging.getLogger("gosbot.test.frames")
    logger.setLevel(logging.DEBUG)
    logger.addHandler(Capture())

    log_frame(logger, "debug", "Outbound frame", frame=event_frame("hello_broker", "corr-1"), session_id="s-1")

    record = captured[0]
    assert record.frame_code == 42
    assert record.correlation_id == "corr-1"
    assert record.session_id == "s-1"


def test_root_level_reaches_module_loggers():
    module_logger = get_logger("gosbot.test.relevel", level="WARNING")
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    saved = {name: logging.getLogger(name).level for name in logging.root.manager.loggerDict}
    try:
        configure_root_logging("DEBUG")
        assert root.level == logging.DEBUG
        assert module_logger.level == logging.DEBUG
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)
        root.propagate = True
        for name, saved_level in saved.items():
            logging.getLogger(name).setLevel(saved_level)
