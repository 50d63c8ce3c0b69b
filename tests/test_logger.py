from scribble_kde.logger import get_logger


def test_get_logger_configures_handlers_once():
    first = get_logger("test_logger_once")
    handlers = list(first.handlers)
    second = get_logger("test_logger_once")

    assert first is second
    assert second.handlers == handlers
    assert len(handlers) >= 1
