from loguru import logger

from price_relay.utils.event import ErrorKind, LoguruEventSink, RelayEvent
from price_relay.utils.logger import LOG_FILE_NAME, setup_logger


def test_file_sink_is_created(tmp_path):
    log_dir = tmp_path / "logs"

    setup_logger(level="DEBUG", log_dir=log_dir)
    logger.info("relay started")
    logger.complete()

    assert (log_dir / LOG_FILE_NAME).exists()
    setup_logger()


def test_event_sink_logs_kind_and_pair():
    messages = []
    setup_logger()
    handler_id = logger.add(messages.append, level="DEBUG", format="{level}|{message}")
    try:
        LoguruEventSink().report(RelayEvent(ErrorKind.FETCH_REMOTE, "EQuery:Unknown asset pair", pair="NOPE"))
        LoguruEventSink().report(RelayEvent(ErrorKind.MALFORMED_ENTRY, "bad entry"))
    finally:
        logger.remove(handler_id)

    assert messages[0].startswith("ERROR|[fetch_remote] NOPE: EQuery:Unknown asset pair")
    assert messages[1].startswith("DEBUG|[malformed_entry] bad entry")
