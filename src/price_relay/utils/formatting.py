_LIVE_TEMPLATE = "🔔 Price Update\n\nPair: {pair}\nPrice: ${price}\nTime: {timestamp}"
_REPLAY_TEMPLATE = "🔄 Historical Price\n\nPair: {pair}\nPrice: ${price}\nTime: {timestamp}"


def format_live_update(pair: str, price: str, timestamp: str) -> str:
    return _LIVE_TEMPLATE.format(pair=pair, price=price, timestamp=timestamp)


def format_replay_entry(pair: str, price: str, timestamp: str) -> str:
    return _REPLAY_TEMPLATE.format(pair=pair, price=price, timestamp=timestamp)
