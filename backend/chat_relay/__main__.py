"""Run the relay with uvicorn: ``python -m chat_relay``."""
import uvicorn

from chat_relay.config import get_config


def main() -> None:
    config = get_config()
    uvicorn.run(
        "chat_relay.main:app",
        host=config.server.host,
        port=config.server.port,
        log_level=config.logging.level.lower(),
    )


if __name__ == "__main__":
    main()
