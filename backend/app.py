import logging

from vastboard.api import create_app
from vastboard.config import Settings, configure_logging
from vastboard.store import PostgresEventStore

logger = logging.getLogger(__name__)


def main():
    settings = Settings()
    configure_logging(settings.log_level)

    # the pool lives exactly as long as the server
    with PostgresEventStore(settings) as store:
        app = create_app(store)
        logger.info(f"Starting Flask server on {settings.host}:{settings.port} ...")
        app.run(host=settings.host, port=settings.port, threaded=True)


if __name__ == '__main__':
    main()
