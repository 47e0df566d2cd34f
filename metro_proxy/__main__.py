import logging
import sys

from .app import build_client, build_transit_data, create_app
from .config import configure_logging, load_settings
from .errors import MissingConfig
from .scheduler import BackgroundRefresher

log = logging.getLogger("metro_proxy")


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    try:
        client = build_client(settings)
    except MissingConfig as exc:
        log.error("Cannot start: %s", exc)
        sys.exit(1)

    data = build_transit_data(settings, client)
    refreshers = [
        BackgroundRefresher("Static", settings.static_refresh_interval_sec, data.static.refresh),
        BackgroundRefresher(
            "Predictions", settings.prediction_refresh_interval_sec, data.predictions.refresh
        ),
    ]
    try:
        for refresher in refreshers:
            refresher.start(prewarm=settings.prewarm)

        app = create_app(settings, data)
        log.info("Serving on %s:%d", settings.host, settings.port)
        app.run(host=settings.host, port=settings.port)
    finally:
        for refresher in refreshers:
            refresher.stop(timeout=5)
        client.close()


if __name__ == "__main__":
    main()
