import logging
import sys

from . import create_app
from .cli import database_ok

logger = logging.getLogger("staysync")


def main():
    app = create_app()
    with app.app_context():
        reachable, reason = database_ok()
    if not reachable:
        logger.error("database unreachable, not starting: %s", reason)
        sys.exit(1)

    logger.info("starting StaySync API on port %s", app.config["PORT"])
    app.run(host="0.0.0.0", port=app.config["PORT"])


if __name__ == "__main__":
    main()
