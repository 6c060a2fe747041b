"""Console logging setup, applied once by ``create_controller()``."""

import logging

_configured = False


def setup_logging(level: str | int = logging.INFO) -> None:
    """Attach a console handler to the root logger.

    Subsequent calls only adjust the level so repeated controller
    construction does not stack handlers.
    """
    global _configured
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if _configured:
        logging.getLogger().setLevel(level)
        return

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    logging.basicConfig(level=level, handlers=[console_handler])
    _configured = True
