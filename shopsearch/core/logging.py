# shopsearch/core/logging.py
import logging
import sys
import colorlog

LOG_FORMAT = "%(log_color)s%(asctime)s %(levelname)-8s [%(name)s]%(reset)s %(message)s"

def configure_logging(level=logging.INFO):
    handler = colorlog.StreamHandler(sys.stdout)
    handler.setFormatter(
        colorlog.ColoredFormatter(
            LOG_FORMAT,
            datefmt="%H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    logging.getLogger("uvicorn.error").setLevel(level)
    logging.getLogger("uvicorn.access").setLevel(level)
    # Driver chatter stays out of search/reco traces
    for noisy in ("pymongo", "motor", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
