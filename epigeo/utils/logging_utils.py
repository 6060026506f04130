import logging
import time
from contextlib import contextmanager
from typing import Union


def make_logger(name: str = "epigeo", level: Union[int, str] = logging.INFO) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        h = logging.StreamHandler()
        fmt = logging.Formatter("[%(levelname)s] %(message)s")
        h.setFormatter(fmt)
        logger.addHandler(h)
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    logger.setLevel(level)
    return logger


@contextmanager
def timed(logger: logging.Logger, msg: str, level: int = logging.INFO):
    t0 = time.time()
    logger.log(level, f"{msg} ...")
    yield
    dt = time.time() - t0
    logger.log(level, f"{msg} done in {dt:.4f}s")
