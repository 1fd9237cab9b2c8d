from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Iterator

import psutil

logger = logging.getLogger(__name__)

MEGABYTE = 1024 * 1024


def rss_mb() -> float:
    process = psutil.Process(os.getpid())
    return process.memory_info().rss / MEGABYTE


@contextmanager
def timing(label: str) -> Iterator[None]:
    started = time.perf_counter()
    try:
        yield
    finally:
        logger.info("%s took %.3fs", label, time.perf_counter() - started)


@contextmanager
def memory(label: str) -> Iterator[None]:
    before = rss_mb()
    try:
        yield
    finally:
        after = rss_mb()
        logger.info("%s memory: %.1f MB -> %.1f MB (%+.1f MB)", label, before, after, after - before)
