#!/usr/bin/env python3
"""Shared wrappers for watchdog timeouts."""

from __future__ import annotations

import time
from typing import Callable, Any


def with_watchdog(fn: Callable[[], Any], *, max_runtime_s: int, on_timeout: Callable[[], Any]) -> Any:
    t0 = time.perf_counter()
    result = fn()
    elapsed = time.perf_counter() - t0
    if elapsed > max_runtime_s:
        try:
            on_timeout()
        finally:
            raise TimeoutError(f"Watchdog exceeded: {elapsed:.2f}s > {max_runtime_s}s")
    return result
