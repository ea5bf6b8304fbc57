"""Trace and video capture for one browser context.

Modes are ``on`` (always kept), ``off`` (never recorded) and
``retain-on-failure`` (recorded, kept only when the test failed).
"""
from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Optional

from playwright.async_api import BrowserContext

logger = logging.getLogger(__name__)

TRACE_FILE = "trace.zip"


def keep_artifact(mode: str, failed: bool) -> bool:
    """Whether an artifact recorded in ``mode`` survives the test."""
    if mode == "on":
        return True
    return mode == "retain-on-failure" and failed


def video_dir(mode: str, artifacts: Path) -> Optional[Path]:
    """Where the context records its video, or None when video is off."""
    if mode == "off":
        return None
    return artifacts / "video"


async def start_trace(context: BrowserContext, mode: str) -> None:
    if mode != "off":
        await context.tracing.start(screenshots=True, snapshots=True, sources=True)


async def finish(
    context: BrowserContext,
    trace: str,
    video: str,
    artifacts: Path,
    failed: bool,
) -> Optional[Path]:
    """Stop tracing, close the context and drop what should not be kept.

    Returns the saved trace path, if any.
    """
    saved: Optional[Path] = None
    if trace != "off":
        if keep_artifact(trace, failed):
            artifacts.mkdir(parents=True, exist_ok=True)
            saved = artifacts / TRACE_FILE
            await context.tracing.stop(path=str(saved))
            logger.info("Trace saved to %s", saved)
        else:
            await context.tracing.stop()

    # Videos are only flushed to disk once the context closes.
    await context.close()

    recorded = video_dir(video, artifacts)
    if recorded is not None and not keep_artifact(video, failed):
        shutil.rmtree(recorded, ignore_errors=True)
    return saved
