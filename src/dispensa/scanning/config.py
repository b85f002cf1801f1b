"""Scanner configuration for the single add-product dialog."""

from __future__ import annotations

import logging

from dispensa.config import Settings, get_settings
from dispensa.models.lookup import CAPTURE_BACKENDS, ScannerConfig

logger = logging.getLogger(__name__)


def build_scanner_config(settings: Settings | None = None) -> ScannerConfig:
    """Capture backends enabled in settings, in declared order, without unknowns."""

    settings = settings or get_settings()
    backends: list[str] = []
    for name in settings.scanner_backends:
        normalized = name.strip().lower()
        if normalized not in CAPTURE_BACKENDS:
            logger.warning("Ignoring unknown scanner backend %r", name)
            continue
        if normalized not in backends:
            backends.append(normalized)
    if not backends:
        backends = ["manual"]
    return ScannerConfig(
        backends=backends,
        lookup_enabled=settings.scanner_lookup_enabled,
        max_upload_bytes=settings.barcode_max_upload_bytes,
    )


__all__ = ["build_scanner_config"]
