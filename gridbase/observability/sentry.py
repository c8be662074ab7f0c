# File: /gridbase/observability/sentry.py | Version: 1.1 | Title: Optional Sentry initialization
import logging
import os

log = logging.getLogger(__name__)


def init_sentry_if_configured() -> bool:
    """Initialise sentry_sdk when SENTRY_DSN is set. Returns True when enabled."""
    dsn = os.getenv("SENTRY_DSN", "").strip()
    if not dsn:
        log.info("Sentry disabled (no SENTRY_DSN).")
        return False

    try:
        import sentry_sdk

        traces = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

        sentry_sdk.init(
            dsn=dsn,
            traces_sample_rate=traces,
            environment=os.getenv("GRIDBASE_ENV", "development"),
            release=f"gridbase@{_version()}",
        )
        sentry_sdk.set_tag("service", "gridbase-api")
        log.info("Sentry initialized.")
        return True
    except Exception as e:  # pragma: no cover (best-effort)
        log.warning("Sentry init failed: %s", e)
        return False


def _version() -> str:
    from gridbase import __version__

    return __version__
