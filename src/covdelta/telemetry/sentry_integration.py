"""Opt-in Sentry error reporting for covdelta runs.

Nothing is sent unless ``sentry.enabled: true`` is set in ``.covdelta.yml``
or ``COVDELTA_SENTRY_ENABLED=true`` is exported.
"""

from __future__ import annotations

import logging
import re
import threading
from typing import TYPE_CHECKING, Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

from covdelta import __version__
from covdelta.utils.ci_context import detect_ci_context

if TYPE_CHECKING:
    from covdelta.config import SentryConfig

logger = logging.getLogger(__name__)

_init_lock = threading.Lock()
_initialized: dict[str, bool] = {"value": False}

_SENSITIVE_PATTERN = re.compile(
    r"(api[_-]?key|password|secret|token|dsn|authorization|cookie)\s*[:=]\s*\S+",
    re.IGNORECASE,
)

_PATH_HOME_RE = re.compile(r"/(?:home|Users)/[^/]+")

_SENSITIVE_KEYS = frozenset({"authorization", "dsn", "github_token", "password", "secret", "token"})


def init_sentry(config: SentryConfig) -> None:
    """Initialize the Sentry SDK if enabled; later calls are no-ops."""
    with _init_lock:
        if _initialized["value"]:
            return
        if not config.enabled:
            logger.debug("Sentry disabled (sentry.enabled is false)")
            return
        if not config.dsn:
            logger.warning("Sentry enabled but no DSN configured")
            return

        environment = config.environment or ("ci" if detect_ci_context().is_ci else "local")

        sentry_sdk.init(
            dsn=config.dsn,
            release=f"covdelta@{__version__}",
            environment=environment,
            traces_sample_rate=config.traces_sample_rate,
            send_default_pii=False,
            server_name="",
            before_send=_before_send,
            in_app_include=["covdelta"],
            integrations=[LoggingIntegration(level=logging.INFO, event_level=logging.ERROR)],
        )

        _initialized["value"] = True
        logger.info("Sentry initialized (env=%s)", environment)


def is_sentry_enabled() -> bool:
    """Return whether Sentry has been successfully initialized."""
    return _initialized["value"]


def capture_exception(exc: BaseException) -> None:
    """Report *exc* to Sentry. No-op if Sentry is disabled."""
    if not _initialized["value"]:
        return
    sentry_sdk.capture_exception(exc)


def _scrub_string(value: str) -> str:
    return _PATH_HOME_RE.sub("/~", _SENSITIVE_PATTERN.sub("[REDACTED]", value))


def _scrub_dict(data: dict[str, Any]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in data.items():
        if key.lower() in _SENSITIVE_KEYS:
            result[key] = "[REDACTED]"
        elif isinstance(value, str):
            result[key] = _scrub_string(value)
        elif isinstance(value, dict):
            result[key] = _scrub_dict(value)
        else:
            result[key] = value
    return result


def _scrub_event(event: dict[str, Any]) -> dict[str, Any]:
    """Deep-scrub an event for tokens and home directory paths."""
    exception = event.get("exception")
    if isinstance(exception, dict):
        for value in exception.get("values", []):
            if isinstance(value.get("value"), str):
                value["value"] = _scrub_string(value["value"])
            stacktrace = value.get("stacktrace")
            if isinstance(stacktrace, dict):
                for frame in stacktrace.get("frames", []):
                    frame.pop("vars", None)
                    for key in ("filename", "abs_path"):
                        if isinstance(frame.get(key), str):
                            frame[key] = _scrub_string(frame[key])

    for key in ("tags", "extra"):
        section = event.get(key)
        if isinstance(section, dict):
            event[key] = _scrub_dict(section)

    event.pop("server_name", None)
    return event


def _before_send(event: dict[str, Any], _hint: dict[str, Any]) -> dict[str, Any] | None:
    return _scrub_event(event)
