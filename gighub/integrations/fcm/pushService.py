"""
Firebase Cloud Messaging (FCM) Push Service
===========================================

Low-level integration with the Firebase Admin SDK for sending push
notifications to one or many device tokens.

Initialization:
  The Firebase Admin SDK is initialised lazily on first use from
  ``settings.firebase_service_account_path`` (a service-account file) or
  ``settings.firebase_credentials_json`` (the raw JSON). When neither is set
  ``is_configured()`` is False and callers skip push delivery.

Retry logic:
  Transient failures (HTTP 500, 503, timeouts) are retried up to
  ``MAX_RETRIES`` times with exponential backoff. Invalid tokens are
  reported immediately so the caller can deactivate them.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field

import firebase_admin
from firebase_admin import credentials, messaging
from firebase_admin.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    UnavailableError,
)

from gighub.core.config import settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Configuration constants
# ---------------------------------------------------------------------------

MAX_RETRIES: int = 3
RETRY_BASE_DELAY_SECONDS: float = 0.5
FCM_BATCH_LIMIT: int = 500  # Firebase allows max 500 tokens per multicast

CHANNEL_DEFAULT = "gighub_default"
CHANNEL_URGENT = "gighub_urgent"


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------

@dataclass
class SendResult:
    """Result of sending a single notification."""
    success: bool
    message_id: str | None = None
    error: str | None = None
    invalid_token: bool = False


@dataclass
class BatchSendResult:
    """Aggregate result of sending to multiple devices."""
    success_count: int = 0
    failure_count: int = 0
    results: list[SendResult] = field(default_factory=list)
    invalid_tokens: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Firebase Admin SDK initialisation (lazy singleton)
# ---------------------------------------------------------------------------

_firebase_app: firebase_admin.App | None = None


def is_configured() -> bool:
    """True when push is enabled and Firebase credentials are available."""
    return settings.push_enabled and bool(
        settings.firebase_service_account_path or settings.firebase_credentials_json
    )


def _ensure_firebase_initialised() -> firebase_admin.App:
    """Initialise the Firebase Admin SDK if it has not been already.

    Raises:
        RuntimeError: If no credentials are configured.
    """
    global _firebase_app

    if _firebase_app is not None:
        return _firebase_app

    try:
        _firebase_app = firebase_admin.get_app()
        logger.info("Using existing Firebase Admin app")
        return _firebase_app
    except ValueError:
        pass  # no default app yet

    if settings.firebase_service_account_path:
        logger.info(
            "Initialising Firebase Admin SDK from service account file: %s",
            settings.firebase_service_account_path,
        )
        cred = credentials.Certificate(settings.firebase_service_account_path)
    elif settings.firebase_credentials_json:
        logger.info("Initialising Firebase Admin SDK from inline JSON credentials")
        cred = credentials.Certificate(json.loads(settings.firebase_credentials_json))
    else:
        raise RuntimeError(
            "Firebase credentials not configured. Set FIREBASE_SERVICE_ACCOUNT_PATH "
            "or FIREBASE_CREDENTIALS_JSON."
        )

    _firebase_app = firebase_admin.initialize_app(cred)
    logger.info("Firebase Admin SDK initialised successfully")
    return _firebase_app


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _is_transient_error(exc: Exception) -> bool:
    """Return True if the exception represents a retryable error."""
    if isinstance(exc, UnavailableError):
        return True
    error_str = str(exc).lower()
    return any(
        indicator in error_str
        for indicator in ("unavailable", "deadline exceeded", "internal", "timeout", "503", "500")
    )


def _is_invalid_token_error(exc: Exception) -> bool:
    """Return True if the error indicates the device token is invalid."""
    if isinstance(exc, (InvalidArgumentError, NotFoundError)):
        return True
    error_str = str(exc).lower()
    return any(
        indicator in error_str
        for indicator in ("unregistered", "not-registered", "invalid-registration")
    )


def _stringify(data: dict | None) -> dict[str, str] | None:
    # FCM data payloads only accept string values
    if not data:
        return None
    return {str(k): "" if v is None else str(v) for k, v in data.items()}


def _platform_configs(
    *, sound: str, priority: str, badge: int | None
) -> tuple[messaging.APNSConfig, messaging.AndroidConfig]:
    aps_fields: dict = {"sound": sound}
    if badge is not None:
        aps_fields["badge"] = badge

    apns_config = messaging.APNSConfig(
        headers={"apns-priority": "10" if priority == "high" else "5"},
        payload=messaging.APNSPayload(aps=messaging.Aps(**aps_fields)),
    )
    android_config = messaging.AndroidConfig(
        priority="high" if priority == "high" else "normal",
        notification=messaging.AndroidNotification(
            sound=sound,
            channel_id=CHANNEL_URGENT if priority == "high" else CHANNEL_DEFAULT,
        ),
    )
    return apns_config, android_config


async def _send_with_retry(msg: messaging.Message) -> SendResult:
    """Send one message, retrying transient errors.

    The blocking Firebase call runs in a worker thread.
    """
    _ensure_firebase_initialised()

    last_exception: Exception | None = None

    for attempt in range(1, MAX_RETRIES + 1):
        try:
            message_id: str = await asyncio.to_thread(messaging.send, msg)
            return SendResult(success=True, message_id=message_id)
        except Exception as exc:
            last_exception = exc

            if _is_invalid_token_error(exc):
                logger.warning("Invalid FCM token detected: %s", exc)
                return SendResult(success=False, error=f"Invalid token: {exc}", invalid_token=True)

            if _is_transient_error(exc) and attempt < MAX_RETRIES:
                delay = RETRY_BASE_DELAY_SECONDS * (2 ** (attempt - 1))
                logger.warning(
                    "Transient FCM error (attempt %d/%d), retrying in %.1fs: %s",
                    attempt, MAX_RETRIES, delay, exc,
                )
                await asyncio.sleep(delay)
                continue

            logger.error("FCM send failed after %d attempts: %s", attempt, exc)
            return SendResult(success=False, error=str(exc))

    return SendResult(
        success=False,
        error=f"Failed after {MAX_RETRIES} retries: {last_exception}",
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def send_notification(
    device_token: str,
    title: str,
    body: str,
    data: dict | None = None,
    badge: int | None = None,
    sound: str = "default",
    priority: str = "high",
) -> SendResult:
    """Send a push notification to a single device."""
    logger.info("Sending push notification: title=%r, priority=%s", title, priority)

    apns_config, android_config = _platform_configs(sound=sound, priority=priority, badge=badge)
    msg = messaging.Message(
        token=device_token,
        notification=messaging.Notification(title=title, body=body),
        data=_stringify(data),
        apns=apns_config,
        android=android_config,
    )
    return await _send_with_retry(msg)


async def send_to_multiple(
    device_tokens: list[str],
    title: str,
    body: str,
    data: dict | None = None,
    badge: int | None = None,
    sound: str = "default",
    priority: str = "high",
) -> BatchSendResult:
    """Send a push notification to several devices.

    Lists longer than ``FCM_BATCH_LIMIT`` are split into multiple multicast
    calls. Tokens FCM rejects as invalid are collected in
    ``invalid_tokens``.
    """
    if not device_tokens:
        logger.warning("send_to_multiple called with empty token list")
        return BatchSendResult()

    logger.info("Sending push notification to %d devices: title=%r", len(device_tokens), title)

    _ensure_firebase_initialised()

    str_data = _stringify(data)
    apns_config, android_config = _platform_configs(sound=sound, priority=priority, badge=badge)
    batch_result = BatchSendResult()

    for batch_start in range(0, len(device_tokens), FCM_BATCH_LIMIT):
        batch_tokens = device_tokens[batch_start : batch_start + FCM_BATCH_LIMIT]

        multicast = messaging.MulticastMessage(
            tokens=batch_tokens,
            notification=messaging.Notification(title=title, body=body),
            data=str_data,
            apns=apns_config,
            android=android_config,
        )

        try:
            response: messaging.BatchResponse = await asyncio.to_thread(
                messaging.send_each_for_multicast, multicast
            )
        except Exception as exc:
            logger.error("Batch send failed for %d tokens: %s", len(batch_tokens), exc)
            batch_result.failure_count += len(batch_tokens)
            batch_result.results.extend(
                SendResult(success=False, error=str(exc)) for _ in batch_tokens
            )
            continue

        for idx, send_response in enumerate(response.responses):
            if send_response.success:
                batch_result.success_count += 1
                batch_result.results.append(
                    SendResult(success=True, message_id=send_response.message_id)
                )
                continue

            batch_result.failure_count += 1
            error = send_response.exception
            is_invalid = _is_invalid_token_error(error) if error else False
            if is_invalid:
                batch_result.invalid_tokens.append(batch_tokens[idx])
            batch_result.results.append(
                SendResult(
                    success=False,
                    error=str(error) if error else "Unknown error",
                    invalid_token=is_invalid,
                )
            )

    logger.info(
        "Batch send complete: %d success, %d failures, %d invalid tokens",
        batch_result.success_count,
        batch_result.failure_count,
        len(batch_result.invalid_tokens),
    )
    return batch_result
