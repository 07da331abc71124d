"""
Delivery configuration.

Built once at process start (``DeliveryConfig.from_env``) and passed
explicitly into the orchestrator and senders. Nothing below this module
reads the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from ticketrelay.delivery.retry import RetryPolicy

# Env vars whose values must never be logged
DELIVERY_REDACTED_ENV_VARS = frozenset({
    "N8N_SHARED_SECRET",
    "N8N_TICKET_CREATED_WEBHOOK",
    "N8N_WEBHOOK_URL",
    "TWILIO_ACCOUNT_SID",
    "TWILIO_AUTH_TOKEN",
})

DEFAULT_WHATSAPP_FROM = "whatsapp:+14155238886"  # Twilio sandbox number
DEFAULT_TARGET_PHONE = "+91965571600"
DEFAULT_TIMEOUT_S = 10.0


@dataclass(frozen=True)
class WebhookChannelConfig:
    """Webhook (n8n automation) channel configuration."""

    url: str = ""  # From `url_setting`
    api_key: str = ""  # From N8N_SHARED_SECRET, sent as x-api-key
    timeout_s: float = DEFAULT_TIMEOUT_S

    # Env var the URL comes from, reported by `missing`
    url_setting: str = "N8N_TICKET_CREATED_WEBHOOK"

    # The alert workflow accepts unsigned posts
    require_api_key: bool = True

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")

    @property
    def enabled(self) -> bool:
        return bool(self.url) and (bool(self.api_key) or not self.require_api_key)

    @property
    def missing(self) -> list[str]:
        """Names of the settings that keep this channel disabled."""
        missing = []
        if not self.url:
            missing.append(self.url_setting)
        if self.require_api_key and not self.api_key:
            missing.append("N8N_SHARED_SECRET")
        return missing


ALERT_WEBHOOK_DEFAULTS = WebhookChannelConfig(
    url_setting="N8N_WEBHOOK_URL", require_api_key=False
)


@dataclass(frozen=True)
class MessagingChannelConfig:
    """Twilio WhatsApp channel configuration."""

    account_sid: str = ""  # From TWILIO_ACCOUNT_SID
    auth_token: str = ""  # From TWILIO_AUTH_TOKEN
    from_address: str = DEFAULT_WHATSAPP_FROM  # From TWILIO_WHATSAPP_FROM
    timeout_s: float = DEFAULT_TIMEOUT_S

    def __post_init__(self) -> None:
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")

    @property
    def enabled(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_address)

    @property
    def missing(self) -> list[str]:
        missing = []
        if not self.account_sid:
            missing.append("TWILIO_ACCOUNT_SID")
        if not self.auth_token:
            missing.append("TWILIO_AUTH_TOKEN")
        if not self.from_address:
            missing.append("TWILIO_WHATSAPP_FROM")
        return missing


@dataclass(frozen=True)
class DeliveryConfig:
    """Process-wide delivery configuration."""

    # Ticket-created workflow
    webhook: WebhookChannelConfig = field(default_factory=WebhookChannelConfig)
    # Alert and ticket-update workflow
    alert_webhook: WebhookChannelConfig = field(default_factory=lambda: ALERT_WEBHOOK_DEFAULTS)
    messaging: MessagingChannelConfig = field(default_factory=MessagingChannelConfig)
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    # Default destination for messaging channels
    target_address: str = DEFAULT_TARGET_PHONE

    # Explicit WHATSAPP_ENABLED=true; credentials alone also enable delivery
    enable_flag: bool = False

    # Used to build ticketUrl in webhook payloads
    base_url: str = ""

    def __post_init__(self) -> None:
        if not self.target_address:
            raise ValueError("target_address must not be empty")

    @property
    def notifications_enabled(self) -> bool:
        return self.enable_flag or any((
            self.webhook.url,
            self.webhook.api_key,
            self.alert_webhook.url,
            self.messaging.account_sid,
            self.messaging.auth_token,
        ))

    def ticket_url(self, ticket_ref: str) -> str:
        return f"{self.base_url.rstrip('/')}/ticket/{ticket_ref}"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> DeliveryConfig:
        """Build configuration from environment variables."""
        env = os.environ if environ is None else environ

        return cls(
            webhook=WebhookChannelConfig(
                url=env.get("N8N_TICKET_CREATED_WEBHOOK", ""),
                api_key=env.get("N8N_SHARED_SECRET", ""),
            ),
            alert_webhook=WebhookChannelConfig(
                url=env.get("N8N_WEBHOOK_URL", ""),
                api_key=env.get("N8N_SHARED_SECRET", ""),
                url_setting="N8N_WEBHOOK_URL",
                require_api_key=False,
            ),
            messaging=MessagingChannelConfig(
                account_sid=env.get("TWILIO_ACCOUNT_SID", ""),
                auth_token=env.get("TWILIO_AUTH_TOKEN", ""),
                from_address=env.get("TWILIO_WHATSAPP_FROM") or DEFAULT_WHATSAPP_FROM,
            ),
            retry=RetryPolicy(
                max_attempts=int(env.get("NOTIFY_MAX_ATTEMPTS") or 3),
                base_delay_ms=int(env.get("NOTIFY_BASE_DELAY_MS") or 1000),
            ),
            target_address=env.get("WHATSAPP_TARGET_PHONE") or DEFAULT_TARGET_PHONE,
            enable_flag=env.get("WHATSAPP_ENABLED", "").lower() == "true",
            base_url=env.get("BASE_URL", ""),
        )
