#!/usr/bin/env python3
"""
Send a one-off alert notification through the configured channels.

Reads channel configuration from the environment (N8N_*, TWILIO_*,
WHATSAPP_*), builds an alert payload and runs it through the delivery
orchestrator: webhook first, WhatsApp as fallback.

Usage:
    python -m scripts.send_notification --message "Pump 3 offline"
    python -m scripts.send_notification --severity CRITICAL --entity-id M-17 --message "..."
    python -m scripts.send_notification --dry-run  # Show channel plan, send nothing

Exit code is 0 when the notification was delivered, 1 otherwise.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
import uuid
from datetime import UTC, datetime

from ticketrelay.contracts.events import AlertNotice, AlertSeverity
from ticketrelay.delivery.config import DELIVERY_REDACTED_ENV_VARS, DeliveryConfig
from ticketrelay.delivery.orchestrator import DeliveryOrchestrator
from ticketrelay.delivery.payloads import build_alert_payload
from ticketrelay.logging_config import setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send a test alert notification.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--message",
        "-m",
        type=str,
        default="Test notification",
        help="Alert body text",
    )
    parser.add_argument(
        "--severity",
        type=str,
        choices=[s.value for s in AlertSeverity],
        default=AlertSeverity.INFO.value,
        help="Alert severity (default: INFO)",
    )
    parser.add_argument("--type", type=str, default="manual_test", help="Alert type")
    parser.add_argument("--entity-type", type=str, default="system", help="Entity type")
    parser.add_argument("--entity-id", type=str, default="cli", help="Entity id")
    parser.add_argument(
        "--to",
        type=str,
        default=None,
        help="Destination phone number (default: WHATSAPP_TARGET_PHONE)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the channel plan and exit without sending",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines instead of human-readable output",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


async def run(args: argparse.Namespace, config: DeliveryConfig) -> bool:
    orchestrator = DeliveryOrchestrator.from_config(config)
    try:
        alert = AlertNotice(
            id=f"cli-{uuid.uuid4().hex[:8]}",
            severity=AlertSeverity(args.severity),
            type=args.type,
            message=args.message,
            entity_type=args.entity_type,
            entity_id=args.entity_id,
            ts=datetime.now(UTC),
        )
        payload = build_alert_payload(alert, destination=args.to or config.target_address)
        report = await orchestrator.deliver(payload)
    finally:
        await orchestrator.close()

    for attempt in report.attempts:
        status = "ok" if attempt.success else f"failed ({attempt.error})"
        print(f"  {attempt.channel} #{attempt.attempt}: {status}")
    return report.delivered


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.json_logs,
    )

    try:
        config = DeliveryConfig.from_env()
    except ValueError as e:
        logger.error("Invalid delivery configuration", extra={"error": str(e)})
        return 2

    if args.dry_run:
        orchestrator = DeliveryOrchestrator.from_config(config)
        print(f"notifications_enabled={config.notifications_enabled}")
        for channel in orchestrator.channels:
            state = "enabled" if channel.enabled else "disabled"
            print(f"  {channel.position}. {channel.name}: {state}")
        for name in sorted(DELIVERY_REDACTED_ENV_VARS):
            print(f"  {name}: {'set' if os.environ.get(name) else 'unset'}")
        print(
            f"retry: max_attempts={config.retry.max_attempts} "
            f"base_delay_ms={config.retry.base_delay_ms}"
        )
        return 0

    delivered = asyncio.run(run(args, config))
    print("delivered" if delivered else "not delivered")
    return 0 if delivered else 1


if __name__ == "__main__":
    sys.exit(main())
