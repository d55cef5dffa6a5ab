"""
Webhook Configuration Check — Verifies the signing secret against the endpoints
registered with Stripe.

Usage:
    python check_webhook.py
    python check_webhook.py --limit 20
"""
import argparse
import sys

import stripe

from idverify.config import Settings, get_settings
from idverify.services.event_dispatcher import EVENT_PREFIX, STATUS_BY_EVENT

REQUIRED_EVENTS = [f"{EVENT_PREFIX}{name}" for name in STATUS_BY_EVENT]


def list_endpoints(settings: Settings, limit: int = 10) -> list:
    """Webhook endpoints configured on the Stripe account."""
    endpoints = stripe.WebhookEndpoint.list(
        limit=limit,
        api_key=settings.STRIPE_SECRET_KEY,
        stripe_version=settings.STRIPE_API_VERSION,
    )
    return list(endpoints.data)


def describe_endpoint(endpoint, webhook_secret: str) -> dict:
    """Summary of one endpoint: URL, status, missing events and secret match.

    Stripe only returns an endpoint's secret when it is created, so
    ``secret_matches`` is None when the secret is not available.
    """
    enabled = list(getattr(endpoint, "enabled_events", None) or [])
    secret = getattr(endpoint, "secret", None)
    return {
        "url": endpoint.url,
        "status": endpoint.status,
        "missing_events": [] if "*" in enabled else [e for e in REQUIRED_EVENTS if e not in enabled],
        "secret_matches": None if not secret else secret == webhook_secret,
    }


def main():
    parser = argparse.ArgumentParser(description="Check the Stripe webhook configuration")
    parser.add_argument("--limit", type=int, default=10, help="Endpoints to fetch (default: 10)")
    args = parser.parse_args()

    settings = get_settings()

    print("\nWEBHOOK SECRET\n" + "=" * 80)
    if settings.STRIPE_WEBHOOK_SECRET:
        print(f"  STRIPE_WEBHOOK_SECRET is set ({settings.STRIPE_WEBHOOK_SECRET[:10]}...)")
    else:
        print("  STRIPE_WEBHOOK_SECRET is NOT set: webhooks are accepted without verification")

    if not settings.STRIPE_SECRET_KEY:
        print("\nSTRIPE_SECRET_KEY is not set; cannot list webhook endpoints")
        sys.exit(1)

    print("\nWEBHOOK ENDPOINTS\n" + "=" * 80)
    try:
        endpoints = list_endpoints(settings, args.limit)
    except stripe.StripeError as exc:
        print(f"  Error fetching webhook endpoints: {exc}")
        sys.exit(1)

    if not endpoints:
        print("  No webhook endpoints configured. Point one at <public url>/webhook.")
    for endpoint in endpoints:
        info = describe_endpoint(endpoint, settings.STRIPE_WEBHOOK_SECRET)
        print(f"  {info['url']} [{info['status']}]")
        if info["missing_events"]:
            print(f"    missing events: {', '.join(info['missing_events'])}")
        if info["secret_matches"] is None:
            print("    secret not returned by Stripe; compare it in the dashboard")
        else:
            print(f"    secret {'matches' if info['secret_matches'] else 'DOES NOT match'} STRIPE_WEBHOOK_SECRET")

    print("\nREQUIRED EVENTS\n" + "=" * 80)
    for event_type in REQUIRED_EVENTS:
        print(f"  {event_type}")


if __name__ == "__main__":
    main()
