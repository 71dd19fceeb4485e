"""
Shared-secret authentication for machine callers (cron scheduler, Airtable webhooks).
"""
import hmac

from django.conf import settings
from django.contrib.auth.models import AnonymousUser
from rest_framework import authentication, exceptions

CRON_AUTH = "cron-secret"
WEBHOOK_AUTH = "webhook-secret"


def secrets_match(provided, expected) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(str(provided).encode("utf-8"), str(expected).encode("utf-8"))


def bearer_token(request):
    header = request.META.get("HTTP_AUTHORIZATION", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


class CronSecretAuthentication(authentication.BaseAuthentication):
    """
    Accepts ``Authorization: Bearer <CRON_SECRET>``.
    Anything else falls through to the next authenticator (JWT).
    """

    def authenticate(self, request):
        if secrets_match(bearer_token(request), getattr(settings, "CRON_SECRET", "")):
            return (AnonymousUser(), CRON_AUTH)
        return None

    def authenticate_header(self, request):
        return 'Bearer realm="api"'


class WebhookSecretAuthentication(authentication.BaseAuthentication):
    """
    Accepts the Airtable webhook secret as ``Authorization: Bearer <secret>`` or ``X-Webhook-Secret``.
    Safe methods pass through unauthenticated so the endpoint can be health-checked.
    """

    def authenticate(self, request):
        if request.method in ("GET", "HEAD", "OPTIONS"):
            return None
        expected = getattr(settings, "AIRTABLE_WEBHOOK_SECRET", "")
        if not expected:
            raise exceptions.AuthenticationFailed("Webhook secret not configured")
        provided = bearer_token(request) or request.META.get("HTTP_X_WEBHOOK_SECRET")
        if not secrets_match(provided, expected):
            raise exceptions.AuthenticationFailed("Invalid webhook secret")
        return (AnonymousUser(), WEBHOOK_AUTH)

    def authenticate_header(self, request):
        return "Bearer"
