"""
Caller identity. The Identity Provider sits in front of this service and forwards the authenticated
principal as headers; this service only reads them.
"""
import secrets

from fastapi import Header, HTTPException

from kindling.config import settings


def owner_id(x_owner_id: str | None = Header(None, alias="X-Owner-Id")) -> str:
    value = (x_owner_id or "").strip()
    if not value:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return value


def sponsor_id(x_sponsor_id: str | None = Header(None, alias="X-Sponsor-Id")) -> str:
    value = (x_sponsor_id or "").strip()
    if not value:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return value


def sponsor_name(x_sponsor_name: str | None = Header(None, alias="X-Sponsor-Name")) -> str | None:
    return (x_sponsor_name or "").strip() or None


def payment_signature(x_payment_signature: str | None = Header(None, alias="X-Payment-Signature")) -> None:
    """Payment webhooks must carry the shared secret. No secret configured = every call is refused."""
    expected = settings.payment_webhook_secret
    given = (x_payment_signature or "").strip()
    if not expected or not given or not secrets.compare_digest(given.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Unauthorized")
