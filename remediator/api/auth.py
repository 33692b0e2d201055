from functools import wraps
import hashlib
import hmac

from flask import request, jsonify

from remediator.config import settings

SIGNATURE_HEADER = "X-Hub-Signature-256"


# ===== API Token (Flask) =====

def token_required(f):
    """Require `Authorization: Bearer <API_TOKEN>` on the wrapped view"""
    @wraps(f)
    async def decorated(*args, **kwargs):
        if not settings.API_TOKEN:
            return jsonify({"detail": "API token is not configured"}), 503

        token = None
        auth_header = request.headers.get("Authorization")

        if auth_header:
            parts = auth_header.split()
            if len(parts) == 2 and parts[0] == "Bearer":
                token = parts[1]

        if not token:
            return jsonify({"detail": "Token is missing"}), 401

        if not hmac.compare_digest(token.encode("utf-8"), settings.API_TOKEN.encode("utf-8")):
            return jsonify({"detail": "Invalid token"}), 401

        return await f(*args, **kwargs)
    return decorated


# ===== Webhook Signatures =====

def sign_payload(secret: str, body: bytes) -> str:
    """GitHub-style signature header value for a payload"""
    digest = hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_webhook_signature(secret: str, body: bytes, signature: str) -> bool:
    """Check an X-Hub-Signature-256 header against the raw request body"""
    if not secret or not signature:
        return False
    return hmac.compare_digest(sign_payload(secret, body), signature)
