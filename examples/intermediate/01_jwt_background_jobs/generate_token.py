#!/usr/bin/env python3
"""
Generate a test JWT token for the JWT + background jobs example.

Usage:
    python generate_token.py acme
    python generate_token.py globex

The token includes a "tenant_id" claim that the jwt source reads.
"""
import os
import sys
import time

from jose import jwt  # python-jose


def generate(tenant_identifier: str, secret: str | None = None) -> str:
    secret = secret or os.environ.get("JWT_SECRET", "change-me-in-production")
    payload = {
        "sub": f"user-{tenant_identifier}",
        "tenant_id": tenant_identifier,   # ← the claim the jwt source reads
        "iat": int(time.time()),
        "exp": int(time.time()) + 3600,   # expires in 1 hour
    }
    return jwt.encode(payload, secret, algorithm="HS256")


if __name__ == "__main__":
    identifier = sys.argv[1] if len(sys.argv) > 1 else "acme"
    print(generate(identifier))
