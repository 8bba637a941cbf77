#!/usr/bin/env python3
"""
Mint a development access token for calling the API locally.

Tokens are normally issued by the identity service; this signs one with the
local SECRET_KEY so the endpoints can be exercised with curl.

Usage:
  python scripts/issue_token.py teacher
  python scripts/issue_token.py student 3f1c0d2e-8a5b-4c1e-9a7f-2d6b1e0c9a11
"""
import os
import sys
import uuid

# Load .env from project root
try:
    from dotenv import load_dotenv
    _root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    load_dotenv(os.path.join(_root, ".env"))
except ImportError:
    pass

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from coursework.config import settings
from coursework.core.security import create_access_token
from coursework.models.enums import UserRole


def main():
    if settings.is_production:
        print("ERROR: refusing to mint tokens with the production SECRET_KEY.")
        sys.exit(1)
    if len(sys.argv) < 2 or sys.argv[1] not in {r.value for r in UserRole}:
        print(f"Usage: {sys.argv[0]} <{'|'.join(r.value for r in UserRole)}> [user_id]")
        sys.exit(1)
    role = sys.argv[1]
    user_id = sys.argv[2] if len(sys.argv) > 2 else str(uuid.uuid4())
    print(f"user_id: {user_id}")
    print(create_access_token({"sub": user_id, "role": role}))


if __name__ == "__main__":
    main()
