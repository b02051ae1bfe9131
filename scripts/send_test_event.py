#!/usr/bin/env python3
"""
Post a signed sample LINE delivery to a running bridge.

Usage:
    python scripts/send_test_event.py "請問報價流程"
    python scripts/send_test_event.py "請幫我轉真人客服" --url http://localhost:3000/webhook

Uses LINE_CHANNEL_SECRET from .env to sign the body. The reply token is
fake, so with a real access token the reply call itself will be rejected by
LINE; check the server log and logs/chatlog.json for the routing result.
"""

import argparse
import json
import sys
import time
import uuid
from pathlib import Path

import requests

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import config
from linebridge.infrastructure.messaging import compute_signature


def build_delivery(text: str, user_id: str) -> dict:
    return {
        "destination": "local-test",
        "events": [{
            "type": "message",
            "timestamp": int(time.time() * 1000),
            "replyToken": uuid.uuid4().hex,
            "source": {"type": "user", "userId": user_id},
            "message": {"type": "text", "id": uuid.uuid4().hex[:12], "text": text},
        }],
    }


def main():
    parser = argparse.ArgumentParser(description="Send a signed test message to the webhook")
    parser.add_argument("text", help="Message text")
    parser.add_argument("--url", default=f"http://localhost:{config.PORT}/webhook")
    parser.add_argument("--user", default="U-local-test")
    args = parser.parse_args()

    if not config.LINE_CHANNEL_SECRET:
        print("❌ LINE_CHANNEL_SECRET is not set; the server would reject the delivery.")
        sys.exit(1)

    body = json.dumps(build_delivery(args.text, args.user), ensure_ascii=False).encode("utf-8")
    headers = {
        "Content-Type": "application/json",
        "X-Line-Signature": compute_signature(config.LINE_CHANNEL_SECRET, body),
    }

    response = requests.post(args.url, data=body, headers=headers, timeout=30)
    print(f"{'✅' if response.ok else '❌'} {response.status_code} {response.text}")


if __name__ == "__main__":
    main()
