#!/usr/bin/env python3
"""Sign a forward request and (optionally) send it to a running relayer.

Reads CHAIN_ID and FORWARDER_ADDRESS from the environment / .env, fetches
the signer's forwarder nonce from the relayer, signs the request with
SIGNER_PRIVATE_KEY and prints the relay body.

Usage:
    python scripts/sign_request.py <to> <data> [--gas 300000] [--ttl 3600] [--send]
"""

import argparse
import json
import os
import sys
import time

import httpx
from dotenv import load_dotenv
from eth_account import Account

load_dotenv()

from pothole_relayer.signing import build_relay_body, build_typed_data, sign_forward_request


def main() -> int:
    parser = argparse.ArgumentParser(description="Sign a forward request for the relayer")
    parser.add_argument("to", help="Target contract address")
    parser.add_argument("data", help="Call data (0x hex)")
    parser.add_argument("--value", type=int, default=0, help="Wei to forward")
    parser.add_argument("--gas", type=int, default=300000, help="Gas for the inner call")
    parser.add_argument("--ttl", type=int, default=3600, help="Seconds until the request expires")
    parser.add_argument("--relayer", default="http://localhost:3001", help="Relayer base URL")
    parser.add_argument("--send", action="store_true", help="POST the signed request")
    args = parser.parse_args()

    private_key = os.environ.get("SIGNER_PRIVATE_KEY")
    forwarder = os.environ.get("FORWARDER_ADDRESS")
    if not private_key or not forwarder:
        print("SIGNER_PRIVATE_KEY and FORWARDER_ADDRESS must be set")
        return 1

    signer = Account.from_key(private_key).address

    with httpx.Client(base_url=args.relayer, timeout=30.0) as client:
        response = client.get("/api/relay/nonce", params={"address": signer})
        response.raise_for_status()
        nonce = int(response.json()["nonce"])
        print(f"Signer {signer}, forwarder nonce {nonce}")

        typed_data = build_typed_data(
            from_address=signer,
            to=args.to,
            value=args.value,
            gas=args.gas,
            nonce=nonce,
            deadline=int(time.time()) + args.ttl,
            data=args.data,
            chain_id=int(os.environ.get("CHAIN_ID", "31337")),
            forwarder_address=forwarder,
            name=os.environ.get("FORWARDER_NAME", "PotholesForwarder"),
            version=os.environ.get("FORWARDER_VERSION", "1"),
        )
        body = build_relay_body(typed_data, sign_forward_request(private_key, typed_data))
        print(json.dumps(body, indent=2))

        if args.send:
            # Relaying waits for the block, so allow for slow confirmations
            response = client.post("/api/relay", json=body, timeout=180.0)
            print(f"{response.status_code}: {response.json()}")
            return 0 if response.status_code == 200 else 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
