#!/usr/bin/env python3
"""
Representment resolution flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_representment.py --admin-token <JWT> --transaction-id <UUID> --decision accept
    python scripts/flow_representment.py --admin-token <JWT> --transaction-id <UUID> --decision reject

Flow:
    1. Check the transaction for a merchant representment
    2. Accept it (credit reversed, case closed) or reject it (customer asked for evidence)
    3. Show the case audit trail
"""

import argparse
import json
import sys

import httpx

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    url = f"{BASE_URL}{endpoint}"

    if method == "GET":
        response = httpx.get(url, headers=headers, timeout=30.0)
    elif method == "POST":
        response = httpx.post(url, headers=headers, json=data or {}, timeout=30.0)
    else:
        raise ValueError(f"Unknown method: {method}")

    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict) -> bool:
    """Print result; False on an error status."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    print(json.dumps(result["data"], indent=2))
    return True


def main():
    parser = argparse.ArgumentParser(description="Representment resolution flow")
    parser.add_argument("--admin-token", required=True, help="Bank admin access token")
    parser.add_argument("--transaction-id", required=True, help="Transaction UUID")
    parser.add_argument("--decision", choices=["accept", "reject"], required=True)
    parser.add_argument("--notes", default=None, help="Reviewer notes")
    args = parser.parse_args()

    # Step 1: Detect representment
    print_step(1, "Check for representment")
    check = api_request(args.admin_token, "POST", "/api/v1/representments/check", {
        "transaction_id": args.transaction_id,
    })
    if not print_result(check):
        sys.exit(1)
    if not check["data"].get("has_representment"):
        print("\nNo representment to resolve.")
        return

    # Step 2: Resolve
    print_step(2, f"{args.decision.capitalize()} representment")
    if args.decision == "accept":
        payload = {"transaction_id": args.transaction_id, "notes": args.notes}
    else:
        payload = {"transaction_id": args.transaction_id, "admin_notes": args.notes}
    result = api_request(args.admin_token, "POST", f"/api/v1/representments/{args.decision}", payload)
    if not print_result(result):
        sys.exit(1)

    # Step 3: Audit trail
    print_step(3, "Audit trail")
    print_result(api_request(args.admin_token, "GET", f"/api/v1/transactions/{args.transaction_id}/audit"))


if __name__ == "__main__":
    main()
