#!/usr/bin/env python3
"""
Rental lifecycle flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_rental.py --car-id 3 --customer-id 12 --start 2026-04-01 --end 2026-04-04
    python scripts/flow_rental.py --car-id 3 --customer-id 12 --start 2026-04-01 --end 2026-04-04 --extend-to 2026-04-06

Flow:
    1. Create booking (as customer)
    2. Record payment (as staff)
    3. Mark payment verified and confirm booking
    4. Release car
    5. Request and approve extension (optional)
    6. Complete booking
"""

import argparse
import json
import sys

import httpx

from app.core.security import create_actor_token

BASE_URL = "http://localhost:8000"


def api_request(token: str, method: str, endpoint: str, data: dict | None = None) -> dict:
    """Make authenticated API request."""
    headers = {"Authorization": f"Bearer {token}"}
    response = httpx.request(
        method,
        f"{BASE_URL}{endpoint}",
        headers=headers,
        json=data if method != "GET" else None,
        timeout=10.0,
    )
    return {"status": response.status_code, "data": response.json() if response.text else {}}


def print_step(step: int, title: str):
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_result(result: dict, fields: list[str] | None = None) -> bool:
    """Print result, optionally filtering booking fields."""
    if result["status"] >= 400:
        print(f"ERROR ({result['status']}): {json.dumps(result['data'], indent=2)}")
        return False

    print(f"Status: {result['status']}")
    data = result["data"].get("booking", result["data"])
    if fields:
        data = {k: data.get(k) for k in fields if k in data}
    print(json.dumps(data, indent=2))
    for failure in result["data"].get("side_effect_failures", []):
        print(f"WARNING: {failure['operation']} failed (code {failure['code']})")
    return True


def main():
    parser = argparse.ArgumentParser(description="Complete rental flow")
    parser.add_argument("--car-id", type=int, required=True, help="Car ID")
    parser.add_argument("--customer-id", type=int, required=True, help="Customer ID")
    parser.add_argument("--staff-id", type=int, default=1, help="Staff ID")
    parser.add_argument("--start", required=True, help="Start date (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="End date (YYYY-MM-DD)")
    parser.add_argument("--amount", type=int, default=1000, help="Payment to record")
    parser.add_argument("--extend-to", help="Request an extension to this date (YYYY-MM-DD)")
    args = parser.parse_args()

    customer_token = create_actor_token(args.customer_id, "customer")
    staff_token = create_actor_token(args.staff_id, "staff")
    fields = ["id", "booking_status", "pending_request", "end_date", "total_amount", "balance", "payment_status"]

    print_step(1, "Create booking")
    result = api_request(customer_token, "POST", "/api/v1/bookings", {
        "car_id": args.car_id,
        "startDate": args.start,
        "endDate": args.end,
    })
    if not print_result(result, fields):
        sys.exit(1)
    booking_id = result["data"]["booking"]["id"]

    print_step(2, "Record payment")
    result = api_request(staff_token, "POST", "/api/v1/payments", {
        "booking_id": booking_id,
        "amount": args.amount,
        "payment_method": "cash",
    })
    if not print_result(result, fields):
        sys.exit(1)

    print_step(3, "Verify payment and confirm")
    result = api_request(staff_token, "PUT", f"/api/v1/bookings/{booking_id}/payment-trigger", {"confirmed": True})
    if not print_result(result, ["payment_confirmed_pending_apply"]):
        sys.exit(1)
    result = api_request(staff_token, "PUT", f"/api/v1/bookings/{booking_id}/confirm")
    if not print_result(result, fields):
        sys.exit(1)

    print_step(4, "Release car")
    result = api_request(staff_token, "PUT", f"/api/v1/bookings/{booking_id}/release")
    if not print_result(result, fields):
        sys.exit(1)

    step = 5
    if args.extend_to:
        print_step(step, "Request and approve extension")
        result = api_request(customer_token, "PUT", f"/api/v1/bookings/{booking_id}/extend", {
            "new_end_date": args.extend_to,
        })
        if not print_result(result, fields):
            sys.exit(1)
        print(f"\nAdditional cost: {result['data']['additional_cost']:,}")
        result = api_request(staff_token, "PUT", f"/api/v1/bookings/{booking_id}/confirm-extension")
        if not print_result(result, fields):
            sys.exit(1)
        step += 1

    print_step(step, "Complete booking")
    result = api_request(staff_token, "PUT", f"/api/v1/bookings/{booking_id}/complete")
    if not print_result(result, fields):
        sys.exit(1)

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    booking = result["data"]["booking"]
    print(f"Booking:   {booking_id}")
    print(f"Total:     {booking['total_amount']:,}")
    print(f"Balance:   {booking['balance']:,} ({booking['payment_status']})")


if __name__ == "__main__":
    main()
