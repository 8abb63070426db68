#!/usr/bin/env python3
"""
Seed script: creates traders, listings, trades and chat lines via the API (no direct DB).
Run: API must be running.
  python scripts/seed_data.py
  python scripts/seed_data.py --users 20 --items-per-user 8 --trades 15
"""

import argparse
import random

import httpx

API_BASE = "http://localhost:8000/api/v1"
PASSWORD = "password123"

CATEGORIES = ["Electronics", "Fashion", "Books", "Sports", "Home", "Games", "Other"]
CONDITIONS = ["New", "Like New", "Good", "Fair", "Poor"]

TITLES = {
    "Electronics": ["Bluetooth speaker", "Mechanical keyboard", "Wireless mouse", "Webcam 4K", "Power bank"],
    "Fashion": ["Leather jacket", "Wool scarf", "Running shoes", "Denim jacket", "Sunglasses"],
    "Books": ["Python crash course", "Dune paperback", "Cookbook", "Poetry collection", "Atlas"],
    "Sports": ["Yoga mat", "Tennis racket", "Dumbbell pair", "Bike helmet", "Climbing shoes"],
    "Home": ["Oak chair", "Table lamp", "Coffee maker", "Electric kettle", "Bookshelf"],
    "Games": ["Chess set", "Board game bundle", "Puzzle 1000 pcs", "Gaming chair", "Card deck"],
    "Other": ["Guitar strings", "Plant pot", "Camping stove", "Sewing kit", "Picture frame"],
}

DESCRIPTIONS = [
    "Barely used, works perfectly.",
    "Some signs of wear, fully functional.",
    "Looking to swap for something for the kitchen.",
    "Moving out, everything must go.",
    "Open to offers of similar value.",
]

CHAT = ["Hi! Is this still available?", "Yes it is.", "Would you add anything?", "Deal from my side."]

# 1x1 PNG used as every listing photo
PIXEL_PNG = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c6360000002000154a24f5d0000000049454e44ae426082"
)


def sign_up_or_in(client: httpx.Client, n: int, errors: list) -> dict | None:
    email = f"trader{n}@example.com"
    body = {"email": email, "password": PASSWORD, "username": f"trader{n}"}
    r = client.post("/auth/sign-up", json=body)
    if r.status_code == 401:
        # Already exists - sign in with the same credentials
        r = client.post("/auth/sign-in", json={"email": email, "password": PASSWORD})
    if r.status_code not in (200, 201):
        errors.append(f"Auth {email}: {r.status_code} {r.text[:80]}")
        return None
    data = r.json()
    return {"id": data["user_id"], "headers": {"Authorization": f"Bearer {data['access_token']}"}}


def create_listing(client: httpx.Client, trader: dict, errors: list) -> str | None:
    r = client.post(
        "/items/images",
        headers=trader["headers"],
        files={"file": ("photo.png", PIXEL_PNG, "image/png")},
    )
    if r.status_code != 201:
        errors.append(f"Upload: {r.status_code} {r.text[:80]}")
        return None
    category = random.choice(CATEGORIES)
    r = client.post(
        "/items",
        headers=trader["headers"],
        json={
            "title": random.choice(TITLES[category]),
            "description": random.choice(DESCRIPTIONS),
            "condition": random.choice(CONDITIONS),
            "category": category,
            "estimated_value": random.choice([5, 10, 20, 35, 50, 80, 120]),
            "images": [r.json()["url"]],
        },
    )
    if r.status_code != 201:
        errors.append(f"Item: {r.status_code} {r.text[:80]}")
        return None
    return r.json()["id"]


def main():
    ap = argparse.ArgumentParser(description="Seed traders, listings and trades via API")
    ap.add_argument("--users", type=int, default=10, help="Number of traders to create")
    ap.add_argument("--items-per-user", type=int, default=5, help="Listings per trader")
    ap.add_argument("--trades", type=int, default=10, help="Trades to propose")
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    args = ap.parse_args()

    errors: list[str] = []
    traders = []
    listings: dict[str, list[str]] = {}
    trades = 0

    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        print(f"Creating {args.users} traders...")
        for i in range(args.users):
            trader = sign_up_or_in(client, i + 1, errors)
            if trader:
                traders.append(trader)
                listings[trader["id"]] = []

        print(f"Creating ~{len(traders) * args.items_per_user} listings (upload + POST)...")
        for trader in traders:
            for _ in range(args.items_per_user):
                item_id = create_listing(client, trader, errors)
                if item_id:
                    listings[trader["id"]].append(item_id)

        print(f"Proposing {args.trades} trades...")
        for _ in range(args.trades):
            if len(traders) < 2:
                break
            requester, receiver = random.sample(traders, 2)
            offered, wanted = listings[requester["id"]], listings[receiver["id"]]
            if not offered or not wanted:
                continue
            r = client.post(
                "/trades",
                headers=requester["headers"],
                json={
                    "receiver_id": receiver["id"],
                    "requester_items": random.sample(offered, min(2, len(offered))),
                    "receiver_items": [random.choice(wanted)],
                },
            )
            if r.status_code != 201:
                errors.append(f"Trade: {r.status_code} {r.text[:80]}")
                continue
            trades += 1
            trade_id = r.json()["id"]
            for n, line in enumerate(CHAT[: random.randint(1, len(CHAT))]):
                speaker = requester if n % 2 == 0 else receiver
                client.post(f"/trades/{trade_id}/messages", headers=speaker["headers"], json={"content": line})

    total = sum(len(v) for v in listings.values())
    print(f"\nDone. Traders: {len(traders)}, Listings: {total}, Trades: {trades}")
    if errors:
        print(f"Errors ({len(errors)}):")
        for e in errors[:15]:
            print("  ", e)
        if len(errors) > 15:
            print("  ... and", len(errors) - 15, "more")


if __name__ == "__main__":
    main()
