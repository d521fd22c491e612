import urllib.request
import urllib.error
import json

BASE = "http://localhost:8000/api/v1"

# Expects two registered traders and two catalog items to exist already.
SELLER = ("test_seller", "Test1234!")
BUYER = ("test_buyer", "Test1234!")
ITEM_A = "shortbread"
ITEM_B = "ginger_snap"

def post(path, body=None, token=None):
    data = json.dumps(body or {}).encode()
    req = urllib.request.Request(
        f"{BASE}{path}",
        data=data,
        headers={"Content-Type": "application/json"}
    )
    if token:
        req.add_header("Authorization", f"Bearer {token}")
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def get(path, token=None, params=None):
    url = f"{BASE}{path}"
    if params:
        url += "?" + "&".join(f"{k}={v}" for k, v in params.items())
    req = urllib.request.Request(url)
    if token:
        req.add_header("Authorization", f"Bearer {token}")
    try:
        with urllib.request.urlopen(req) as r:
            return json.loads(r.read())
    except urllib.error.HTTPError as e:
        return json.loads(e.read())

def section(title):
    print(f"\n{'='*60}")
    print(f"### {title} ###")
    print('='*60)

def label(name):
    print(f"\n--- {name} ---")

def out(data):
    print(json.dumps(data, indent=2, ensure_ascii=False))

def login(username, password):
    r = post("/auth/login", {"username": username, "password": password})
    out(r)
    return r.get("data", {}).get("access_token", "")

# ── Login ──────────────────────────────────────────────────────
section("LOGIN")

label("Login seller")
TS = login(*SELLER)
label("Login buyer")
TB = login(*BUYER)

label("Who am I (seller)")
r = get("/auth/me", token=TS)
out(r)
SELLER_ID = r.get("data", {}).get("user_id", "")

label("No token")
out(get("/inventory"))

# ── Stock up ───────────────────────────────────────────────────
section("INVENTORY")

label("Catalog")
out(get("/items", token=TS))

label("Seller restocks A")
out(post("/inventory/adjust", {"item_id": ITEM_A, "delta": 10}, token=TS))

label("Buyer restocks B")
out(post("/inventory/adjust", {"item_id": ITEM_B, "delta": 10}, token=TB))

label("Zero delta is rejected")
out(post("/inventory/adjust", {"item_id": ITEM_A, "delta": 0}, token=TS))

# ── Fixed trade ────────────────────────────────────────────────
section("FIXED TRADE")

label("Seller offers 3 A for 2 B")
r = post("/trades", {
    "trade_type": "FIXED",
    "offer_items": [{"item_id": ITEM_A, "qty": 3}],
    "request_item_id": ITEM_B,
    "request_qty": 2,
}, token=TS)
out(r)
TRADE = r.get("data", {}).get("id", "")

label("Seller cannot accept own trade")
out(post(f"/trades/{TRADE}/accept", token=TS))

label("Buyer accepts")
out(post(f"/trades/{TRADE}/accept", token=TB))

label("Seller confirms (waiting)")
out(post(f"/trades/{TRADE}/confirm", token=TS))

label("Buyer confirms (completed)")
out(post(f"/trades/{TRADE}/confirm", token=TB))

label("Seller balance of B")
out(get(f"/inventory/{SELLER_ID}/{ITEM_B}", token=TS))

# ── Auction ────────────────────────────────────────────────────
section("AUCTION")

label("Seller auctions 2 A for anything")
r = post("/trades", {
    "trade_type": "AUCTION",
    "offer_items": [{"item_id": ITEM_A, "qty": 2}],
    "is_any": True,
}, token=TS)
out(r)
AUCTION = r.get("data", {}).get("id", "")

label("Buyer bids 4 B")
r = post(f"/trades/{AUCTION}/bids", {"item_id": ITEM_B, "qty": 4}, token=TB)
out(r)
BID = r.get("data", {}).get("id", "")

label("Buyer over-bids beyond stock")
out(post(f"/trades/{AUCTION}/bids", {"item_id": ITEM_B, "qty": 999}, token=TB))

label("Bids on auction")
out(get(f"/trades/{AUCTION}/bids", token=TS))

label("Seller accepts the bid")
out(post(f"/trades/{AUCTION}/bids/{BID}/accept", token=TS))

label("Both confirm")
out(post(f"/trades/{AUCTION}/confirm", token=TS))
out(post(f"/trades/{AUCTION}/confirm", token=TB))

# ── Cancel ─────────────────────────────────────────────────────
section("CANCEL")

label("Seller opens and cancels a trade")
r = post("/trades", {
    "trade_type": "FIXED",
    "offer_items": [{"item_id": ITEM_A, "qty": 1}],
    "request_item_id": ITEM_B,
    "request_qty": 1,
}, token=TS)
CANCELLED = r.get("data", {}).get("id", "")
out(post(f"/trades/{CANCELLED}/cancel", token=TS))

label("Cancel again is rejected")
out(post(f"/trades/{CANCELLED}/cancel", token=TS))

# ── History ────────────────────────────────────────────────────
section("HISTORY")

label("Seller history")
out(get("/trades/history", token=TS, params={"limit": 5}))

label("Seller ledger for A")
out(get("/inventory/ledger", token=TS, params={"item_id": ITEM_A, "limit": 10}))

print("\nDone.")
