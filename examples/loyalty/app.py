"""Loyalty: JSON API for a restaurant loyalty program.

Registration and login issue signed bearer tokens; clients are stored per
organization, along with locations capped per subscription tier; user
management is admin-only. A WhatsApp webhook answers the verification
handshake and collects inbound messages. Storage is in memory.
Demonstrates middleware chains on routes, wildcard middleware, mounted
sub-apps with their own error handler, and path parameters.

Run with any ASGI server:
    cd examples/loyalty && uvicorn app:app
"""

import logging
import os
import threading
from dataclasses import asdict, dataclass, field, replace

from trellis import App, AppConfig
from trellis.context import Context
from trellis.errors import HTTPError
from trellis.middleware import bearer_auth, cors, require_role
from trellis.security import TokenSigner, hash_password, verify_password

config = AppConfig.from_env()
if not config.secret_key:
    config = replace(config, secret_key="dev-only-secret")

app = App(config)
signer = TokenSigner(config.secret_key, max_age=config.token_max_age)
auth = bearer_auth(signer)
admin_only = require_role("admin")

TIERS = ("free", "growth", "enterprise")
ROLES = ("admin", "cashier")
MAX_USERS = {"free": 4, "growth": 11, "enterprise": None}
MAX_LOCATIONS = {"free": 1, "growth": 3, "enterprise": None}
WEBHOOK_VERIFY_TOKEN = os.environ.get("LOYALTY_WHATSAPP_VERIFY_TOKEN", "dev-verify-token")

logger = logging.getLogger("loyalty")


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class User:
    id: int
    organization_id: int
    email: str
    name: str
    role: str
    password_hash: str = field(repr=False)
    is_active: bool = True
    location_id: int | None = None


@dataclass(slots=True)
class Client:
    id: int
    organization_id: int
    name: str
    phone: str
    visits: int = 1
    total_spent: float = 0.0


@dataclass(slots=True)
class Location:
    id: int
    organization_id: int
    name: str
    address: str | None = None
    phone: str | None = None
    region: str | None = None


_organizations: dict[int, dict[str, object]] = {}
_users: dict[int, User] = {}
_clients: dict[int, Client] = {}
_locations: dict[int, Location] = {}
_inbox: list[dict[str, object]] = []
_ids = {"organization": 0, "user": 0, "client": 0, "location": 0}
_lock = threading.Lock()


def _next_id(kind: str) -> int:
    with _lock:
        _ids[kind] += 1
        return _ids[kind]


def _find_user(email: str) -> User | None:
    return next((u for u in _users.values() if u.email == email), None)


def _public(user: User) -> dict[str, object]:
    data = asdict(user)
    del data["password_hash"]
    return data


def _issue(user: User) -> str:
    return signer.issue(
        {
            "userId": user.id,
            "organizationId": user.organization_id,
            "email": user.email,
            "role": user.role,
            "locationId": user.location_id,
        }
    )


async def _json_body(ctx: Context) -> dict:
    try:
        body = await ctx.req.json()
    except ValueError:
        raise HTTPError(400, "Invalid JSON body") from None
    if not isinstance(body, dict):
        raise HTTPError(400, "JSON body must be an object")
    return body


# ---------------------------------------------------------------------------
# Middleware, health, errors
# ---------------------------------------------------------------------------

app.use(
    "/*",
    cors(
        origin="*",
        allow_methods=("GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"),
        allow_headers=("Content-Type", "Authorization"),
    ),
)


@app.get("/")
def health(ctx, next):
    return ctx.json({"service": "Restaurant Marketing API", "version": "1.0.0", "status": "healthy"})


@app.not_found
def not_found(ctx):
    return ctx.json({"error": "Not found"}, 404)


@app.on_error
def on_error(err, ctx):
    if isinstance(err, HTTPError):
        return ctx.json({"error": err.detail}, err.status)
    return ctx.json({"error": "Internal server error"}, 500)


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


@app.post("/api/auth/register")
async def register(ctx, next):
    body = await _json_body(ctx)
    required = ("organizationName", "email", "password", "name")
    if not all(body.get(k) for k in required):
        return ctx.json({"error": "Missing required fields"}, 400)
    tier = body.get("subscriptionTier", "free")
    if tier not in TIERS:
        return ctx.json({"error": "Invalid subscription tier"}, 400)
    if _find_user(body["email"]) is not None:
        return ctx.json({"error": "Email already registered"}, 409)

    org_id = _next_id("organization")
    _organizations[org_id] = {"id": org_id, "name": body["organizationName"], "tier": tier}
    user = User(
        id=_next_id("user"),
        organization_id=org_id,
        email=body["email"],
        name=body["name"],
        role="admin",
        password_hash=hash_password(body["password"]),
    )
    _users[user.id] = user
    return ctx.json({"token": _issue(user), "user": _public(user)}, 201)


@app.post("/api/auth/login")
async def login(ctx, next):
    body = await _json_body(ctx)
    if not body.get("email") or not body.get("password"):
        return ctx.json({"error": "Email and password required"}, 400)
    user = _find_user(body["email"])
    if user is None or not verify_password(body["password"], user.password_hash):
        return ctx.json({"error": "Invalid credentials"}, 401)
    if not user.is_active:
        return ctx.json({"error": "Account is inactive"}, 403)
    return ctx.json({"token": _issue(user), "user": _public(user)})


def me(ctx, next):
    user = _users.get(ctx.get("user")["userId"])
    if user is None:
        return ctx.json({"error": "User not found"}, 404)
    return ctx.json({"user": _public(user)})


app.get("/api/auth/me", auth, me)


# ---------------------------------------------------------------------------
# Clients: a sub-app mounted under /api/clients
# ---------------------------------------------------------------------------

clients = App()
clients.use("*", auth)


@clients.on_error
def clients_error(err, ctx):
    if isinstance(err, HTTPError):
        return ctx.json({"error": err.detail}, err.status)
    return ctx.json({"error": "Failed to process client request", "details": str(err)}, 500)


@clients.get("/")
def list_clients(ctx, next):
    org_id = ctx.get("user")["organizationId"]
    page = max(ctx.req.query.get_int("page", 1) or 1, 1)
    limit = min(max(ctx.req.query.get_int("limit", 50) or 50, 1), 100)
    rows = sorted((c for c in _clients.values() if c.organization_id == org_id), key=lambda c: c.id)
    chunk = rows[(page - 1) * limit : page * limit]
    return ctx.json(
        {
            "clients": [asdict(c) for c in chunk],
            "pagination": {"page": page, "limit": limit, "total": len(rows)},
        }
    )


@clients.post("/")
async def add_client(ctx, next):
    body = await _json_body(ctx)
    if not body.get("name") or not body.get("phone") or body.get("ticketAmount") is None:
        return ctx.json({"error": "Name, phone, and ticketAmount are required"}, 400)
    amount = float(body["ticketAmount"])
    if amount <= 0:
        return ctx.json({"error": "Ticket amount must be positive"}, 400)

    org_id = ctx.get("user")["organizationId"]
    existing = next(
        (c for c in _clients.values() if c.organization_id == org_id and c.phone == body["phone"]),
        None,
    )
    if existing is not None:
        existing.visits += 1
        existing.total_spent += amount
        client = existing
    else:
        client = Client(_next_id("client"), org_id, body["name"], body["phone"], total_spent=amount)
        _clients[client.id] = client
    return ctx.json({"success": True, "clientId": client.id, "message": "Client and order added successfully"}, 201)


@clients.get("/export")
def export_clients(ctx, next):
    org_id = ctx.get("user")["organizationId"]
    lines = ["id,name,phone,visits,total_spent"]
    lines += [
        f"{c.id},{c.name},{c.phone},{c.visits},{c.total_spent:.2f}"
        for c in _clients.values()
        if c.organization_id == org_id
    ]
    ctx.header("Content-Disposition", 'attachment; filename="clients.csv"')
    return ctx.body("\n".join(lines), 200, {"Content-Type": "text/csv; charset=UTF-8"})


@clients.delete("/:id{[0-9]+}")
def delete_client(ctx, next):
    client = _clients.get(int(ctx.req.param("id")))
    if client is None or client.organization_id != ctx.get("user")["organizationId"]:
        raise HTTPError(404, "Client not found")
    del _clients[client.id]
    return ctx.json({"success": True, "message": "Client deleted successfully"})


app.route("/api/clients", clients)




# ---------------------------------------------------------------------------
# Locations: PATCH-able branches, mounted under /api/locations
# ---------------------------------------------------------------------------

locations = App()
locations.use("*", auth)


@locations.get("/")
def list_locations(ctx, next):
    org_id = ctx.get("user")["organizationId"]
    rows = [asdict(loc) for loc in _locations.values() if loc.organization_id == org_id]
    return ctx.json({"locations": rows})


@locations.post("/")
async def create_location(ctx, next):
    body = await _json_body(ctx)
    if not body.get("name"):
        return ctx.json({"error": "Location name required"}, 400)

    org_id = ctx.get("user")["organizationId"]
    tier = _organizations[org_id]["tier"]
    limit = MAX_LOCATIONS[tier]
    count = sum(1 for loc in _locations.values() if loc.organization_id == org_id)
    if limit is not None and count >= limit:
        return ctx.json({"error": f"Location limit reached for {tier} tier (max: {limit})"}, 403)

    location = Location(
        id=_next_id("location"),
        organization_id=org_id,
        name=body["name"],
        address=body.get("address"),
        phone=body.get("phone"),
        region=body.get("region"),
    )
    _locations[location.id] = location
    return ctx.json({"success": True, "location": asdict(location)}, 201)


def _own_location(ctx: Context) -> Location:
    location = _locations.get(int(ctx.req.param("id")))
    if location is None or location.organization_id != ctx.get("user")["organizationId"]:
        raise HTTPError(404, "Location not found")
    return location


@locations.patch("/:id{[0-9]+}")
async def update_location(ctx, next):
    location = _own_location(ctx)
    body = await _json_body(ctx)
    for key in ("name", "address", "phone", "region"):
        if body.get(key) is not None:
            setattr(location, key, body[key])
    return ctx.json({"success": True, "message": "Location updated"})


@locations.delete("/:id{[0-9]+}")
def delete_location(ctx, next):
    del _locations[_own_location(ctx).id]
    return ctx.json({"success": True, "message": "Location deleted"})


app.route("/api/locations", locations)


# ---------------------------------------------------------------------------
# Users: admin only, mounted under /api/users
# ---------------------------------------------------------------------------

users = App()
users.use("*", auth, admin_only)


@users.get("/")
def list_users(ctx, next):
    org_id = ctx.get("user")["organizationId"]
    return ctx.json({"users": [_public(u) for u in _users.values() if u.organization_id == org_id]})


@users.post("/")
async def create_user(ctx, next):
    body = await _json_body(ctx)
    if not body.get("email") or not body.get("password") or not body.get("name"):
        return ctx.json({"error": "Email, password, and name required"}, 400)
    role = body.get("role", "cashier")
    if role not in ROLES:
        return ctx.json({"error": "Invalid role"}, 400)
    if _find_user(body["email"]) is not None:
        return ctx.json({"error": "Email already exists"}, 409)

    org_id = ctx.get("user")["organizationId"]
    limit = MAX_USERS[_organizations[org_id]["tier"]]
    members = sum(1 for u in _users.values() if u.organization_id == org_id)
    if limit is not None and members >= limit:
        return ctx.json({"error": "User limit reached for your subscription tier", "limit": limit}, 403)

    user = User(
        id=_next_id("user"),
        organization_id=org_id,
        email=body["email"],
        name=body["name"],
        role=role,
        password_hash=hash_password(body["password"]),
        location_id=body.get("locationId"),
    )
    _users[user.id] = user
    return ctx.json({"success": True, "user": _public(user)}, 201)


def _member(ctx: Context) -> User | None:
    raw = ctx.req.param("id")
    user = _users.get(int(raw)) if raw.isdigit() else None
    if user is None or user.organization_id != ctx.get("user")["organizationId"]:
        return None
    return user


@users.patch("/:id")
async def update_user(ctx, next):
    user = _member(ctx)
    if user is None:
        return ctx.json({"error": "User not found"}, 404)
    body = await _json_body(ctx)
    if "name" in body:
        user.name = body["name"]
    if "role" in body:
        if body["role"] not in ROLES:
            return ctx.json({"error": "Invalid role"}, 400)
        user.role = body["role"]
    if "isActive" in body:
        user.is_active = bool(body["isActive"])
    return ctx.json({"success": True, "message": "User updated"})


@users.delete("/:id")
def delete_user(ctx, next):
    user = _member(ctx)
    if user is None:
        return ctx.json({"error": "User not found"}, 404)
    if user.id == ctx.get("user")["userId"]:
        return ctx.json({"error": "Cannot delete your own account"}, 400)
    del _users[user.id]
    return ctx.json({"success": True, "message": "User deleted"})


app.route("/api/users", users)


# ---------------------------------------------------------------------------
# WhatsApp webhook: verification handshake and inbound messages
# ---------------------------------------------------------------------------


def _message_content(message: dict) -> str:
    kind = message.get("type", "")
    if kind == "text":
        return message.get("text", {}).get("body", "")
    if kind in ("image", "video", "audio", "document"):
        return message.get(kind, {}).get("caption") or f"[{kind}]"
    if kind == "location":
        loc = message.get("location", {})
        return f"Location: {loc.get('latitude')}, {loc.get('longitude')}"
    return f"[{kind}]"


@app.get("/api/webhooks/whatsapp")
def verify_webhook(ctx, next):
    query = ctx.req.query
    verified = query.get("hub.verify_token") == WEBHOOK_VERIFY_TOKEN
    if query.get("hub.mode") == "subscribe" and verified:
        return ctx.text(query.get("hub.challenge", ""))
    logger.warning("Webhook verification failed")
    return ctx.text("Forbidden", 403)


@app.post("/api/webhooks/whatsapp")
async def receive_webhook(ctx, next):
    payload = await _json_body(ctx)
    if payload.get("object") != "whatsapp_business_account":
        return ctx.text("Not a WhatsApp webhook", 400)
    for entry in payload.get("entry", []):
        for change in entry.get("changes", []):
            for message in change.get("value", {}).get("messages", []):
                _inbox.append(
                    {
                        "from": message.get("from"),
                        "type": message.get("type"),
                        "content": _message_content(message),
                    }
                )
    return ctx.json({"success": True})
