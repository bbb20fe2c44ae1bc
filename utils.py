import json
from pathlib import Path
from fastapi import HTTPException
from typing import Optional
import jwt
import datetime
import os

SEED_PATH = Path(__file__).parent / "data.json"
DATA_PATH = Path(os.environ.get("STORE_DATA_PATH", "/tmp/data.json"))
JWT_SECRET = os.environ.get("JWT_SECRET", "storefront-dev-secret") # TO DO: use .env to set JWT_SECRET
JWT_ALGO = "HS256"
JWT_EXP_DELTA_SECONDS = int(os.environ.get("JWT_EXP_SECONDS", 60 * 60 * 24)) # 1 day
SESSION_COOKIE = "session"

CHECKOUT_REDIRECT_DELAY = float(os.environ.get("CHECKOUT_REDIRECT_DELAY", 2.0))
ORDER_TIMEOUT_SECONDS = float(os.environ.get("ORDER_TIMEOUT_SECONDS", 10))


def load_data(): # Load on demand, keep no handle open between requests
    with DATA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)


def save_data(data):
    with DATA_PATH.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def find_product(data: dict, product_id: int) -> Optional[dict]:
    return next((p for p in data.get("products", []) if p.get("id") == product_id), None)


def public_user(user: dict) -> dict:
    return {k: v for k, v in user.items() if k != "password"}


def authenticate(email: str, password: str) -> Optional[dict]:
    data = load_data()
    users = data.get("users", {})
    for u in users.values():
        if u.get("email") == email:
            if u.get("password") == password:
                return u
            return None
    return None


def create_token_for_user(user: dict) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    payload = {
        "sub": user.get("username"),
        "iat": now,
        "exp": now + datetime.timedelta(seconds=JWT_EXP_DELTA_SECONDS),
    }
    return jwt.encode(payload, JWT_SECRET, algorithm=JWT_ALGO)


def decode_token(token: Optional[str]) -> dict:
    if not token:
        raise HTTPException(status_code=401, detail="missing token")
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGO])
        return payload
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="invalid token")


def require_user(x_token: Optional[str], session: Optional[str] = None) -> dict:
    """Resolve the current user from the X-Token header, falling back to the session cookie."""
    payload = decode_token(x_token or session)
    username = payload.get("sub")
    if not username:
        raise HTTPException(status_code=401, detail="invalid token payload")
    data = load_data()
    user = data.get("users", {}).get(username)
    if not user:
        raise HTTPException(status_code=401, detail="invalid token user")
    return user
