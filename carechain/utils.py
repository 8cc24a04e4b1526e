# carechain/utils.py
import os
from jose import jwt, JWTError

SECRET = os.environ.get("CARECHAIN_DISPATCH_KEY", "dev-dispatch-key")
JWT_ALG = "HS256"


def sign_dispatch(caller: str, height: int) -> str:
    """Token a trusted dispatcher attaches to a call: who is calling, at which block height."""
    return jwt.encode({"sub": caller, "height": height}, SECRET, algorithm=JWT_ALG)


def verify_dispatch(token: str) -> dict:
    try:
        return jwt.decode(token, SECRET, algorithms=[JWT_ALG])
    except JWTError:
        return {}
