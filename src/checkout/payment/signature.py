"""Gateway payment signatures.

A completed hosted checkout is proven by an HMAC-SHA256 over
``"{session_id}|{payment_id}"`` keyed with the gateway secret, hex encoded.
"""

import hashlib
import hmac


def compute_signature(secret: str, session_id: str, payment_id: str) -> str:
    message = f"{session_id}|{payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def signature_matches(secret: str, session_id: str, payment_id: str, signature: str) -> bool:
    expected = compute_signature(secret, session_id, payment_id)
    # compare_digest rejects non-ASCII str
    return hmac.compare_digest(expected.encode(), (signature or "").encode())
