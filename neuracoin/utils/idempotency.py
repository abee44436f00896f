import uuid
from datetime import datetime, timezone


def generate_idempotency_key(prefix: str, user_id: str) -> str:
    """Key of the form <prefix>_<user_id>_<yyyymmddHHMMSS>_<random>"""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    return f"{prefix}_{user_id}_{stamp}_{uuid.uuid4().hex[:8]}"
