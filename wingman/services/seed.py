from __future__ import annotations

import json
import logging
from datetime import datetime, timedelta

from wingman.extensions import db
from wingman.models import Provider

logger = logging.getLogger(__name__)

DEFAULT_PROVIDERS: list[dict] = [
    {
        "id": "qwen-plus",
        "name": "Qwen Plus",
        "base_urls": [
            "https://dashscope.aliyuncs.com/compatible-mode/v1",
            "https://dashscope.aliyuncs.com/v1",
        ],
        "default_model": "qwen-plus",
        "requires_auth": True,
        "auth_header": "Authorization",
    },
    {
        "id": "gpt-5.2-all",
        "name": "GPT-5.2 All",
        "base_urls": [
            "https://openaiss.com/v1",
            "https://openaiss.com",
            "https://api.openai.com/v1",
        ],
        "default_model": "gpt-5.2-all",
        "requires_auth": True,
        "auth_header": "Authorization",
    },
]


def seed_providers(providers: list[dict] | None = None) -> int:
    """Insert any missing stock providers; existing rows are left untouched."""
    added = 0
    # The oldest row is the default provider, so list order is kept in created_at.
    base_time = datetime.utcnow()
    for index, entry in enumerate(providers or DEFAULT_PROVIDERS):
        if db.session.get(Provider, entry["id"]) is not None:
            continue
        db.session.add(
            Provider(
                id=entry["id"],
                name=entry["name"],
                base_urls=json.dumps(entry["base_urls"]),
                default_model=entry["default_model"],
                requires_auth=entry.get("requires_auth", True),
                auth_header=entry.get("auth_header"),
                created_at=base_time + timedelta(milliseconds=index),
            )
        )
        added += 1
    db.session.commit()
    if added:
        logger.info("Seeded %d provider(s)", added)
    return added
