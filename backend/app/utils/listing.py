from __future__ import annotations
from typing import Any, Tuple
from flask import request, abort, make_response, current_app
from sqlalchemy.orm import Query
import hashlib
import json


def normalize_pagination(limit_raw, offset_raw, default_limit: int = 50, max_limit: int = 200):
    try:
        limit = int(limit_raw) if limit_raw is not None else default_limit
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset


def apply_pagination(q: Query) -> Tuple[Query, int, int, int]:
    try:
        limit, offset = normalize_pagination(
            request.args.get('limit'),
            request.args.get('offset'),
            current_app.config.get('PAGINATION_DEFAULT_LIMIT', 50),
            current_app.config.get('PAGINATION_MAX_LIMIT', 200),
        )
    except ValueError as e:
        abort(400, description=str(e))
    total = q.count()
    return q.offset(offset).limit(limit), total, limit, offset


def build_list_payload(rows: list, total: int, limit: int, offset: int):
    return {
        'data': rows,
        'pagination': {
            'total': total,
            'limit': limit,
            'offset': offset,
            'returned': len(rows)
        }
    }


def compute_etag(document: Any) -> str:
    """Stable validator for a JSON-able document (key order independent)."""
    seed = json.dumps(document, sort_keys=True, separators=(',', ':'), default=str)
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


def handle_if_none_match(etag_value: str):
    """Return a 304 response when If-None-Match matches, else None."""
    inm = request.headers.get('If-None-Match')
    if inm and inm.strip('"') == etag_value:
        resp = make_response('', 304)
        resp.headers['ETag'] = etag_value
        return resp
    return None


def assert_if_match(current_etag: str):
    """Opt-in optimistic check for wholesale saves: a stale If-Match aborts with 412.

    Requests without If-Match are accepted (last writer wins).
    """
    im = request.headers.get('If-Match')
    if im is None:
        return
    candidates = {v.strip().strip('"') for v in im.split(',')}
    if '*' in candidates or current_etag in candidates:
        return
    abort(412, description='Permissions were modified by another session; reload and retry')
