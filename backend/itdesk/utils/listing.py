from __future__ import annotations
from typing import Iterable, List, Optional, Tuple
from flask import request, make_response, current_app
import hashlib
from datetime import datetime, timezone, timedelta
from email.utils import parsedate_to_datetime, format_datetime

from itdesk.config.settings import normalize_pagination
from itdesk.errors import ValidationError
from itdesk.utils.timestamps import as_utc

TIMESTAMP_TOLERANCE = timedelta(seconds=1)


def canonicalize_timestamp(dt: datetime) -> datetime:
    """Return UTC tz-aware timestamp truncated to whole seconds."""
    return as_utc(dt).replace(microsecond=0)


def paginate(rows: List[dict]) -> Tuple[List[dict], int, int, int]:
    """Slice an already filtered/sorted row list by the request's limit/offset."""
    try:
        limit, offset = normalize_pagination(
            request.args.get('limit'), request.args.get('offset'),
            current_app.config.get('DEFAULT_LIMIT', 50), current_app.config.get('MAX_LIMIT', 200),
        )
    except ValueError as e:
        raise ValidationError(str(e))
    return rows[offset:offset + limit], len(rows), limit, offset


def latest_timestamp(rows: Iterable[dict], *fields: str) -> Optional[datetime]:
    fields = fields or ('updated_at', 'created_at')
    stamps = [as_utc(r[f]) for r in rows for f in fields if isinstance(r.get(f), datetime)]
    return max(stamps) if stamps else None


def compute_etag(ids: Iterable, total: int, limit: int, offset: int, latest_ts: Optional[str] = '') -> str:
    seed = f"{list(ids)}|{total}|{limit}|{offset}|{latest_ts or ''}"
    return hashlib.sha256(seed.encode()).hexdigest()[:32]


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


def _http_date(dt: datetime) -> str:
    return format_datetime(dt, usegmt=True)


def _iso(dt: datetime) -> str:
    return dt.isoformat().replace('+00:00', 'Z')


def _parse_if_modified_since(header_val: str) -> Optional[datetime]:
    if not header_val:
        return None
    try:
        dt = datetime.fromisoformat(header_val.replace('Z', '+00:00'))
    except ValueError:
        try:
            dt = parsedate_to_datetime(header_val)
        except (TypeError, ValueError):
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _not_modified(etag_value: str, latest_c: Optional[datetime]):
    resp = make_response('', 304)
    resp.headers['ETag'] = etag_value
    if latest_c:
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_c)
    return resp


def cached_list_response(page: List[dict], total: int, limit: int, offset: int, latest_ts: Optional[datetime] = None):
    """Build the paginated list response, honouring If-None-Match / If-Modified-Since.

    If-None-Match takes precedence over If-Modified-Since.
    """
    latest_c = canonicalize_timestamp(latest_ts) if latest_ts else None
    etag = compute_etag([r.get('id') for r in page], total, limit, offset, _iso(latest_c) if latest_c else '')
    inm = request.headers.get('If-None-Match')
    if inm:
        if inm.strip('"') == etag:
            return _not_modified(etag, latest_c)
    else:
        ims = _parse_if_modified_since(request.headers.get('If-Modified-Since'))
        if ims and latest_c and latest_c <= canonicalize_timestamp(ims) + TIMESTAMP_TOLERANCE:
            return _not_modified(etag, latest_c)
    resp = make_response(build_list_payload(page, total, limit, offset))
    resp.headers['ETag'] = etag
    if latest_c:
        resp.headers['Last-Modified'] = _http_date(latest_c)
        resp.headers['X-Last-Modified-ISO'] = _iso(latest_c)
    return resp


def list_response(rows: List[dict], serialize, *ts_fields: str):
    """Paginate raw datastore rows, serialize the page and wrap it in a cached response."""
    page, total, limit, offset = paginate(rows)
    return cached_list_response([serialize(r) for r in page], total, limit, offset, latest_timestamp(rows, *ts_fields))
