from __future__ import annotations
from typing import Iterable, List, Optional

from itdesk.errors import ValidationError


def parse_sort(sort_expr: Optional[str], allowed: Iterable[str], tie_breaker: str) -> List[str]:
    """Turn ``'-created_at,title'`` into datastore ordering tokens.

    allowed: field names that may be sorted on.
    tie_breaker: column appended for deterministic ordering.
    """
    allowed = set(allowed)
    if not sort_expr:
        return [tie_breaker]
    tokens = []
    for raw in sort_expr.split(','):
        token = raw.strip()
        if not token:
            continue
        key = token[1:] if token.startswith('-') else token
        if key not in allowed:
            raise ValidationError(f'Invalid sort field {key}')
        tokens.append(token)
    tokens.append(tie_breaker)
    return tokens
