from __future__ import annotations
from typing import Any, Dict

from itdesk.errors import ValidationError


def build_filters(specs: Dict[str, Dict[str, Any]], params: Dict[str, Any]) -> Dict[str, Any]:
    """Turn query-string params into datastore filters.

    specs: { param_name: { 'column': str (defaults to param_name), 'op': datastore op (default 'eq'),
                           'coerce': type/func, 'validate': callable(optional) } }
    """
    filters: Dict[str, Any] = {}
    for name, meta in specs.items():
        if name not in params or params[name] in (None, ''):
            continue
        val = params[name]
        if 'coerce' in meta:
            try:
                val = meta['coerce'](val)
            except (TypeError, ValueError):
                raise ValidationError(f'{name} invalid')
        if 'validate' in meta and not meta['validate'](val):
            raise ValidationError(f'{name} invalid')
        op = meta.get('op', 'eq')
        filters[meta.get('column', name)] = val if op == 'eq' else (op, val)
    return filters
