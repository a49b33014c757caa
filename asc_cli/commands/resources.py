"""Helpers for flattening JSON:API documents into CLI-friendly dicts."""


def flatten_resource(resource: dict) -> dict:
    """Merge a resource's id/type with its attributes.

    Relationships and links are dropped; use 'asc request' for the raw document.
    """
    if not resource:
        return {}
    flat = {'id': resource.get('id'), 'type': resource.get('type')}
    flat.update(resource.get('attributes') or {})
    return flat


def flatten_document(document: dict) -> dict:
    """Flatten a single-resource document ({"data": {...}})."""
    return flatten_resource(document.get('data') or {})


def flatten_collection(document: dict, key: str) -> dict:
    """Flatten a collection document.

    Returns:
        Dict with the flattened resources under ``key``, 'count', and
        'total' / 'next' when the service sent paging info
    """
    items = [flatten_resource(r) for r in document.get('data') or []]
    result = {key: items, 'count': len(items)}

    paging = (document.get('meta') or {}).get('paging') or {}
    if 'total' in paging:
        result['total'] = paging['total']
    next_link = (document.get('links') or {}).get('next')
    if next_link:
        result['next'] = next_link

    return result
