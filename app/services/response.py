class ListResponseMixin:
    """Wraps a service's ``list`` into the ``ListResponse`` envelope."""

    def list_response(self, db, *args, limit: int, offset: int, **kwargs):
        items = self.list(db, *args, limit=limit, offset=offset, **kwargs)
        return {"items": items, "count": len(items), "limit": limit, "offset": offset}
