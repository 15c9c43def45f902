import math

MAX_LIMIT = 100
DEFAULT_LIMIT = 10


def pagination_meta(page, limit, total):
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0,
    }


def paginate(query, page=1, limit=DEFAULT_LIMIT):
    total = query.order_by(None).count()

    items = (
        query
        .limit(limit)
        .offset((page - 1) * limit)
        .all()
    )

    return items, pagination_meta(page, limit, total)


def paginate_list(rows, page=1, limit=DEFAULT_LIMIT):
    start = (page - 1) * limit
    return rows[start:start + limit], pagination_meta(page, limit, len(rows))
