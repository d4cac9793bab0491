from typing import Any, Dict
from math import ceil


def page_offset(page: int, limit: int) -> int:
    """Row offset for a 1-based page number"""
    return (max(page, 1) - 1) * limit


def paginate(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Create pagination metadata for list endpoints
    """
    total_pages = ceil(total / limit) if limit > 0 else 0

    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNext": page < total_pages,
        "hasPrev": page > 1
    }
