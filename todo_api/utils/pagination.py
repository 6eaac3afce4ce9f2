from dataclasses import dataclass

from starlette.datastructures import URL

MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = "created_at"
DEFAULT_SORT_DIRECTION = "desc"

# Accepted client spellings -> model attribute
SORTABLE_FIELDS = {
    "createdAt": "created_at",
    "created_at": "created_at",
    "dueDate": "due_date",
    "due_date": "due_date",
    "title": "title",
    "isCompleted": "is_completed",
    "is_completed": "is_completed",
    "id": "id",
}


@dataclass(frozen=True)
class PageRequest:
    page: int
    size: int
    sort_field: str
    direction: str

    @property
    def offset(self) -> int:
        return self.page * self.size

    @property
    def sort(self) -> str:
        return f"{self.sort_field},{self.direction}"

    def order_by(self, model) -> list:
        column = getattr(model, self.sort_field)
        clauses = [column.asc() if self.direction == "asc" else column.desc()]
        # secondary sort by id keeps ordering stable when values collide
        if self.sort_field != "id":
            clauses.append(model.id.asc())
        return clauses


def parse_sort(sort: str | None) -> tuple[str | None, str | None]:
    """Split ``"title,asc"`` into ``("title", "asc")``."""
    if not sort or not sort.strip():
        return None, None
    parts = sort.split(",", 1)
    field = parts[0].strip() or None
    direction = parts[1].strip() if len(parts) == 2 else None
    return field, direction


def build_page_request(
    page: int,
    size: int,
    sort_field: str | None = None,
    sort_direction: str | None = None,
) -> PageRequest:
    p = max(0, page)
    s = min(max(1, size), MAX_PAGE_SIZE)

    field = SORTABLE_FIELDS.get(sort_field or "")
    if field is None:
        return PageRequest(p, s, DEFAULT_SORT_FIELD, DEFAULT_SORT_DIRECTION)

    direction = "asc" if (sort_direction or "").lower() == "asc" else "desc"
    return PageRequest(p, s, field, direction)


def build_pagination_headers(total: int, page_request: PageRequest, url: URL | str) -> dict[str, str]:
    """X-Total-Count plus an RFC 5988 Link header (first/prev/next/last)."""
    if not isinstance(url, URL):
        url = URL(url)

    last_page = max(0, (total - 1) // page_request.size)

    def mk(p: int) -> str:
        return str(url.include_query_params(page=p, size=page_request.size, sort=page_request.sort))

    links = [f'<{mk(0)}>; rel="first"']
    if page_request.page > 0:
        links.append(f'<{mk(min(page_request.page - 1, last_page))}>; rel="prev"')
    if page_request.page < last_page:
        links.append(f'<{mk(page_request.page + 1)}>; rel="next"')
    links.append(f'<{mk(last_page)}>; rel="last"')

    return {
        "X-Total-Count": str(total),
        "Link": ", ".join(links),
    }
