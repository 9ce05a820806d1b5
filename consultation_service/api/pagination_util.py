"""Pagination response headers.

``X-Total-Count`` and ``X-Total-Pages`` carry the page metadata; ``Link``
carries navigation URLs (RFC 5988) derived from the current request URL with
``page`` and ``size`` replaced.
"""

from starlette.datastructures import URL

from consultation_service.domain.pagination import Page

HEADER_X_TOTAL_COUNT = "X-Total-Count"
HEADER_X_TOTAL_PAGES = "X-Total-Pages"


def _prepare_link(url: URL, page_number: int, page_size: int, rel: str) -> str:
    target = str(url.include_query_params(page=page_number, size=page_size))
    target = target.replace(",", "%2C").replace(";", "%3B")
    return f'<{target}>; rel="{rel}"'


def generate_pagination_http_headers(url: URL, page: Page) -> dict[str, str]:
    """Generate pagination headers for a page of results.

    Parameters:
        url: URL of the current request
        page: Page returned by the service

    Returns:
        Header dictionary with total count, total pages and Link
    """
    links = []
    if page.has_next:
        links.append(_prepare_link(url, page.number + 1, page.size, "next"))
    if page.has_previous:
        links.append(_prepare_link(url, page.number - 1, page.size, "prev"))

    last_page = page.total_pages - 1 if page.total_pages > 0 else 0
    links.append(_prepare_link(url, last_page, page.size, "last"))
    links.append(_prepare_link(url, 0, page.size, "first"))

    return {
        HEADER_X_TOTAL_COUNT: str(page.total_elements),
        HEADER_X_TOTAL_PAGES: str(page.total_pages),
        "Link": ",".join(links),
    }
