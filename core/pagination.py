"""
Core — Pagination

Standard page-number paginator with a hard max cap, plus a cursor
paginator for append-only ledgers where rows keep arriving at the head.

@file core/pagination.py
"""

from rest_framework.pagination import CursorPagination, PageNumberPagination

from core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE


class StandardPagination(PageNumberPagination):
    page_size = DEFAULT_PAGE_SIZE
    page_size_query_param = 'page_size'
    max_page_size = MAX_PAGE_SIZE


class LedgerCursorPagination(CursorPagination):
    """Stable paging over ledger rows; new postings never shift a page."""

    page_size = DEFAULT_PAGE_SIZE
    page_size_query_param = 'page_size'
    max_page_size = MAX_PAGE_SIZE
    ordering = ('-timestamp', '-created_at')
