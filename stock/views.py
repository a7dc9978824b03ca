"""
Stock — Views

Stock item registry, ledger posting (single and batch) and the
point-in-time balance query. Writes go through StockLedgerService;
reads of the ledger are cursor-paginated.

@file stock/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from core.pagination import LedgerCursorPagination

from .models import StockItem, StockTransaction
from .reconstruction import BalanceReconstructionService
from .serializers import (
    BalanceQuerySerializer,
    StockBatchPostingSerializer,
    StockItemRegisterSerializer,
    StockItemSerializer,
    StockTransactionSerializer,
    StockTransactionWriteSerializer,
)
from .services import StockLedgerService


class StockItemViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """Stock items: list, retrieve, register (idempotent)."""

    filterset_fields = ['company', 'warehouse', 'item_type', 'item_id']
    ordering_fields = ['created_at', 'last_updated', 'current_quantity']
    ordering = ['item_type', 'created_at']

    def get_queryset(self):
        return StockItem.objects.select_related('warehouse')

    def get_serializer_class(self):
        if self.action == 'create':
            return StockItemRegisterSerializer
        return StockItemSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        stock_item = StockLedgerService.register_stock_item(
            **serializer.validated_data,
            actor=request.user,
        )
        return Response(StockItemSerializer(stock_item).data, status=status.HTTP_201_CREATED)


class StockTransactionViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    viewsets.GenericViewSet,
):
    """
    Ledger rows: list, retrieve, post. No update or delete (insert-only).
    POST batch/ posts one transaction type for many items and answers 207
    with one row per item.
    """

    pagination_class = LedgerCursorPagination
    filterset_fields = ['stock_item', 'stock_item__company', 'transaction_type', 'reference_type', 'reference_id']
    search_fields = ['item_name_snapshot', 'notes']
    ordering_fields = ['timestamp']
    ordering = ['-timestamp', '-created_at']

    def get_queryset(self):
        return StockTransaction.objects.select_related('stock_item')

    def get_serializer_class(self):
        if self.action == 'create':
            return StockTransactionWriteSerializer
        if self.action == 'batch':
            return StockBatchPostingSerializer
        return StockTransactionSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        movement = StockLedgerService.post_transaction(
            **serializer.validated_data,
            actor=request.user,
        )
        return Response(StockTransactionSerializer(movement).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'], url_path='batch')
    def batch(self, request):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        results = StockLedgerService.post_batch(
            **serializer.validated_data,
            actor=request.user,
        )
        return Response([r.as_dict() for r in results], status=status.HTTP_207_MULTI_STATUS)


class StockBalanceView(APIView):
    """GET ?company_id=&target_date=YYYY-MM-DD[&stock_item_id=] — balances at end of target_date."""

    def get(self, request):
        query = BalanceQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        result = BalanceReconstructionService().get_balance(**query.validated_data)
        return Response(result.as_dict())
