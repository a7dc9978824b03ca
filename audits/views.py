"""
Audits — Views

DRF ViewSet for stock audits: list, open, retrieve (with stats), delete
(pending only). Workflow actions: counts, complete, apply-differences.

@file audits/views.py
"""

from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.renderers import PARTIAL_FAILURE_CODE

from .models import StockAudit
from .serializers import (
    AuditCompleteSerializer,
    AuditCountBatchSerializer,
    StockAuditCreateSerializer,
    StockAuditDetailSerializer,
    StockAuditListSerializer,
)
from .services import StockAuditService


def _apply_response(result, extra=None):
    """200 when anything applied (or nothing was due), 422 when every item failed."""
    payload = {'success': result.success, 'data': {**(extra or {}), 'apply_result': result.as_dict()}}
    if result.errors:
        payload['code'] = PARTIAL_FAILURE_CODE
    if result.success:
        return Response(payload, status=status.HTTP_200_OK)
    payload['errors'] = {'detail': ['No audit item could be applied.'], 'items': result.errors}
    return Response(payload, status=status.HTTP_422_UNPROCESSABLE_ENTITY)


class StockAuditViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    mixins.CreateModelMixin,
    mixins.DestroyModelMixin,
    viewsets.GenericViewSet,
):
    """
    Stock audits: list, create, retrieve, destroy (pending only).
    Workflow: counts, complete, apply-differences.
    """

    filterset_fields = ['company', 'warehouse', 'status']
    search_fields = ['name']
    ordering_fields = ['audit_date', 'created_at', 'status']
    ordering = ['-audit_date', '-created_at']

    def get_queryset(self):
        qs = StockAudit.objects.select_related('warehouse')
        if self.action == 'retrieve':
            qs = qs.prefetch_related('items')
        return qs

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return StockAuditDetailSerializer
        if self.action == 'create':
            return StockAuditCreateSerializer
        if self.action == 'counts':
            return AuditCountBatchSerializer
        if self.action == 'complete':
            return AuditCompleteSerializer
        return StockAuditListSerializer

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        audit = StockAuditService.create_audit(**serializer.validated_data, actor=request.user)
        return Response(
            StockAuditDetailSerializer(audit, context={'request': request}).data,
            status=status.HTTP_201_CREATED,
        )

    def destroy(self, request, *args, **kwargs):
        StockAuditService.delete_audit(audit_id=kwargs['pk'], actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='counts')
    def counts(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        results = StockAuditService.record_counts(
            audit_id=pk,
            counts=serializer.validated_data['counts'],
            actor=request.user,
        )
        return Response([r.as_dict() for r in results], status=status.HTTP_207_MULTI_STATUS)

    @action(detail=True, methods=['post'], url_path='complete')
    def complete(self, request, pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        audit = StockAuditService.complete_audit(audit_id=pk, actor=request.user)
        audit_data = StockAuditListSerializer(audit, context={'request': request}).data
        if not serializer.validated_data['apply_differences']:
            return Response(audit_data, status=status.HTTP_200_OK)
        result = StockAuditService.apply_differences(audit_id=pk, actor=request.user)
        return _apply_response(result, extra={'audit': audit_data})

    @action(detail=True, methods=['post'], url_path='apply-differences')
    def apply_differences(self, request, pk=None):
        result = StockAuditService.apply_differences(audit_id=pk, actor=request.user)
        return _apply_response(result)
