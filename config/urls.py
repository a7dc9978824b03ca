"""
StockTrace — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

admin.site.site_header = 'StockTrace Administration'
admin.site.site_title = 'StockTrace'
admin.site.index_title = 'Warehouse Stock Ledger'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """StockTrace API v1 — endpoint directory."""
    return Response({
        'auth': {
            'token': reverse('api-v1:token-obtain', request=request, format=format),
            'refresh': reverse('api-v1:token-refresh', request=request, format=format),
        },
        'stock': {
            'balance': reverse('api-v1:stock:balance', request=request, format=format),
            'items': reverse('api-v1:stock:item-list', request=request, format=format),
            'transactions': reverse('api-v1:stock:transaction-list', request=request, format=format),
        },
        'audits': reverse('api-v1:audits:audit-list', request=request, format=format),
    })


api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
    path('stock/', include('stock.urls', namespace='stock')),
    path('audits/', include('audits.urls', namespace='audits')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
