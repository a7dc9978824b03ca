"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import StockBalanceView, StockItemViewSet, StockTransactionViewSet

app_name = 'stock'

router = DefaultRouter()
router.register('items', StockItemViewSet, basename='item')
router.register('transactions', StockTransactionViewSet, basename='transaction')

urlpatterns = [
    path('balance/', StockBalanceView.as_view(), name='balance'),
    path('', include(router.urls)),
]
