"""
Audits — URL Configuration

@file audits/urls.py
"""

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from .views import StockAuditViewSet

app_name = 'audits'

# Audits sit at the prefix root, so no router root view.
router = SimpleRouter()
router.register('', StockAuditViewSet, basename='audit')

urlpatterns = [
    path('', include(router.urls)),
]
