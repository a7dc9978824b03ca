"""
Companies — Models

Tenant (Company) and the warehouses its stock is held in. Warehouse
identity is used by the stock registry and by the audit-apply guard.

@file companies/models.py
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.models import BaseModel


class Company(BaseModel):
    """A tenant. Deleting a company cascades to everything it owns."""

    name = models.CharField(_('name'), max_length=255)
    is_active = models.BooleanField(_('active'), default=True)

    class Meta:
        verbose_name = _('company')
        verbose_name_plural = _('companies')
        ordering = ['name']

    def __str__(self):
        return self.name

    def get_default_warehouse(self):
        """The warehouse flagged as default, else the oldest active one."""
        warehouses = self.warehouses.filter(is_active=True)
        return warehouses.filter(is_default=True).first() or warehouses.order_by('created_at').first()


class Warehouse(BaseModel):
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name='warehouses',
        verbose_name=_('company'),
    )
    name = models.CharField(_('name'), max_length=255)
    is_active = models.BooleanField(_('active'), default=True)
    is_default = models.BooleanField(_('default'), default=False)

    class Meta:
        verbose_name = _('warehouse')
        verbose_name_plural = _('warehouses')
        ordering = ['company', 'name']
        constraints = [
            models.UniqueConstraint(
                fields=['company'],
                condition=models.Q(is_default=True),
                name='warehouse_one_default_per_company',
            ),
        ]

    def __str__(self):
        return f'{self.company.name} / {self.name}'
