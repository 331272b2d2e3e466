"""
Custody Store - Relational Custody State
========================================
DB-backed tables behind DbCustodyState. Identities are stored as
their 0x-prefixed hex encoding.

History rows are insert-only; nothing in the custody engine updates
or deletes them.
"""

from __future__ import annotations

from django.db import models


IDENTITY_HEX_LENGTH = 42


class CustodyRoleName(models.TextChoices):
    NONE = "None", "None"
    MANUFACTURER = "Manufacturer", "Manufacturer"
    DISTRIBUTOR = "Distributor", "Distributor"
    RETAILER = "Retailer", "Retailer"


class CustodyStatus(models.TextChoices):
    CREATED = "Created", "Created"
    IN_TRANSIT = "InTransit", "In transit"
    RECEIVED = "Received", "Received"


class CustodyAction(models.TextChoices):
    CREATED = "Created", "Created"
    TRANSFER_INITIATED = "TransferInitiated", "Transfer initiated"
    TRANSFER_ACCEPTED = "TransferAccepted", "Transfer accepted"
    RECEIVED = "Received", "Received"
    NOTE = "Note", "Note"


class CustodyRole(models.Model):
    identity = models.CharField(primary_key=True, max_length=IDENTITY_HEX_LENGTH)
    role = models.CharField(max_length=20, choices=CustodyRoleName.choices)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "custody_roles"
        ordering = ["identity"]

    def __str__(self) -> str:
        return f"{self.identity} ({self.role})"


class CustodyProduct(models.Model):
    product_id = models.CharField(primary_key=True, max_length=255)
    owner = models.CharField(max_length=IDENTITY_HEX_LENGTH)
    owner_role = models.CharField(max_length=20, choices=CustodyRoleName.choices)
    status = models.CharField(max_length=20, choices=CustodyStatus.choices)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "custody_products"
        ordering = ["product_id"]
        indexes = [
            models.Index(fields=["owner"], name="idx_custody_product_owner"),
        ]

    def __str__(self) -> str:
        return f"{self.product_id} ({self.status})"


class CustodyHistoryEntry(models.Model):
    product = models.ForeignKey(
        CustodyProduct,
        on_delete=models.PROTECT,
        related_name="history_entries",
        db_column="product_id",
    )
    sequence = models.PositiveIntegerField()
    timestamp = models.DateTimeField()
    actor = models.CharField(max_length=IDENTITY_HEX_LENGTH)
    action = models.CharField(max_length=32, choices=CustodyAction.choices)
    metadata = models.TextField(blank=True, default="")

    class Meta:
        db_table = "custody_history_entries"
        ordering = ["product_id", "sequence"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "sequence"],
                name="uq_custody_history_sequence",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id}#{self.sequence} {self.action}"


class CustodyPendingTransfer(models.Model):
    product = models.OneToOneField(
        CustodyProduct,
        on_delete=models.PROTECT,
        primary_key=True,
        related_name="pending_transfer",
        db_column="product_id",
    )
    recipient = models.CharField(max_length=IDENTITY_HEX_LENGTH)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "custody_pending_transfers"
        ordering = ["product_id"]

    def __str__(self) -> str:
        return f"{self.product_id} → {self.recipient}"


class CustodyViewGrant(models.Model):
    product = models.ForeignKey(
        CustodyProduct,
        on_delete=models.PROTECT,
        related_name="view_grants",
        db_column="product_id",
    )
    viewer = models.CharField(max_length=IDENTITY_HEX_LENGTH)
    allowed = models.BooleanField(default=False)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "custody_view_grants"
        ordering = ["product_id", "viewer"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "viewer"],
                name="uq_custody_view_grant",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product_id}:{self.viewer}={self.allowed}"
