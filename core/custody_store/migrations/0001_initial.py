from django.db import migrations, models


ROLE_CHOICES = [
    ("None", "None"),
    ("Manufacturer", "Manufacturer"),
    ("Distributor", "Distributor"),
    ("Retailer", "Retailer"),
]


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="CustodyRole",
            fields=[
                ("identity", models.CharField(max_length=42, primary_key=True, serialize=False)),
                ("role", models.CharField(choices=ROLE_CHOICES, max_length=20)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "custody_roles",
                "ordering": ["identity"],
            },
        ),
        migrations.CreateModel(
            name="CustodyProduct",
            fields=[
                ("product_id", models.CharField(max_length=255, primary_key=True, serialize=False)),
                ("owner", models.CharField(max_length=42)),
                ("owner_role", models.CharField(choices=ROLE_CHOICES, max_length=20)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("Created", "Created"),
                            ("InTransit", "In transit"),
                            ("Received", "Received"),
                        ],
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "custody_products",
                "ordering": ["product_id"],
                "indexes": [
                    models.Index(fields=["owner"], name="idx_custody_product_owner"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustodyHistoryEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("sequence", models.PositiveIntegerField()),
                ("timestamp", models.DateTimeField()),
                ("actor", models.CharField(max_length=42)),
                (
                    "action",
                    models.CharField(
                        choices=[
                            ("Created", "Created"),
                            ("TransferInitiated", "Transfer initiated"),
                            ("TransferAccepted", "Transfer accepted"),
                            ("Received", "Received"),
                            ("Note", "Note"),
                        ],
                        max_length=32,
                    ),
                ),
                ("metadata", models.TextField(blank=True, default="")),
                (
                    "product",
                    models.ForeignKey(
                        db_column="product_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="history_entries",
                        to="core_custody_store.custodyproduct",
                    ),
                ),
            ],
            options={
                "db_table": "custody_history_entries",
                "ordering": ["product_id", "sequence"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "sequence"),
                        name="uq_custody_history_sequence",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="CustodyPendingTransfer",
            fields=[
                (
                    "product",
                    models.OneToOneField(
                        db_column="product_id",
                        on_delete=models.deletion.PROTECT,
                        primary_key=True,
                        related_name="pending_transfer",
                        serialize=False,
                        to="core_custody_store.custodyproduct",
                    ),
                ),
                ("recipient", models.CharField(max_length=42)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "custody_pending_transfers",
                "ordering": ["product_id"],
            },
        ),
        migrations.CreateModel(
            name="CustodyViewGrant",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("viewer", models.CharField(max_length=42)),
                ("allowed", models.BooleanField(default=False)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "product",
                    models.ForeignKey(
                        db_column="product_id",
                        on_delete=models.deletion.PROTECT,
                        related_name="view_grants",
                        to="core_custody_store.custodyproduct",
                    ),
                ),
            ],
            options={
                "db_table": "custody_view_grants",
                "ordering": ["product_id", "viewer"],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("product", "viewer"),
                        name="uq_custody_view_grant",
                    ),
                ],
            },
        ),
    ]
