import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
        ("rescues", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                (
                    "balance",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Cached sum of the owner's ledger entries; never negative.",
                        verbose_name="Balance",
                    ),
                ),
                (
                    "user",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="wallet",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Owner",
                    ),
                ),
            ],
            options={
                "verbose_name": "Wallet",
                "verbose_name_plural": "Wallets",
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("signed_amount", models.IntegerField(verbose_name="Signed Amount")),
                (
                    "kind",
                    models.CharField(
                        choices=[("debit", "Debit"), ("credit", "Credit"), ("refund", "Refund")],
                        max_length=10,
                        verbose_name="Kind",
                    ),
                ),
                ("resulting_balance", models.PositiveIntegerField(verbose_name="Resulting Balance")),
                ("description", models.CharField(blank=True, default="", max_length=255, verbose_name="Description")),
                (
                    "payment_reference",
                    models.CharField(
                        blank=True,
                        help_text="Gateway payment id; makes top-ups idempotent.",
                        max_length=100,
                        null=True,
                        unique=True,
                        verbose_name="Payment Reference",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                (
                    "actor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Wallet Owner",
                    ),
                ),
                (
                    "related_case",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="ledger_entries",
                        to="rescues.rescuecase",
                        verbose_name="Related Rescue",
                    ),
                ),
            ],
            options={
                "verbose_name": "Ledger Entry",
                "verbose_name_plural": "Ledger Entries",
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["actor", "created_at"], name="wallet_entry_actor_time_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("kind", "refund")),
                        fields=("related_case",),
                        name="wallet_one_refund_per_case",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("kind", "debit")),
                        fields=("related_case",),
                        name="wallet_one_deposit_per_case",
                    ),
                ],
            },
        ),
    ]
