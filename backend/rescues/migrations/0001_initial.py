import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

STATUS_CHOICES = [
    ("reported", "Reported"),
    ("org_accepted", "Accepted by Organization"),
    ("facility_escalated", "Escalated to Facilities"),
    ("carrier_assigned", "Carrier Assigned"),
    ("en_route", "Carrier En Route"),
    ("picked_up", "Animal Picked Up"),
    ("delivered", "Delivered to Facility"),
    ("completed", "Completed"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RescueCase",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("description", models.TextField(max_length=1000, verbose_name="Description")),
                (
                    "images",
                    models.JSONField(blank=True, default=list, help_text="Up to five media-store URLs.", verbose_name="Image References"),
                ),
                ("video", models.CharField(blank=True, max_length=500, null=True, verbose_name="Video Reference")),
                ("latitude", models.FloatField(verbose_name="Latitude")),
                ("longitude", models.FloatField(verbose_name="Longitude")),
                ("address", models.CharField(blank=True, default="", max_length=500, verbose_name="Address")),
                (
                    "status",
                    models.CharField(
                        choices=STATUS_CHOICES,
                        db_index=True,
                        default="reported",
                        max_length=20,
                        verbose_name="Current Status",
                    ),
                ),
                (
                    "version",
                    models.PositiveIntegerField(default=0, help_text="Incremented on every workflow write.", verbose_name="Version"),
                ),
                (
                    "deposit_amount",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Amount debited at submission; refunded in full on completion.",
                        verbose_name="Deposit Amount",
                    ),
                ),
                ("deposit_held", models.BooleanField(default=False, verbose_name="Deposit Held")),
                ("deposit_returned", models.BooleanField(default=False, verbose_name="Deposit Returned")),
                ("accepted_at", models.DateTimeField(blank=True, null=True, verbose_name="Accepted At")),
                ("escalated_at", models.DateTimeField(blank=True, null=True, verbose_name="Escalated At")),
                ("assigned_at", models.DateTimeField(blank=True, null=True, verbose_name="Carrier Assigned At")),
                ("en_route_at", models.DateTimeField(blank=True, null=True, verbose_name="En Route At")),
                ("picked_up_at", models.DateTimeField(blank=True, null=True, verbose_name="Picked Up At")),
                ("delivered_at", models.DateTimeField(blank=True, null=True, verbose_name="Delivered At")),
                ("completed_at", models.DateTimeField(blank=True, null=True, verbose_name="Completed At")),
                ("admin_note", models.TextField(blank=True, default="", verbose_name="Administrator Note")),
                (
                    "assigned_carrier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="carrier_rescues",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Assigned Carrier",
                    ),
                ),
                (
                    "assigned_facility",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="facility_rescues",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Receiving Facility",
                    ),
                ),
                (
                    "assigned_org",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="accepted_rescues",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Accepting Organization",
                    ),
                ),
                (
                    "rejected_by_orgs",
                    models.ManyToManyField(
                        blank=True,
                        related_name="declined_rescues",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Declined By",
                    ),
                ),
                (
                    "reporter",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reported_rescues",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Reporter",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rescue Case",
                "verbose_name_plural": "Rescue Cases",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="rescue_status_created_idx"),
                    models.Index(fields=["status", "escalated_at"], name="rescue_status_escalated_idx"),
                    models.Index(fields=["latitude", "longitude"], name="rescue_location_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("deposit_returned", False), ("deposit_held", True), _connector="OR"),
                        name="rescue_refund_requires_held_deposit",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="RescueStatusLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                (
                    "from_status",
                    models.CharField(blank=True, choices=STATUS_CHOICES, default="", max_length=20, verbose_name="Previous Status"),
                ),
                ("to_status", models.CharField(choices=STATUS_CHOICES, max_length=20, verbose_name="New Status")),
                ("actor_label", models.CharField(blank=True, default="", max_length=64, verbose_name="Actor")),
                ("message", models.TextField(blank=True, default="", verbose_name="Message")),
                (
                    "case",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_logs",
                        to="rescues.rescuecase",
                        verbose_name="Rescue",
                    ),
                ),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="rescue_status_changes",
                        to=settings.AUTH_USER_MODEL,
                        verbose_name="Changed By",
                    ),
                ),
            ],
            options={
                "verbose_name": "Rescue Status Log",
                "verbose_name_plural": "Rescue Status Logs",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
