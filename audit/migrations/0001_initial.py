# Generated manually (initial migration).
from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AuditLog",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("user_id", models.CharField(max_length=450)),
                ("action", models.CharField(max_length=50)),
                ("details", models.CharField(blank=True, max_length=1000)),
                (
                    "timestamp",
                    models.DateTimeField(default=django.utils.timezone.now, editable=False),
                ),
                ("ip_address", models.CharField(blank=True, max_length=45, null=True)),
            ],
            options={
                "ordering": ["-timestamp", "-id"],
            },
        ),
        migrations.AddIndex(
            model_name="auditlog",
            index=models.Index(fields=["user_id", "timestamp"], name="idx_audit_user_ts"),
        ),
        migrations.AddIndex(
            model_name="auditlog",
            index=models.Index(fields=["action"], name="idx_audit_action"),
        ),
    ]
