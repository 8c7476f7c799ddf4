from django.db import migrations, models

# SM + YYMMDD + two-letter branch prefix
PREFIX_LENGTH = 10


def seed_sequences(apps, schema_editor):
    ShipmentOrder = apps.get_model("shipments", "ShipmentOrder")
    WaybillSequence = apps.get_model("shipments", "WaybillSequence")
    latest = {}
    for waybill_no in ShipmentOrder.objects.values_list("waybill_no", flat=True).iterator():
        prefix, suffix = waybill_no[:PREFIX_LENGTH], waybill_no[PREFIX_LENGTH:]
        if suffix.isdigit():
            latest[prefix] = max(latest.get(prefix, 0), int(suffix))
    WaybillSequence.objects.bulk_create(
        [WaybillSequence(prefix=prefix, last_value=value) for prefix, value in latest.items()]
    )


class Migration(migrations.Migration):

    dependencies = [
        ("shipments", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="WaybillSequence",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("prefix", models.CharField(max_length=16, unique=True)),
                ("last_value", models.PositiveIntegerField(default=0)),
            ],
        ),
        migrations.RunPython(seed_sequences, migrations.RunPython.noop),
    ]
