from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("facturacion", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="comprobante",
            name="receptor_tipo_documento",
            field=models.PositiveSmallIntegerField(
                choices=[
                    (80, "CUIT"),
                    (86, "CUIL"),
                    (87, "CDI"),
                    (89, "Libreta de enrolamiento"),
                    (90, "Libreta cívica"),
                    (91, "Cédula de identidad extranjera"),
                    (94, "Pasaporte"),
                    (96, "DNI"),
                    (99, "Consumidor final"),
                ],
                default=99,
            ),
        ),
    ]
