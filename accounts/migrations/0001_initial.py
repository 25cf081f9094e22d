import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Credential',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('kind', models.CharField(choices=[('CUSTOMER', 'Customer'), ('ADMINISTRATOR', 'Administrator')], db_index=True, help_text='Principal kind this credential authenticates', max_length=20)),
                ('username', models.CharField(help_text='Login name, unique per principal kind', max_length=150)),
                ('password_hash', models.CharField(help_text='Salted one-way password hash', max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Credential',
                'verbose_name_plural': 'Credentials',
                'ordering': ['kind', 'username'],
                'constraints': [models.UniqueConstraint(fields=('kind', 'username'), name='unique_username_per_kind')],
            },
        ),
        migrations.CreateModel(
            name='Administrator',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('credential', models.OneToOneField(limit_choices_to={'kind': 'ADMINISTRATOR'}, on_delete=django.db.models.deletion.CASCADE, related_name='administrator', to='accounts.credential')),
            ],
            options={
                'verbose_name': 'Administrator',
                'verbose_name_plural': 'Administrators',
                'ordering': ['credential__username'],
            },
        ),
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('first_names', models.CharField(max_length=150)),
                ('last_names', models.CharField(max_length=150)),
                ('document_type', models.CharField(choices=[('TI', 'Tarjeta de identidad'), ('CC', 'Cédula de ciudadanía'), ('TE', 'Tarjeta de extranjería'), ('CE', 'Cédula de extranjería'), ('NIT', 'Número de identificación tributaria'), ('PP', 'Pasaporte')], help_text='Identity document type', max_length=5)),
                ('document_number', models.CharField(blank=True, default='', max_length=50)),
                ('birth_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('credential', models.OneToOneField(limit_choices_to={'kind': 'CUSTOMER'}, on_delete=django.db.models.deletion.CASCADE, related_name='customer', to='accounts.credential')),
            ],
            options={
                'verbose_name': 'Customer',
                'verbose_name_plural': 'Customers',
                'ordering': ['last_names', 'first_names'],
            },
        ),
    ]
