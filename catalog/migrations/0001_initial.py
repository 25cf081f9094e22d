import django.core.validators
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(db_index=True, help_text='Product name for display and search', max_length=200)),
                ('description', models.TextField(blank=True, default='', help_text='Optional product description')),
                ('image', models.CharField(blank=True, default='', help_text='Image URL or path', max_length=500)),
                ('price', models.DecimalField(decimal_places=2, help_text='Unit price (non-negative)', max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('available_units', models.PositiveIntegerField(default=0, help_text='Units currently available for purchase')),
                ('category', models.CharField(choices=[('DEPORTIVO', 'Deportivo'), ('CASUAL', 'Casual'), ('RUNNING', 'Running'), ('FUTBOL', 'Fútbol'), ('FORMAL', 'Formal')], db_index=True, max_length=20)),
                ('gender', models.CharField(choices=[('M', 'Masculino'), ('F', 'Femenino'), ('U', 'Unisex')], db_index=True, max_length=1)),
                ('size', models.CharField(choices=[('T35', '35'), ('T36', '36'), ('T37', '37'), ('T38', '38'), ('T39', '39'), ('T40', '40'), ('T41', '41'), ('T42', '42'), ('T43', '43')], db_index=True, max_length=3)),
                ('brand', models.CharField(blank=True, default='', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name'],
                'indexes': [
                    models.Index(fields=['category', 'gender'], name='product_category_gender_idx'),
                    models.Index(fields=['price'], name='product_price_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('available_units__gte', 0)), name='product_available_units_non_negative'),
                    models.CheckConstraint(condition=models.Q(('price__gte', 0)), name='product_price_non_negative'),
                ],
            },
        ),
    ]
